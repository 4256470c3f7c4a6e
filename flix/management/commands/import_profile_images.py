"""Register the 200x200 avatar images found in the profile images folder."""
from __future__ import annotations

from pathlib import Path

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from PIL import Image, UnidentifiedImageError

from flix.models import ProfileImage

REQUIRED_SIZE = (200, 200)


class Command(BaseCommand):
    help = "Scan the profile images folder and register every new 200x200 image."

    def add_arguments(self, parser) -> None:
        parser.add_argument("--path", default=None, help="Folder to scan instead of PROFILE_IMAGES_DIR.")

    def handle(self, *args, **options) -> None:  # type: ignore[override]
        images_dir = Path(options["path"] or settings.PROFILE_IMAGES_DIR)
        if not images_dir.is_dir():
            raise CommandError(f"{images_dir} is not a directory.")

        added = 0
        for file_path in sorted(images_dir.iterdir()):
            if not file_path.is_file():
                continue
            try:
                with Image.open(file_path) as image:
                    size = image.size
            except (UnidentifiedImageError, OSError) as exc:
                self.stderr.write(f"Error reading {file_path.name}: {exc}")
                continue

            if size != REQUIRED_SIZE:
                self.stderr.write(f"Error: {file_path.name} is {size[0]}x{size[1]} (not 200x200)")
                continue

            _image, created = ProfileImage.objects.get_or_create(url=file_path.name)
            if created:
                added += 1
                self.stdout.write(f"Added: {file_path.name}")
            else:
                self.stdout.write(f"Already exists: {file_path.name}")

        self.stdout.write(self.style.SUCCESS(f"{added} profile image(s) imported."))
