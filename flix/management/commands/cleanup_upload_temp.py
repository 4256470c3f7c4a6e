"""Delete stale upload chunks from the temp folders."""
from __future__ import annotations

from django.core.management.base import BaseCommand

from flix.media import cleanup_temp_folders


class Command(BaseCommand):
    help = "Remove upload chunks older than UPLOAD_TEMP_MAX_AGE_MINUTES."

    def add_arguments(self, parser) -> None:
        parser.add_argument("--minutes", type=int, default=None, help="Override the maximum chunk age.")

    def handle(self, *args, **options) -> None:  # type: ignore[override]
        removed = cleanup_temp_folders(options["minutes"])
        for path in removed:
            self.stdout.write(f"Deleted {path}")
        self.stdout.write(self.style.SUCCESS(f"{len(removed)} temp file(s) removed."))
