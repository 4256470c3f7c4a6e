"""Small builders shared by the test modules."""
from __future__ import annotations
import shutil
import tempfile
from pathlib import Path

from django.test import override_settings
from django.utils import timezone

from flix.models import Movie, Profile, User
from flix.services import CatalogService


def make_user(email: str = "user@example.com", password: str = "secret123", **extra) -> User:
    extra.setdefault("name", email.split("@")[0])
    extra.setdefault("email_verified", timezone.now())
    return User.objects.create_user(username=email, email=email, password=password, **extra)


def make_admin(email: str = "admin@example.com", **extra) -> User:
    return make_user(email, role=User.Role.ADMIN, **extra)


def make_profile(user: User, name: str = "Main", in_use: bool = True) -> Profile:
    return Profile.objects.create(user=user, name=name, in_use=in_use)


def make_movie(title: str = "Movie", title_type: str = Movie.Type.MOVIE, actors=(), **extra) -> Movie:
    values = {"title": title, "video_url": extra.pop("video_url", title.lower().replace(" ", "-"))}
    values.update(extra)
    values["actors"] = list(actors)
    return CatalogService(title_type).create_title(values)


class TempMediaMixin:
    """Point the media and log folders at a throwaway directory."""

    def setUp(self):
        super().setUp()
        self.media_root = Path(tempfile.mkdtemp())
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)
        self.movie_folder = self.media_root / "movies"
        self.series_folder = self.media_root / "series"
        self.logs_dir = self.media_root / "logs"
        for folder in (self.movie_folder, self.series_folder, self.logs_dir):
            folder.mkdir()
        override = override_settings(
            MOVIE_FOLDER=str(self.movie_folder),
            SERIES_FOLDER=str(self.series_folder),
            LOGS_DIR=self.logs_dir,
            BACKEND_LOG_FILE=self.logs_dir / "backend.log",
        )
        override.enable()
        self.addCleanup(override.disable)
