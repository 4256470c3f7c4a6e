"""Database models for the flix streaming platform."""
from __future__ import annotations
from pathlib import Path
from typing import Optional
from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class User(AbstractUser):
    """Account owner. Signs in with the e-mail address."""

    class Role(models.TextChoices):
        ADMIN = "ADMIN", "Admin"
        USER = "USER", "User"

    name = models.CharField(max_length=150, blank=True)
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.USER)
    email_verified = models.DateTimeField(null=True, blank=True)
    is_two_factor_enabled = models.BooleanField(default=False)
    is_blocked = models.BooleanField(default=False)
    oauth_provider = models.CharField(max_length=32, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    def __str__(self) -> str:
        return self.name or self.email

    @property
    def is_admin(self) -> bool:
        return self.role == self.Role.ADMIN

    @property
    def is_oauth(self) -> bool:
        return bool(self.oauth_provider)

    @property
    def active_profile(self) -> Optional["Profile"]:
        """Return the profile currently marked as in use."""

        return self.profiles.filter(in_use=True).first()

    def block(self, blocked: bool = True) -> None:
        """Blocked accounts can neither sign in nor use issued tokens."""

        self.is_blocked = blocked
        self.is_active = not blocked
        self.save(update_fields=["is_blocked", "is_active"])


class EmailToken(models.Model):
    """Common fields of the one-time tokens sent by e-mail."""

    email = models.EmailField()
    token = models.CharField(max_length=64, unique=True)
    expires = models.DateTimeField()

    class Meta:
        abstract = True

    def __str__(self) -> str:
        return f"{self.__class__.__name__} for {self.email}"

    @property
    def has_expired(self) -> bool:
        return self.expires < timezone.now()


class VerificationToken(EmailToken):
    """Confirms ownership of an e-mail address, for sign-up or an address change."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="verification_tokens",
    )


class PasswordResetToken(EmailToken):
    pass


class TwoFactorToken(EmailToken):
    pass


class TwoFactorConfirmation(models.Model):
    """Marks a user whose two-factor code was accepted for the pending sign-in."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="two_factor_confirmation"
    )

    def __str__(self) -> str:
        return f"2FA confirmation for {self.user}"


class Actor(models.Model):
    name = models.CharField(max_length=255, unique=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Movie(models.Model):
    """A catalog title. Series are stored as titles of type ``Serie``."""

    class Type(models.TextChoices):
        MOVIE = "Movie", "Movie"
        SERIE = "Serie", "Serie"

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    video_url = models.CharField(max_length=255, help_text="File name of the video without extension.")
    thumbnail_url = models.TextField(blank=True)
    type = models.CharField(max_length=10, choices=Type.choices, default=Type.MOVIE)
    genre = models.CharField(max_length=100, blank=True)
    duration = models.CharField(max_length=20, blank=True)
    actors = models.ManyToManyField(Actor, related_name="movies", blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.title} ({self.type})"

    @property
    def actor_names(self) -> list[str]:
        return [actor.name for actor in self.actors.all()]

    @property
    def views_count(self) -> int:
        return self.views.count()

    @property
    def media_folder(self) -> Path:
        return media_folder_for(self.type)

    def find_video_file(self) -> Path | None:
        """Return the first existing video file for this title."""

        if not self.video_url:
            return None
        for extension in settings.VIDEO_EXTENSIONS:
            candidate = self.media_folder / f"{self.video_url}{extension}"
            if candidate.is_file():
                return candidate
        return None


def media_folder_for(title_type: str) -> Path:
    if title_type == Movie.Type.SERIE:
        return Path(settings.SERIES_FOLDER)
    return Path(settings.MOVIE_FOLDER)


class ProfileImage(models.Model):
    url = models.CharField(max_length=255, unique=True)

    class Meta:
        ordering = ["url"]

    def __str__(self) -> str:
        return self.url


class Profile(models.Model):
    """A viewing profile under a user account ("who's watching")."""

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="profiles")
    name = models.CharField(max_length=50)
    image = models.CharField(max_length=255, blank=True)
    in_use = models.BooleanField(default=False)
    favorites = models.ManyToManyField(Movie, related_name="favorited_by", blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user"],
                condition=models.Q(in_use=True),
                name="one_profile_in_use_per_user",
            )
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.user})"

    @property
    def favorite_ids(self) -> list[int]:
        return list(self.favorites.order_by("pk").values_list("pk", flat=True))


class MovieView(models.Model):
    """One view of a title per user, profile and day."""

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="movie_views")
    profile = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name="movie_views")
    movie = models.ForeignKey(Movie, on_delete=models.CASCADE, related_name="views")
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.profile} viewed {self.movie}"


class MovieWatchTime(models.Model):
    """Stored playback position used to resume a title."""

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="watch_times")
    profile = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name="watch_times")
    movie = models.ForeignKey(Movie, on_delete=models.CASCADE, related_name="watch_times")
    time = models.FloatField(default=0, help_text="Playback position in seconds")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("user", "profile", "movie")

    def __str__(self) -> str:
        return f"{self.profile} @ {self.movie}: {self.time}s"


class Watchlist(models.Model):
    """A title saved for later by a profile."""

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="watchlist")
    profile = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name="watchlist")
    movie = models.ForeignKey(Movie, on_delete=models.CASCADE, related_name="watchlisted_by")
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        unique_together = ("profile", "movie")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Watchlist {self.profile} -> {self.movie}"


class Playlist(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="playlists")
    profile = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name="playlists")
    title = models.CharField(max_length=100)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:
        return self.title

    @property
    def movies(self) -> list[Movie]:
        return [entry.movie for entry in self.entries.select_related("movie").order_by("order")]


class PlaylistEntry(models.Model):
    playlist = models.ForeignKey(Playlist, on_delete=models.CASCADE, related_name="entries")
    movie = models.ForeignKey(Movie, on_delete=models.CASCADE, related_name="playlist_entries")
    order = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ["order"]
        verbose_name_plural = "Playlist entries"

    def __str__(self) -> str:
        return f"{self.playlist} #{self.order}: {self.movie}"
