"""Domain services used by the flix application."""
from __future__ import annotations
import logging
import random
import secrets
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Iterable
from urllib.parse import urlencode
import requests
from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.db.models import Count, Q, QuerySet
from django.utils import timezone
from rest_framework_simplejwt.tokens import RefreshToken
from . import models
from .backend_log import log_backend_action

logger = logging.getLogger(__name__)


# Tokens

def _replace_token(model, email: str, token: str, ttl: timedelta, **extra: Any):
    model.objects.filter(email=email).delete()
    return model.objects.create(email=email, token=token, expires=timezone.now() + ttl, **extra)


def generate_verification_token(email: str, user: models.User | None = None) -> models.VerificationToken:
    return _replace_token(
        models.VerificationToken, email, str(uuid.uuid4()), settings.VERIFICATION_TOKEN_TTL, user=user
    )


def generate_password_reset_token(email: str) -> models.PasswordResetToken:
    return _replace_token(models.PasswordResetToken, email, str(uuid.uuid4()), settings.PASSWORD_RESET_TOKEN_TTL)


def generate_two_factor_token(email: str) -> models.TwoFactorToken:
    code = str(secrets.randbelow(900_000) + 100_000)
    return _replace_token(models.TwoFactorToken, email, code, settings.TWO_FACTOR_TOKEN_TTL)


def issue_tokens(user: models.User) -> dict[str, str]:
    refresh = RefreshToken.for_user(user)
    return {"refresh": str(refresh), "access": str(refresh.access_token)}


# Mail

def _link(path: str, token: str) -> str:
    return f"{settings.SITE_URL.rstrip('/')}{path}?{urlencode({'token': token})}"


def send_verification_email(email: str, token: str) -> None:
    confirm_link = _link("/auth/new-verification", token)
    send_mail(
        "Confirm your email",
        f"Click {confirm_link} to confirm email.",
        settings.DEFAULT_FROM_EMAIL,
        [email],
        html_message=f'<p>Click <a href="{confirm_link}">here</a> to confirm email.</p>',
    )


def send_reset_password_email(email: str, token: str) -> None:
    reset_link = _link("/auth/new-password", token)
    send_mail(
        "Reset your password",
        f"Click {reset_link} to reset your password.",
        settings.DEFAULT_FROM_EMAIL,
        [email],
        html_message=f'<p>Click <a href="{reset_link}">here</a> to reset your password.</p>',
    )


def send_two_factor_email(email: str, token: str) -> None:
    send_mail(
        "2FA Code",
        f"Your 2FA code: {token}",
        settings.DEFAULT_FROM_EMAIL,
        [email],
        html_message=f"<p>Your 2FA code: {token}</p>",
    )


# Accounts

@dataclass
class LoginResult:
    user: models.User | None = None
    message: str = ""
    two_factor: bool = False
    tokens: dict[str, str] | None = None

    @property
    def signed_in(self) -> bool:
        return self.tokens is not None


class AuthService:
    """Registration, sign-in and account maintenance."""

    @transaction.atomic
    def register(self, email: str, password: str, name: str) -> models.User:
        email = email.lower()
        if models.User.objects.filter(email__iexact=email).exists():
            log_backend_action("register_email_in_use", {"email": email}, "error")
            raise ValueError("Email already in use!")
        user = models.User.objects.create_user(username=email, email=email, password=password, name=name)
        verification = generate_verification_token(email, user=user)
        send_verification_email(verification.email, verification.token)
        log_backend_action("register_success", {"email": email}, "info")
        return user

    def login(self, email: str, password: str, code: str | None = None) -> LoginResult:
        email = email.lower()
        user = models.User.objects.filter(email__iexact=email).first()
        if user is None or not user.has_usable_password():
            log_backend_action("login_email_not_exist", {"email": email}, "error")
            raise ValueError("Email does not exist!")
        if not user.check_password(password):
            log_backend_action("login_invalid_credentials", {"email": email}, "error")
            raise ValueError("Invalid credentials!")
        if user.is_blocked:
            log_backend_action("login_blocked", {"email": email}, "error")
            raise ValueError("Account is blocked!")

        if not user.email_verified:
            verification = generate_verification_token(user.email, user=user)
            send_verification_email(verification.email, verification.token)
            log_backend_action("login_confirmation_sent", {"email": email}, "info")
            return LoginResult(user=user, message="Confirmation email sent!")

        if user.is_two_factor_enabled:
            if not code:
                two_factor = generate_two_factor_token(user.email)
                send_two_factor_email(two_factor.email, two_factor.token)
                log_backend_action("login_two_factor_sent", {"email": email}, "info")
                return LoginResult(user=user, two_factor=True)
            self._confirm_two_factor(user, code)
            if not self._consume_two_factor_confirmation(user):
                raise ValueError("Invalid code!")

        models.User.objects.filter(pk=user.pk).update(last_login=timezone.now())
        log_backend_action("login_success", {"email": email}, "info")
        return LoginResult(user=user, message="Logged in!", tokens=issue_tokens(user))

    @transaction.atomic
    def _confirm_two_factor(self, user: models.User, code: str) -> None:
        token = models.TwoFactorToken.objects.filter(email=user.email).first()
        if token is None or token.token != code:
            log_backend_action("login_invalid_code", {"email": user.email}, "error")
            raise ValueError("Invalid code!")
        if token.has_expired:
            log_backend_action("login_code_expired", {"email": user.email}, "error")
            raise ValueError("Code has expired!")
        token.delete()
        models.TwoFactorConfirmation.objects.filter(user=user).delete()
        models.TwoFactorConfirmation.objects.create(user=user)

    def _consume_two_factor_confirmation(self, user: models.User) -> bool:
        deleted, _ = models.TwoFactorConfirmation.objects.filter(user=user).delete()
        return deleted > 0

    def logout(self, refresh: str) -> None:
        RefreshToken(refresh).blacklist()

    @transaction.atomic
    def verify_email(self, token: str) -> models.User:
        existing = models.VerificationToken.objects.select_related("user").filter(token=token).first()
        if existing is None:
            log_backend_action("new_verification_token_not_exist", {"token": token}, "error")
            raise ValueError("Token does not exist!")
        if existing.has_expired:
            log_backend_action("new_verification_token_expired", {"token": token}, "error")
            raise ValueError("Token has expired!")

        user = existing.user or models.User.objects.filter(email__iexact=existing.email).first()
        if user is None:
            log_backend_action("new_verification_email_not_exist", {"email": existing.email}, "error")
            raise ValueError("Email does not exist!")
        if models.User.objects.filter(email__iexact=existing.email).exclude(pk=user.pk).exists():
            raise ValueError("Email already in use!")

        user.email_verified = timezone.now()
        user.email = existing.email
        user.save(update_fields=["email_verified", "email"])
        existing.delete()
        log_backend_action("new_verification_success", {"email": existing.email}, "info")
        return user

    def request_password_reset(self, email: str) -> None:
        user = models.User.objects.filter(email__iexact=email).first()
        if user is None:
            log_backend_action("reset_email_not_exist", {"email": email}, "error")
            raise ValueError("Email does not exist!")
        reset_token = generate_password_reset_token(user.email)
        send_reset_password_email(reset_token.email, reset_token.token)
        log_backend_action("reset_email_sent", {"email": user.email}, "info")

    @transaction.atomic
    def set_new_password(self, token: str | None, password: str) -> models.User:
        if not token:
            raise ValueError("Missing token!")
        if not password or len(password) < 6:
            raise ValueError("Invalid password!")
        existing = models.PasswordResetToken.objects.filter(token=token).first()
        if existing is None:
            raise ValueError("Token does not exist!")
        if existing.has_expired:
            raise ValueError("Token has expired!")
        user = models.User.objects.filter(email__iexact=existing.email).first()
        if user is None:
            raise ValueError("Email does not exist!")
        user.set_password(password)
        user.save(update_fields=["password"])
        existing.delete()
        log_backend_action("new_password_success", {"email": user.email}, "info")
        return user

    @transaction.atomic
    def update_settings(self, user: models.User, values: dict[str, Any]) -> str:
        """Apply account settings; returns the outcome message."""

        values = dict(values)
        if user.is_oauth:
            for key in ("email", "password", "new_password", "is_two_factor_enabled"):
                values.pop(key, None)

        email = values.get("email")
        if email and email.lower() != user.email.lower():
            email = email.lower()
            if models.User.objects.filter(email__iexact=email).exclude(pk=user.pk).exists():
                raise ValueError("Email already in use!")
            verification = generate_verification_token(email, user=user)
            send_verification_email(verification.email, verification.token)
            log_backend_action("settings_confirmation_sent", {"userId": user.pk, "email": email}, "info")
            return "Confirmation email sent!"

        update_fields: list[str] = []
        if values.get("password") and values.get("new_password"):
            if not user.check_password(values["password"]):
                raise ValueError("Incorrect password!")
            user.set_password(values["new_password"])
            update_fields.append("password")

        if "name" in values:
            user.name = values["name"]
            update_fields.append("name")

        role = values.get("role")
        if role and role != user.role:
            if not user.is_admin:
                raise ValueError("Only admins can change roles!")
            user.role = role
            update_fields.append("role")

        if values.get("is_two_factor_enabled") is not None:
            user.is_two_factor_enabled = values["is_two_factor_enabled"]
            update_fields.append("is_two_factor_enabled")

        if update_fields:
            user.save(update_fields=update_fields)
        log_backend_action("settings_updated", {"userId": user.pk, "fields": update_fields}, "info")
        return "Settings Updated!"

    @transaction.atomic
    def oauth_sign_in(self, provider: str, email: str, name: str = "") -> LoginResult:
        user = models.User.objects.filter(email__iexact=email).first()
        if user is None:
            user = models.User(
                username=email,
                email=email,
                name=name,
                oauth_provider=provider,
                email_verified=timezone.now(),
            )
            user.set_unusable_password()
            user.save()
            log_backend_action("oauth_user_created", {"email": email, "provider": provider}, "info")
        elif user.is_blocked:
            raise ValueError("Account is blocked!")
        elif not user.email_verified:
            user.email_verified = timezone.now()
            user.save(update_fields=["email_verified"])
        log_backend_action("login_success", {"email": email, "provider": provider}, "info")
        return LoginResult(user=user, message="Logged in!", tokens=issue_tokens(user))


# OAuth providers

OAUTH_ENDPOINTS: dict[str, dict[str, str]] = {
    "github": {
        "authorize": "https://github.com/login/oauth/authorize",
        "token": "https://github.com/login/oauth/access_token",
        "profile": "https://api.github.com/user",
        "emails": "https://api.github.com/user/emails",
        "scope": "read:user user:email",
    },
    "google": {
        "authorize": "https://accounts.google.com/o/oauth2/v2/auth",
        "token": "https://oauth2.googleapis.com/token",
        "profile": "https://openidconnect.googleapis.com/v1/userinfo",
        "scope": "openid email profile",
    },
}


@dataclass
class OAuthProfileResult:
    success: bool
    email: str | None = None
    name: str = ""
    message: str = ""


class OAuthGateway:
    """Authorization-code flow against GitHub or Google."""

    def __init__(self, provider: str) -> None:
        if provider not in OAUTH_ENDPOINTS:
            raise ValueError("Unknown provider!")
        self.provider = provider
        self.endpoints = OAUTH_ENDPOINTS[provider]
        credentials = settings.OAUTH_PROVIDERS.get(provider, {})
        self.client_id = credentials.get("client_id", "")
        self.client_secret = credentials.get("client_secret", "")

    def authorize_url(self, redirect_uri: str, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "scope": self.endpoints["scope"],
            "state": state,
            "response_type": "code",
        }
        return f"{self.endpoints['authorize']}?{urlencode(params)}"

    def fetch_profile(self, code: str, redirect_uri: str) -> OAuthProfileResult:
        payload = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "redirect_uri": redirect_uri,
            "grant_type": "authorization_code",
        }
        headers = {"Accept": "application/json"}

        try:
            token_response = requests.post(self.endpoints["token"], data=payload, headers=headers, timeout=10)
            token_json = token_response.json()
            access_token = token_json.get("access_token")
            if token_response.status_code != 200 or not access_token:
                error_message = token_json.get("error_description") or token_json.get("error") or "Token exchange failed"
                return OAuthProfileResult(success=False, message=str(error_message))

            auth_headers = {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}
            profile = requests.get(self.endpoints["profile"], headers=auth_headers, timeout=10).json()
            email = profile.get("email")
            if not email and "emails" in self.endpoints:
                emails = requests.get(self.endpoints["emails"], headers=auth_headers, timeout=10).json()
                primary = next((item for item in emails if item.get("primary") and item.get("verified")), None)
                email = primary.get("email") if primary else None
            if not email:
                return OAuthProfileResult(success=False, message="The provider did not return an email address.")
            name = profile.get("name") or profile.get("login") or ""
            return OAuthProfileResult(success=True, email=email.lower(), name=name)

        except requests.exceptions.RequestException as e:
            logger.warning("OAuth request to %s failed: %s", self.provider, e)
            return OAuthProfileResult(success=False, message=f"Error connecting to {self.provider}: {e}")


# Profiles

class ProfileService:
    """Operations on the viewing profiles of one user."""

    def __init__(self, user: models.User) -> None:
        self.user = user

    def create(self, name: str, image: str = "") -> models.Profile:
        profile = models.Profile.objects.create(user=self.user, name=name, image=image)
        log_backend_action("profil_created", {"userId": self.user.pk, "profilId": profile.pk}, "info")
        return profile

    @transaction.atomic
    def use(self, profile: models.Profile) -> models.Profile:
        if profile.user_id != self.user.pk:
            raise ValueError("Invalid fields!")
        self.user.profiles.update(in_use=False)
        profile.in_use = True
        profile.save(update_fields=["in_use"])
        log_backend_action("profil_use", {"userId": self.user.pk, "profilId": profile.pk}, "info")
        return profile


# Library

class LibraryService:
    """Favorites, watchlist, playback position and views of the active profile."""

    def __init__(self, user: models.User, profile: models.Profile) -> None:
        self.user = user
        self.profile = profile

    def watch_time_map(self) -> dict[int, float]:
        return watch_time_map(self.user, self.profile)

    def favorites(self) -> QuerySet[models.Movie]:
        return self.profile.favorites.prefetch_related("actors").order_by("created_at")

    def add_favorite(self, movie: models.Movie) -> list[int]:
        self.profile.favorites.add(movie)
        log_backend_action("favorite_add", {"profilId": self.profile.pk, "movieId": movie.pk}, "info")
        return self.profile.favorite_ids

    def remove_favorite(self, movie: models.Movie) -> list[int]:
        self.profile.favorites.remove(movie)
        log_backend_action("favorite_remove", {"profilId": self.profile.pk, "movieId": movie.pk}, "info")
        return self.profile.favorite_ids

    def watchlist(self) -> list[models.Movie]:
        entries = self.profile.watchlist.select_related("movie").order_by("-created_at")
        return [entry.movie for entry in entries]

    @transaction.atomic
    def add_to_watchlist(self, movie: models.Movie) -> dict[str, bool]:
        details = {"userId": self.user.pk, "profilId": self.profile.pk, "movieId": movie.pk}
        existing = models.Watchlist.objects.select_for_update().filter(profile=self.profile, movie=movie).first()
        if existing:
            existing.created_at = timezone.now()
            existing.save(update_fields=["created_at"])
            log_backend_action("watch_add_to_watchlist_update_timestamp", details, "info")
            return {"success": True, "updated": True}

        models.Watchlist.objects.create(user=self.user, profile=self.profile, movie=movie)
        log_backend_action("watch_add_to_watchlist_success", details, "info")
        return {"success": True, "created": True}

    def remove_from_watchlist(self, movie: models.Movie) -> int:
        deleted, _ = models.Watchlist.objects.filter(profile=self.profile, movie=movie).delete()
        return deleted

    def update_watch_time(self, movie: models.Movie, seconds: float) -> models.MovieWatchTime:
        watch_time, _created = models.MovieWatchTime.objects.update_or_create(
            user=self.user,
            profile=self.profile,
            movie=movie,
            defaults={"time": seconds},
        )
        return watch_time

    @transaction.atomic
    def add_movie_view(self, movie: models.Movie) -> bool:
        """Record a view unless one exists for today; returns whether one was created."""

        already_viewed = models.MovieView.objects.filter(
            user=self.user,
            profile=self.profile,
            movie=movie,
            created_at__date=timezone.localdate(),
        ).exists()
        if already_viewed:
            return False
        models.MovieView.objects.create(user=self.user, profile=self.profile, movie=movie)
        return True


def watch_time_map(user: models.User, profile: models.Profile) -> dict[int, float]:
    rows = models.MovieWatchTime.objects.filter(user=user, profile=profile).values_list("movie_id", "time")
    return dict(rows)


# Playlists

class PlaylistService:
    def __init__(self, user: models.User, profile: models.Profile) -> None:
        self.user = user
        self.profile = profile

    def playlists(self) -> QuerySet[models.Playlist]:
        return self.profile.playlists.filter(user=self.user).prefetch_related("entries__movie").order_by("created_at")

    def create(self, title: str) -> models.Playlist:
        playlist = models.Playlist.objects.create(user=self.user, profile=self.profile, title=title)
        log_backend_action("playlist_created", {"profilId": self.profile.pk, "playlistId": playlist.pk}, "info")
        return playlist

    @transaction.atomic
    def add_entry(self, playlist: models.Playlist, movie: models.Movie) -> models.PlaylistEntry:
        order = playlist.entries.count() + 1
        return models.PlaylistEntry.objects.create(playlist=playlist, movie=movie, order=order)

    def remove_entry(self, playlist: models.Playlist, movie: models.Movie) -> int:
        deleted, _ = playlist.entries.filter(movie=movie).delete()
        return deleted

    @transaction.atomic
    def update(
        self,
        playlist: models.Playlist,
        title: str | None = None,
        movies_to_remove: Iterable[int] = (),
        movies_to_update: Iterable[int] = (),
    ) -> models.Playlist:
        if title:
            playlist.title = title
            playlist.save(update_fields=["title"])
        removed = list(movies_to_remove)
        if removed:
            playlist.entries.filter(movie_id__in=removed).delete()
        for index, movie_id in enumerate(movies_to_update):
            playlist.entries.filter(movie_id=movie_id).update(order=index + 1)
        log_backend_action("playlist_updated", {"playlistId": playlist.pk}, "info")
        return playlist


# Catalog

class CatalogService:
    """Read and maintain catalog titles of one type (or of all types)."""

    def __init__(self, title_type: str | None = None) -> None:
        self.title_type = title_type

    def queryset(self) -> QuerySet[models.Movie]:
        queryset = models.Movie.objects.prefetch_related("actors")
        if self.title_type:
            queryset = queryset.filter(type=self.title_type)
        return queryset

    def latest(self, limit: int = 20, queryset: QuerySet[models.Movie] | None = None) -> list[models.Movie]:
        """First ``limit`` titles by creation, newest first."""

        queryset = self.queryset() if queryset is None else queryset
        titles = list(queryset.order_by("created_at", "pk")[:limit])
        titles.reverse()
        return titles

    def newest(self, limit: int = 4) -> list[models.Movie]:
        return list(self.queryset().order_by("-created_at", "-pk")[:limit])

    def random_titles(self, count: int | None = None) -> list[models.Movie]:
        maximum = settings.RANDOM_TITLES_MAX
        count = maximum if count is None else max(0, min(count, maximum))
        ids = list(self.queryset().values_list("pk", flat=True))
        random.shuffle(ids)
        selected = ids[:count]
        by_id = self.queryset().in_bulk(selected)
        return [by_id[pk] for pk in selected if pk in by_id]

    def random_title(self) -> models.Movie | None:
        queryset = self.queryset().order_by("pk")
        total = queryset.count()
        if total == 0:
            return None
        return queryset[random.randrange(total)]

    def by_actor(self, actor_name: str) -> list[models.Movie]:
        return self.latest(queryset=self.queryset().filter(actors__name=actor_name).distinct())

    def actors(self) -> QuerySet[models.Actor]:
        queryset = models.Actor.objects.all()
        if self.title_type:
            queryset = queryset.filter(movies__type=self.title_type)
        return queryset.distinct().order_by("name")

    def actor_names(self, start: int = 0, limit: int = 5) -> list[str]:
        start = max(start, 0)
        return list(self.actors().values_list("name", flat=True)[start:start + max(limit, 0)])

    def actor_count(self) -> int:
        return self.actors().count()

    def search(self, term: str) -> QuerySet[models.Movie]:
        return (
            self.queryset()
            .filter(Q(title__icontains=term) | Q(description__icontains=term) | Q(actors__name__icontains=term))
            .distinct()
            .order_by("created_at")
        )

    def with_view_counts(self) -> QuerySet[models.Movie]:
        return self.queryset().annotate(views_total=Count("views")).order_by("-created_at")

    @staticmethod
    def resolve_actors(names: Iterable[str]) -> list[models.Actor]:
        actors: list[models.Actor] = []
        seen: set[str] = set()
        for raw in names:
            name = raw.strip()
            if not name or name in seen:
                continue
            seen.add(name)
            actor, _created = models.Actor.objects.get_or_create(name=name)
            actors.append(actor)
        return actors

    @transaction.atomic
    def create_title(self, values: dict[str, Any]) -> models.Movie:
        values = dict(values)
        actor_names = values.pop("actors", [])
        if self.title_type and "type" not in values:
            values["type"] = self.title_type
        movie = models.Movie.objects.create(**values)
        movie.actors.set(self.resolve_actors(actor_names))
        log_backend_action("movie_added", {"movieId": movie.pk, "type": movie.type}, "info")
        return movie

    @transaction.atomic
    def update_title(self, movie: models.Movie, values: dict[str, Any]) -> models.Movie:
        values = dict(values)
        actor_names = values.pop("actors", None)
        for field_name, value in values.items():
            setattr(movie, field_name, value)
        movie.save()
        if actor_names is not None:
            previous = set(movie.actors.values_list("pk", flat=True))
            movie.actors.set(self.resolve_actors(actor_names))
            delete_orphan_actors(previous)
        log_backend_action("movie_updated", {"movieId": movie.pk}, "info")
        return movie

    @transaction.atomic
    def delete_title(self, movie: models.Movie) -> None:
        movie_id = movie.pk
        movie.delete()
        log_backend_action("movie_deleted", {"movieId": movie_id}, "info")

    @staticmethod
    def actor_overview() -> QuerySet[models.Actor]:
        return models.Actor.objects.annotate(
            movie_count=Count("movies", filter=Q(movies__type=models.Movie.Type.MOVIE), distinct=True),
            series_count=Count("movies", filter=Q(movies__type=models.Movie.Type.SERIE), distinct=True),
            views=Count("movies__views", distinct=True),
        ).order_by("name")

    @staticmethod
    def create_actor(name: str) -> models.Actor:
        name = (name or "").strip()
        if not name:
            raise ValueError("Name required")
        if models.Actor.objects.filter(name=name).exists():
            raise ValueError("Actor already exists")
        return models.Actor.objects.create(name=name)

    @staticmethod
    def delete_actor(actor: models.Actor) -> None:
        if actor.movies.exists():
            raise ValueError("Actor is still linked.")
        actor.delete()


def delete_orphan_actors(actor_ids: Iterable[int]) -> int:
    """Delete actors from ``actor_ids`` that no longer appear in any title."""

    deleted, _ = models.Actor.objects.filter(pk__in=list(actor_ids), movies__isnull=True).delete()
    return deleted


# Statistics

@dataclass
class CatalogCounts:
    movies: Counter = field(default_factory=Counter)
    series: Counter = field(default_factory=Counter)

    def add(self, title_type: str, key: str) -> None:
        if title_type == models.Movie.Type.MOVIE:
            self.movies[key] += 1
        elif title_type == models.Movie.Type.SERIE:
            self.series[key] += 1

    def keys(self) -> list[str]:
        return sorted(set(self.movies) | set(self.series))


class StatisticsService:
    """Aggregates for the admin dashboard."""

    @staticmethod
    def admin_overview() -> dict[str, Any]:
        per_day = CatalogCounts()
        per_month = CatalogCounts()
        for title_type, created_at in models.Movie.objects.values_list("type", "created_at"):
            local = timezone.localtime(created_at)
            per_day.add(title_type, local.strftime("%Y-%m-%d"))
            per_month.add(title_type, local.strftime("%Y-%m"))

        timeline = []
        movie_sum = series_sum = 0
        for day in per_day.keys():
            movie_sum += per_day.movies[day]
            series_sum += per_day.series[day]
            timeline.append({"day": day, "movies": movie_sum, "series": series_sum})

        monthly = [
            {"month": month, "movies": per_month.movies[month], "series": per_month.series[month]}
            for month in per_month.keys()
        ]
        return {
            "timeline": timeline,
            "total_views": models.MovieView.objects.count(),
            "monthly": monthly,
        }
