"""Seed the database with demo data for quick exploration."""
from __future__ import annotations

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from flix.models import Actor, Movie, MovieView, MovieWatchTime, Playlist, PlaylistEntry, Profile, Watchlist
from flix.services import CatalogService


class Command(BaseCommand):
    """Populate the database with opinionated demo data."""

    help = "Create a demo admin, profiles, actors, titles and some viewing activity."

    def handle(self, *args, **options) -> None:  # type: ignore[override]
        with transaction.atomic():
            demo_user = self._ensure_demo_user()
            profiles = self._ensure_profiles(demo_user)
            titles = self._ensure_titles()
            self._ensure_activity(demo_user, profiles["main"], titles)

        self.stdout.write(self.style.SUCCESS("Demo data ready!"))
        self.stdout.write("Log in with e-mail 'demo@example.com' and password 'demo1234'.")

    def _ensure_demo_user(self):
        User = get_user_model()
        user, created = User.objects.get_or_create(
            email="demo@example.com",
            defaults={
                "username": "demo@example.com",
                "name": "Demo Admin",
                "role": User.Role.ADMIN,
                "email_verified": timezone.now(),
                "is_staff": True,
            },
        )
        if created:
            user.set_password("demo1234")
            user.save(update_fields=["password"])
            self.stdout.write("Created demo user.")
        return user

    def _ensure_profiles(self, user) -> dict[str, Profile]:
        profiles: dict[str, Profile] = {}
        for key, name, image in (("main", "Demo", "/profiles/1.png"), ("kids", "Kids", "/profiles/2.png")):
            profile, created = Profile.objects.get_or_create(user=user, name=name, defaults={"image": image})
            if created:
                self.stdout.write(f"Created profile {name}.")
            profiles[key] = profile
        if not user.profiles.filter(in_use=True).exists():
            profiles["main"].in_use = True
            profiles["main"].save(update_fields=["in_use"])
        return profiles

    def _ensure_titles(self) -> dict[str, Movie]:
        titles: dict[str, Movie] = {}
        title_definitions = [
            {
                "key": "night-shift",
                "title": "Night Shift",
                "type": Movie.Type.MOVIE,
                "genre": "Thriller",
                "duration": "1h 52m",
                "actors": ["Ada Brooks", "Milan Hart"],
                "days_ago": 40,
            },
            {
                "key": "paper-moons",
                "title": "Paper Moons",
                "type": Movie.Type.MOVIE,
                "genre": "Drama",
                "duration": "2h 05m",
                "actors": ["Ada Brooks", "Jon Reyes"],
                "days_ago": 12,
            },
            {
                "key": "harbor-lights",
                "title": "Harbor Lights",
                "type": Movie.Type.SERIE,
                "genre": "Crime",
                "duration": "3 seasons",
                "actors": ["Milan Hart", "Sofia Lind"],
                "days_ago": 5,
            },
        ]
        for data in title_definitions:
            movie = Movie.objects.filter(video_url=data["key"]).first()
            if movie is None:
                movie = CatalogService(data["type"]).create_title(
                    {
                        "title": data["title"],
                        "description": f"{data['title']} is a demo title.",
                        "video_url": data["key"],
                        "genre": data["genre"],
                        "duration": data["duration"],
                        "actors": data["actors"],
                        "created_at": timezone.now() - timedelta(days=data["days_ago"]),
                    }
                )
                self.stdout.write(f"Created title {movie.title}.")
            titles[data["key"]] = movie
        self.stdout.write(f"{Actor.objects.count()} actors in the catalog.")
        return titles

    def _ensure_activity(self, user, profile: Profile, titles: dict[str, Movie]) -> None:
        profile.favorites.add(titles["paper-moons"])
        Watchlist.objects.get_or_create(user=user, profile=profile, movie=titles["harbor-lights"])
        MovieWatchTime.objects.update_or_create(
            user=user, profile=profile, movie=titles["night-shift"], defaults={"time": 1325.0}
        )
        if not MovieView.objects.filter(profile=profile).exists():
            for movie in titles.values():
                MovieView.objects.create(user=user, profile=profile, movie=movie)

        playlist, created = Playlist.objects.get_or_create(user=user, profile=profile, title="Weekend")
        if created:
            for order, key in enumerate(("night-shift", "paper-moons"), start=1):
                PlaylistEntry.objects.create(playlist=playlist, movie=titles[key], order=order)
        self.stdout.write("Seeded viewing activity.")
