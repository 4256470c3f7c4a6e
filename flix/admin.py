"""Admin registrations for flix models."""
from __future__ import annotations

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from . import models


@admin.register(models.User)
class UserAdmin(DjangoUserAdmin):
    list_display = ("email", "name", "role", "is_blocked", "email_verified", "created_at")
    list_filter = ("role", "is_blocked", "is_two_factor_enabled", "is_staff")
    search_fields = ("email", "name")
    ordering = ("-created_at",)
    fieldsets = DjangoUserAdmin.fieldsets + (
        (
            "Flix",
            {"fields": ("name", "role", "email_verified", "is_two_factor_enabled", "is_blocked", "oauth_provider")},
        ),
    )


class PlaylistEntryInline(admin.TabularInline):
    model = models.PlaylistEntry
    extra = 0
    autocomplete_fields = ("movie",)


@admin.register(models.Movie)
class MovieAdmin(admin.ModelAdmin):
    list_display = ("title", "type", "genre", "duration", "created_at")
    list_filter = ("type", "genre")
    search_fields = ("title", "description", "actors__name")
    filter_horizontal = ("actors",)


@admin.register(models.Actor)
class ActorAdmin(admin.ModelAdmin):
    list_display = ("name",)
    search_fields = ("name",)


@admin.register(models.Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("name", "user", "in_use", "created_at")
    list_filter = ("in_use",)
    search_fields = ("name", "user__email")
    filter_horizontal = ("favorites",)


@admin.register(models.ProfileImage)
class ProfileImageAdmin(admin.ModelAdmin):
    list_display = ("url",)


@admin.register(models.Playlist)
class PlaylistAdmin(admin.ModelAdmin):
    list_display = ("title", "profile", "user", "created_at")
    search_fields = ("title", "user__email")
    inlines = [PlaylistEntryInline]


@admin.register(models.Watchlist)
class WatchlistAdmin(admin.ModelAdmin):
    list_display = ("profile", "movie", "created_at")
    search_fields = ("movie__title", "user__email")


@admin.register(models.MovieView)
class MovieViewAdmin(admin.ModelAdmin):
    list_display = ("movie", "profile", "user", "created_at")
    list_filter = ("created_at",)
    search_fields = ("movie__title", "user__email")


@admin.register(models.MovieWatchTime)
class MovieWatchTimeAdmin(admin.ModelAdmin):
    list_display = ("movie", "profile", "time", "updated_at")
    search_fields = ("movie__title", "user__email")


@admin.register(models.VerificationToken, models.PasswordResetToken, models.TwoFactorToken)
class EmailTokenAdmin(admin.ModelAdmin):
    list_display = ("email", "expires")
    search_fields = ("email",)


@admin.register(models.TwoFactorConfirmation)
class TwoFactorConfirmationAdmin(admin.ModelAdmin):
    list_display = ("user",)
