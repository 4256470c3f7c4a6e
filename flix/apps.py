from __future__ import annotations

from django.apps import AppConfig


class FlixConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "flix"
    verbose_name = "Flix streaming"

    def ready(self) -> None:
        from . import signals
