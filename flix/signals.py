"""Signal handlers for keeping media files and actors in sync with titles."""
from __future__ import annotations
import logging
from django.db.models.signals import post_delete, pre_delete
from django.dispatch import receiver
from . import models
from .services import delete_orphan_actors

logger = logging.getLogger(__name__)


@receiver(pre_delete, sender=models.Movie)
def remember_movie_actors(sender, instance: models.Movie, **kwargs) -> None:
    """Keep the linked actor ids; the relation rows are gone after deletion."""

    instance._linked_actor_ids = list(instance.actors.values_list("pk", flat=True))


@receiver(post_delete, sender=models.Movie)
def remove_movie_media(sender, instance: models.Movie, **kwargs) -> None:
    """Delete the video file and the actors no longer linked to any title."""

    video_file = instance.find_video_file()
    if video_file is not None:
        try:
            video_file.unlink()
        except OSError:
            logger.exception("Could not delete video file %s", video_file)
    delete_orphan_actors(getattr(instance, "_linked_actor_ids", []))
