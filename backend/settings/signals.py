"""
Signal handlers for the settings app.
Keeps the venue settings cache in step with VenueSettings edits.
"""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import VenueSettings


@receiver(post_save, sender=VenueSettings)
@receiver(post_delete, sender=VenueSettings)
def invalidate_venue_settings(sender, instance, **kwargs):
    from .config import venue_settings

    venue_settings.invalidate(instance.venue_id)
