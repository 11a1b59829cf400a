from django.db.models.signals import post_save
from django.dispatch import receiver

from tables.signals import emit_session_changed
from .models import SessionOrder, SessionOrderItem


@receiver(post_save, sender=SessionOrder)
def session_order_saved(sender, instance, **kwargs):
    emit_session_changed(sender, instance.session_id, "order")


@receiver(post_save, sender=SessionOrderItem)
def session_order_item_saved(sender, instance, **kwargs):
    """Item edits invalidate any live bill preview for the session."""
    emit_session_changed(sender, instance.order.session_id, "order_item")
