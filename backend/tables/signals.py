"""
Change notifications for table sessions.

Any write to a session or its orders, items, invoices or payments sends
``session_changed``. Once the surrounding transaction commits, the change is
broadcast to the session's channel group and dispatched to in-process
subscriptions, which reload the whole session rather than patching it.
"""

from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import Signal, receiver
import logging

from core_backend.infrastructure import notifications
from .models import TableSession

logger = logging.getLogger(__name__)

# Sent with: session_id, source (the model label that changed)
session_changed = Signal()


def emit_session_changed(sender, session_id, source):
    if session_id is None:
        return
    session_changed.send(sender=sender, session_id=session_id, source=source)


@receiver(post_save, sender=TableSession)
def table_session_saved(sender, instance, **kwargs):
    emit_session_changed(sender, instance.pk, "table_session")


@receiver(session_changed)
def publish_session_change(sender, session_id, source, **kwargs):
    """
    Defers fan-out until commit so listeners never reload uncommitted state.
    """
    transaction.on_commit(lambda: _publish(session_id, source))


def _publish(session_id, source):
    from .subscriptions import dispatch

    notifications.broadcast(
        notifications.session_group_name(session_id),
        {"type": "session_changed", "session_id": str(session_id), "source": source},
    )
    dispatch(session_id, source)
