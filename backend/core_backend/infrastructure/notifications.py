"""
Notification sink for success/error surfacing.

Messages are logged and, when a channel layer is configured, broadcast to the
session's WebSocket group so open consoles can show a toast. Delivery is never
part of the billing correctness contract: failures here are logged and dropped.
"""

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

SUCCESS = "success"
ERROR = "error"
INFO = "info"


def session_group_name(session_id):
    return f"table_session_{session_id}"


def broadcast(group_name, payload):
    """Send a payload to a channel group. Returns False if nothing was sent."""
    channel_layer = get_channel_layer()
    if not channel_layer:
        logger.warning(f"Channel layer not available. Cannot broadcast to {group_name}.")
        return False

    try:
        async_to_sync(channel_layer.group_send)(group_name, payload)
    except Exception as e:
        logger.warning(f"Broadcast to {group_name} failed: {e}")
        return False
    return True


def notify(session_id, level, message, **data):
    """Surface a human-readable message for a session."""
    log = logger.error if level == ERROR else logger.info
    log(f"[session {session_id}] {message}")

    payload = {
        "type": "session_notification",
        "level": level,
        "message": message,
        "data": {k: str(v) for k, v in data.items()},
    }
    return broadcast(session_group_name(session_id), payload)
