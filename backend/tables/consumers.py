from channels.generic.websocket import AsyncWebsocketConsumer
from channels.db import database_sync_to_async
import json
import logging

from core_backend.infrastructure.notifications import session_group_name
from .models import TableSession

logger = logging.getLogger(__name__)


class SessionConsumer(AsyncWebsocketConsumer):
    """
    Pushes change events for one table session. Events carry no state: a
    client that receives ``session_changed`` reloads the session over HTTP.
    """

    async def connect(self):
        self.session_id = str(self.scope["url_route"]["kwargs"]["session_id"])

        if not await self.session_exists():
            logger.warning(f"SessionConsumer: session {self.session_id} does not exist. Closing connection.")
            await self.close()
            return

        self.group_name = session_group_name(self.session_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        logger.info(f"SessionConsumer: joined {self.group_name}")

    async def disconnect(self, close_code):
        group_name = getattr(self, "group_name", None)
        if group_name:
            await self.channel_layer.group_discard(group_name, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        """Only ``ping`` is understood; clients never write through the socket."""
        try:
            data = json.loads(text_data or "{}")
        except json.JSONDecodeError:
            await self.send_error("Invalid JSON")
            return

        if data.get("type") == "ping":
            await self.send(text_data=json.dumps({"type": "pong"}))
        else:
            await self.send_error(f"Unknown message type: {data.get('type')}")

    async def send_error(self, message):
        await self.send(text_data=json.dumps({"type": "error", "message": message}))

    @database_sync_to_async
    def session_exists(self):
        return TableSession.objects.filter(pk=self.session_id).exists()

    # --- Group handlers ---

    async def session_changed(self, event):
        await self.send(
            text_data=json.dumps(
                {"type": "session_changed", "session_id": event["session_id"], "source": event.get("source")}
            )
        )

    async def session_notification(self, event):
        await self.send(
            text_data=json.dumps(
                {
                    "type": "notification",
                    "level": event["level"],
                    "message": event["message"],
                    "data": event.get("data", {}),
                }
            )
        )
