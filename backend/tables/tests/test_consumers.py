"""
WebSocket tests for the table session change feed.
"""
import uuid

import pytest
from channels.db import database_sync_to_async
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator

from core_backend.asgi import application
from core_backend.infrastructure.notifications import session_group_name
from tables.models import TableSession


@database_sync_to_async
def create_session():
    return TableSession.objects.create(venue_id=uuid.uuid4(), guest_name='Budi', guest_count=2)


@pytest.mark.django_db(transaction=True)
@pytest.mark.asyncio
class TestSessionConsumer:
    async def test_connects_to_existing_session(self):
        session = await create_session()
        communicator = WebsocketCommunicator(application, f"/ws/table-sessions/{session.id}/")

        connected, _ = await communicator.connect()

        assert connected
        await communicator.send_json_to({'type': 'ping'})
        assert await communicator.receive_json_from() == {'type': 'pong'}
        await communicator.disconnect()

    async def test_rejects_unknown_session(self):
        communicator = WebsocketCommunicator(
            application, "/ws/table-sessions/6f1c4e4b-6d8a-4b0e-9a59-5a8e2d6a7f10/"
        )

        connected, _ = await communicator.connect()

        assert not connected

    async def test_forwards_session_changes(self):
        session = await create_session()
        communicator = WebsocketCommunicator(application, f"/ws/table-sessions/{session.id}/")
        await communicator.connect()

        await get_channel_layer().group_send(
            session_group_name(session.id),
            {'type': 'session_changed', 'session_id': str(session.id), 'source': 'payment'},
        )

        message = await communicator.receive_json_from()
        assert message == {'type': 'session_changed', 'session_id': str(session.id), 'source': 'payment'}
        await communicator.disconnect()

    async def test_forwards_notifications(self):
        session = await create_session()
        communicator = WebsocketCommunicator(application, f"/ws/table-sessions/{session.id}/")
        await communicator.connect()

        await get_channel_layer().group_send(
            session_group_name(session.id),
            {'type': 'session_notification', 'level': 'success', 'message': 'Session closed', 'data': {}},
        )

        message = await communicator.receive_json_from()
        assert message['type'] == 'notification'
        assert message['message'] == 'Session closed'
        await communicator.disconnect()

    async def test_unknown_message_type(self):
        session = await create_session()
        communicator = WebsocketCommunicator(application, f"/ws/table-sessions/{session.id}/")
        await communicator.connect()

        await communicator.send_json_to({'type': 'update_item'})

        message = await communicator.receive_json_from()
        assert message['type'] == 'error'
        await communicator.disconnect()
