"""Unit tests for the WebSocket connection manager and restore broadcasts."""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from draftline.websocket.handlers import (
    DocumentRestoreBroadcaster,
    broadcast_project_event,
    build_event,
    get_project_room,
    notify_project,
)
from draftline.websocket.manager import ConnectionManager, MessageType


def mock_websocket() -> MagicMock:
    websocket = MagicMock()
    websocket.accept = AsyncMock()
    websocket.send_json = AsyncMock()
    websocket.close = AsyncMock()
    return websocket


@pytest.fixture
def local_manager():
    """Connection manager with Redis reported as disconnected."""
    with patch("draftline.websocket.manager.redis_service") as redis:
        redis.is_connected = False
        yield ConnectionManager()


class TestMessageType:
    """Tests for MessageType enum."""

    def test_message_type_values(self):
        assert MessageType.DOCUMENT_RESTORED == "document_restored"
        assert MessageType.SNAPSHOT_CREATED == "snapshot_created"
        assert MessageType.BRANCH_CHECKED_OUT == "branch_checked_out"
        assert MessageType.PING == "ping"


class TestConnectionManager:
    """Tests for room membership and delivery."""

    @pytest.mark.asyncio
    async def test_connect_sends_welcome(self, local_manager):
        websocket = mock_websocket()

        connection = await local_manager.connect(websocket, "project:1")

        assert connection is not None
        websocket.accept.assert_awaited_once()
        welcome = websocket.send_json.call_args[0][0]
        assert welcome["type"] == "connected"
        assert welcome["data"]["room_id"] == "project:1"
        assert local_manager.get_room_count("project:1") == 1

    @pytest.mark.asyncio
    async def test_room_limit(self, local_manager):
        websocket = mock_websocket()
        with patch("draftline.websocket.manager.settings") as settings:
            settings.ws_max_connections_per_room = 0
            connection = await local_manager.connect(websocket, "project:1")

        assert connection is None
        websocket.close.assert_awaited_once()
        websocket.accept.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disconnect_removes_empty_room(self, local_manager):
        websocket = mock_websocket()
        await local_manager.connect(websocket, "project:1")

        await local_manager.disconnect(websocket)

        assert local_manager.total_connections == 0
        assert local_manager.total_rooms == 0

    @pytest.mark.asyncio
    async def test_broadcast_reaches_room_only(self, local_manager):
        inside, outside = mock_websocket(), mock_websocket()
        await local_manager.connect(inside, "project:1")
        await local_manager.connect(outside, "project:2")
        inside.send_json.reset_mock()
        outside.send_json.reset_mock()

        sent = await local_manager.broadcast_to_room("project:1", {"type": "x"})

        assert sent == 1
        inside.send_json.assert_awaited_once_with({"type": "x"})
        outside.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ping_answered_with_pong(self, local_manager):
        websocket = mock_websocket()
        await local_manager.connect(websocket, "project:1")

        await local_manager.handle_message(websocket, {"type": "ping"})

        websocket.send_json.assert_awaited_with({"type": "pong"})

    @pytest.mark.asyncio
    async def test_redis_publish_when_connected(self):
        with patch("draftline.websocket.manager.redis_service") as redis:
            redis.is_connected = True
            redis.publish = AsyncMock()
            mgr = ConnectionManager()

            await mgr.broadcast_to_room("project:1", {"type": "x"})

        redis.publish.assert_awaited_once_with(
            "ws:broadcast", {"room_id": "project:1", "message": {"type": "x"}}
        )


class TestEvents:
    """Tests for event envelopes and restore notifications."""

    def test_project_room(self):
        project_id = uuid4()
        assert get_project_room(project_id) == f"project:{project_id}"

    def test_build_event_adds_timestamp(self):
        event = build_event(MessageType.SNAPSHOT_CREATED, {"snapshot_id": "s"})

        assert event["type"] == "snapshot_created"
        assert event["data"]["snapshot_id"] == "s"
        assert "timestamp" in event["data"]

    @pytest.mark.asyncio
    async def test_broadcast_project_event(self, local_manager):
        websocket = mock_websocket()
        project_id = uuid4()
        await local_manager.connect(websocket, get_project_room(project_id))

        await broadcast_project_event(
            project_id, MessageType.BRANCH_CREATED, {"branch_id": "b"}, mgr=local_manager
        )

        event = websocket.send_json.call_args[0][0]
        assert event["type"] == "branch_created"
        assert event["data"]["project_id"] == str(project_id)

    @pytest.mark.asyncio
    async def test_deferred_broadcaster_waits_for_flush(self, local_manager):
        websocket = mock_websocket()
        project_id, document_id = uuid4(), uuid4()
        await local_manager.connect(websocket, get_project_room(project_id))
        websocket.send_json.reset_mock()
        broadcaster = DocumentRestoreBroadcaster(local_manager, deferred=True)

        await broadcaster.document_restored(project_id, document_id)
        assert broadcaster.pending == [(project_id, document_id)]
        websocket.send_json.assert_not_awaited()

        assert await broadcaster.flush() == 1
        event = websocket.send_json.call_args[0][0]
        assert event["type"] == "document_restored"
        assert event["data"]["document_id"] == str(document_id)
        assert broadcaster.pending == []

    @pytest.mark.asyncio
    async def test_broadcast_failure_is_swallowed(self):
        mgr = MagicMock()
        mgr.broadcast_to_room = AsyncMock(side_effect=RuntimeError("redis down"))
        broadcaster = DocumentRestoreBroadcaster(mgr)

        await broadcaster.document_restored(uuid4(), uuid4())

        mgr.broadcast_to_room.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_notify_project_swallows_delivery_failure(self):
        mgr = MagicMock()
        mgr.broadcast_to_room = AsyncMock(side_effect=ConnectionError("redis down"))

        sent = await notify_project(uuid4(), MessageType.SNAPSHOT_CREATED, {"snapshot_id": "s"}, mgr=mgr)

        assert sent == 0
        mgr.broadcast_to_room.assert_awaited_once()
