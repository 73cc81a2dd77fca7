"""WebSocket connection manager for project rooms.

Editors open one WebSocket per project they display and are placed in the
room ``project:<id>``. Restores, new snapshots and branch changes are
broadcast to that room so open views can refresh. With Redis connected,
broadcasts go through pub/sub and every worker delivers to its own
connections.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from fastapi import WebSocket

from ..config import settings
from ..services.redis_service import redis_service

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    """WebSocket message types."""

    # Connection events
    CONNECTED = "connected"
    ERROR = "error"

    # Document events
    DOCUMENT_CREATED = "document_created"
    DOCUMENT_UPDATED = "document_updated"
    DOCUMENT_DELETED = "document_deleted"
    DOCUMENT_RESTORED = "document_restored"

    # Version control events
    SNAPSHOT_CREATED = "snapshot_created"
    SNAPSHOT_RESTORED = "snapshot_restored"
    BRANCH_CREATED = "branch_created"
    BRANCH_CHECKED_OUT = "branch_checked_out"

    # Ping/pong for keepalive
    PING = "ping"
    PONG = "pong"


@dataclass
class WebSocketConnection:
    """A WebSocket connection and the rooms it has joined."""

    websocket: WebSocket
    connected_at: datetime = field(default_factory=datetime.utcnow)
    rooms: set[str] = field(default_factory=set)

    def __hash__(self) -> int:
        """Hash by websocket id for set operations."""
        return id(self.websocket)

    def __eq__(self, other: object) -> bool:
        """Equality check by websocket id."""
        if not isinstance(other, WebSocketConnection):
            return False
        return id(self.websocket) == id(other.websocket)


class ConnectionManager:
    """
    Room-based WebSocket connection manager with optional Redis fan-out.
    """

    _BROADCAST_CHANNEL = "ws:broadcast"

    def __init__(self) -> None:
        """Initialize the connection manager."""
        # Map of room_id -> set of connections
        self._rooms: dict[str, set[WebSocketConnection]] = {}
        # Map of websocket -> connection object
        self._connections: dict[WebSocket, WebSocketConnection] = {}
        self._lock = asyncio.Lock()
        self._redis_initialized = False

    async def initialize_redis(self) -> None:
        """Subscribe to the broadcast channel for cross-worker delivery."""
        if self._redis_initialized:
            return
        await redis_service.subscribe(self._BROADCAST_CHANNEL, self._handle_redis_broadcast)
        self._redis_initialized = True
        logger.info("ConnectionManager Redis pub/sub initialized")

    async def _handle_redis_broadcast(self, data: dict) -> None:
        """Deliver a broadcast received from Redis to local connections."""
        room_id = data.get("room_id")
        message = data.get("message")
        if not room_id or not message:
            return
        await self._send_local(room_id, message)

    @property
    def total_connections(self) -> int:
        """Get total number of active connections."""
        return len(self._connections)

    @property
    def total_rooms(self) -> int:
        """Get total number of active rooms."""
        return len(self._rooms)

    def get_room_count(self, room_id: str) -> int:
        """Get number of connections in a room."""
        return len(self._rooms.get(room_id, set()))

    async def connect(self, websocket: WebSocket, room_id: str) -> Optional[WebSocketConnection]:
        """
        Accept a WebSocket connection and place it in ``room_id``.

        Returns:
            The connection wrapper, or None if the room is full
        """
        if self.get_room_count(room_id) >= settings.ws_max_connections_per_room:
            logger.warning(f"Connection limit reached for room {room_id}")
            await websocket.close(code=4029, reason="Too many connections")
            return None

        await websocket.accept()
        connection = WebSocketConnection(websocket=websocket, rooms={room_id})

        async with self._lock:
            self._connections[websocket] = connection
            self._rooms.setdefault(room_id, set()).add(connection)

        logger.info(
            f"WebSocket connected: room={room_id}, "
            f"total_connections={self.total_connections}"
        )

        await self.send_personal(
            connection,
            {
                "type": MessageType.CONNECTED.value,
                "data": {
                    "room_id": room_id,
                    "connected_at": connection.connected_at.isoformat(),
                },
            },
        )
        return connection

    async def disconnect(self, websocket: WebSocket) -> None:
        """Forget a WebSocket and remove it from every room."""
        async with self._lock:
            connection = self._connections.pop(websocket, None)
            if connection is None:
                return
            for room_id in connection.rooms:
                members = self._rooms.get(room_id)
                if members is None:
                    continue
                members.discard(connection)
                if not members:
                    del self._rooms[room_id]

        logger.info(f"WebSocket disconnected: total_connections={self.total_connections}")

    async def send_personal(self, connection: WebSocketConnection, message: dict[str, Any]) -> bool:
        """
        Send a message to a specific connection.

        Returns:
            bool: True if sent successfully, False otherwise
        """
        try:
            await connection.websocket.send_json(message)
            return True
        except Exception:
            return False

    async def _send_local(self, room_id: str, message: dict[str, Any]) -> int:
        connections = self._rooms.get(room_id, set()).copy()
        if not connections:
            return 0
        results = await asyncio.gather(
            *(self.send_personal(conn, message) for conn in connections),
            return_exceptions=True,
        )
        success_count = sum(1 for r in results if r is True)
        logger.debug(f"Broadcast to room {room_id}: {success_count}/{len(connections)} successful")
        return success_count

    async def broadcast_to_room(self, room_id: str, message: dict[str, Any]) -> int:
        """
        Broadcast a message to all connections in a room (across all workers).

        Returns:
            int: Number of local connections addressed
        """
        if redis_service.is_connected:
            await redis_service.publish(
                self._BROADCAST_CHANNEL,
                {"room_id": room_id, "message": message},
            )
            # Redis delivers back to this worker through _handle_redis_broadcast
            return self.get_room_count(room_id)
        return await self._send_local(room_id, message)

    async def handle_message(self, websocket: WebSocket, message: dict[str, Any]) -> None:
        """Answer keepalive pings; other client messages are ignored."""
        connection = self._connections.get(websocket)
        if connection is None:
            return
        if message.get("type") == MessageType.PING.value:
            await self.send_personal(connection, {"type": MessageType.PONG.value})


# Global connection manager instance
manager = ConnectionManager()
