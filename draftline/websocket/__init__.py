"""WebSocket module for live document refresh."""

from .handlers import (
    DocumentRestoreBroadcaster,
    broadcast_project_event,
    build_event,
    get_project_room,
    notify_project,
)
from .manager import (
    ConnectionManager,
    MessageType,
    WebSocketConnection,
    manager,
)

__all__ = [
    # Manager
    "ConnectionManager",
    "MessageType",
    "WebSocketConnection",
    "manager",
    # Handlers
    "DocumentRestoreBroadcaster",
    "broadcast_project_event",
    "notify_project",
    "build_event",
    "get_project_room",
]
