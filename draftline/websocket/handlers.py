"""Broadcast helpers for document and version control events."""

import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from .manager import ConnectionManager, MessageType, manager

logger = logging.getLogger(__name__)


def get_project_room(project_id: UUID | str) -> str:
    """
    Get the room ID for a project.

    Args:
        project_id: The project's UUID

    Returns:
        str: Room ID in format 'project:{uuid}'
    """
    return f"project:{project_id}"


def build_event(message_type: MessageType, data: dict[str, Any]) -> dict[str, Any]:
    """Wrap event data in the message envelope sent to clients."""
    payload = dict(data)
    payload.setdefault("timestamp", datetime.utcnow().isoformat())
    return {"type": message_type.value, "data": payload}


async def broadcast_project_event(
    project_id: UUID,
    message_type: MessageType,
    data: dict[str, Any],
    mgr: Optional[ConnectionManager] = None,
) -> int:
    """
    Broadcast an event to everyone viewing a project.

    Returns:
        int: Number of connections addressed
    """
    mgr = mgr or manager
    data = {"project_id": str(project_id), **data}
    return await mgr.broadcast_to_room(get_project_room(project_id), build_event(message_type, data))


async def notify_project(
    project_id: UUID,
    message_type: MessageType,
    data: dict[str, Any],
    mgr: Optional[ConnectionManager] = None,
) -> int:
    """
    Broadcast an event after the change it describes was committed.

    Delivery failures are logged and swallowed so a committed change is
    still reported as successful to the caller.

    Returns:
        int: Number of connections addressed (0 on failure)
    """
    try:
        return await broadcast_project_event(project_id, message_type, data, mgr=mgr)
    except Exception as e:
        logger.warning(f"Failed to broadcast {message_type.value} for project {project_id}: {e}")
        return 0


class DocumentRestoreBroadcaster:
    """
    Change notification channel for restores.

    Fire and forget: a failing broadcast is logged and never propagates to
    the restore that triggered it. With ``deferred=True`` notifications are
    queued until ``flush()``, so request handlers can commit first and
    clients re-fetch committed data.
    """

    def __init__(self, mgr: Optional[ConnectionManager] = None, deferred: bool = False):
        self.mgr = mgr or manager
        self.deferred = deferred
        self._pending: list[tuple[UUID, UUID]] = []

    @property
    def pending(self) -> list[tuple[UUID, UUID]]:
        return list(self._pending)

    async def document_restored(self, project_id: UUID, document_id: UUID) -> None:
        """Tell open editors that ``document_id`` was overwritten by a restore."""
        if self.deferred:
            self._pending.append((project_id, document_id))
            return
        await self._send(project_id, document_id)

    async def flush(self) -> int:
        """Send every queued notification; returns how many were sent."""
        pending, self._pending = self._pending, []
        for project_id, document_id in pending:
            await self._send(project_id, document_id)
        return len(pending)

    async def _send(self, project_id: UUID, document_id: UUID) -> None:
        await notify_project(
            project_id,
            MessageType.DOCUMENT_RESTORED,
            {"document_id": str(document_id)},
            mgr=self.mgr,
        )
