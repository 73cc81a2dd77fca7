"""FastAPI dependencies wiring services to their collaborators."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_db
from .services.minio_service import get_minio_service
from .services.pagination_service import estimate_page_count
from .services.preview_service import SnapshotPreviewRenderer
from .services.snapshot_service import SnapshotService
from .services.version_history_service import VersionHistoryService
from .websocket.handlers import DocumentRestoreBroadcaster


def get_restore_broadcaster() -> DocumentRestoreBroadcaster:
    """Per-request broadcaster; handlers flush it after committing."""
    return DocumentRestoreBroadcaster(deferred=True)


def get_snapshot_service(
    db: AsyncSession = Depends(get_db),
    broadcaster: DocumentRestoreBroadcaster = Depends(get_restore_broadcaster),
) -> SnapshotService:
    """Snapshot service with MinIO previews and WebSocket restore notifications."""
    return SnapshotService(
        db,
        page_estimator=estimate_page_count,
        preview_renderer=SnapshotPreviewRenderer(get_minio_service()),
        notifier=broadcaster,
    )


def get_history_service(
    db: AsyncSession = Depends(get_db),
    snapshot_service: SnapshotService = Depends(get_snapshot_service),
) -> VersionHistoryService:
    """History orchestrator sharing the request's snapshot service."""
    return VersionHistoryService(db, snapshot_service)
