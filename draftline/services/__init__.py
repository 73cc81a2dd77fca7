"""Business logic services."""

from .minio_service import MinIOService, MinIOServiceError, get_minio_service, minio_service
from .pagination_service import count_words, estimate_page_count, extract_plain_text
from .preview_service import SnapshotPreviewRenderer, get_preview_url, render_preview_svg
from .redis_service import RedisService, redis_service
from .snapshot_service import (
    RestoreResult,
    SnapshotService,
    VersionIntegrityError,
    format_snapshot_label,
)
from .version_history_service import (
    HistoryState,
    VersionHistoryService,
    trigger_type_icon,
    walk_history,
)

__all__ = [
    # Storage
    "MinIOService",
    "MinIOServiceError",
    "get_minio_service",
    "minio_service",
    # Pagination
    "count_words",
    "estimate_page_count",
    "extract_plain_text",
    # Previews
    "SnapshotPreviewRenderer",
    "get_preview_url",
    "render_preview_svg",
    # Redis
    "RedisService",
    "redis_service",
    # Version control
    "RestoreResult",
    "SnapshotService",
    "VersionIntegrityError",
    "format_snapshot_label",
    "HistoryState",
    "VersionHistoryService",
    "trigger_type_icon",
    "walk_history",
]
