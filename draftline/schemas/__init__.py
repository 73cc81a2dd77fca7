"""Pydantic schemas for request/response validation."""

from .document import (
    DocumentCreate,
    DocumentLayout,
    DocumentListItem,
    DocumentResponse,
    DocumentUpdate,
)
from .project import ProjectCreate, ProjectResponse
from .version import (
    BranchCreate,
    BranchResponse,
    HistoryResponse,
    RestoreResponse,
    SnapshotCreate,
    SnapshotDetailResponse,
    SnapshotDocumentResponse,
    SnapshotResponse,
)

__all__ = [
    "DocumentCreate",
    "DocumentLayout",
    "DocumentListItem",
    "DocumentResponse",
    "DocumentUpdate",
    "ProjectCreate",
    "ProjectResponse",
    "BranchCreate",
    "BranchResponse",
    "HistoryResponse",
    "RestoreResponse",
    "SnapshotCreate",
    "SnapshotDetailResponse",
    "SnapshotDocumentResponse",
    "SnapshotResponse",
]
