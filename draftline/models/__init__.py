"""SQLAlchemy ORM models package."""

from .branch import ProjectBranch
from .document import (
    CAPTURED_FIELDS,
    PAPER_DIMENSIONS,
    Document,
    DocumentType,
    PaperSize,
    ParagraphAlignment,
)
from .project import Project
from .snapshot import ProjectSnapshot
from .snapshot_document import SnapshotDocument

__all__ = [
    "CAPTURED_FIELDS",
    "PAPER_DIMENSIONS",
    "Document",
    "DocumentType",
    "PaperSize",
    "ParagraphAlignment",
    "Project",
    "ProjectBranch",
    "ProjectSnapshot",
    "SnapshotDocument",
]
