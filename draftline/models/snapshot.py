"""ProjectSnapshot SQLAlchemy model: a captured state of a whole project."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID

from ..database import Base


class ProjectSnapshot(Base):
    """
    Snapshot model for storing the point-in-time state of every document
    in a project.

    Snapshots are written once by the snapshot service and never updated
    afterwards, except for the preview path assigned while the snapshot is
    being created. Per-document copies live in ``SnapshotDocuments``.

    Attributes:
        id: Unique identifier (UUID)
        project_id: FK to the owning project
        label: Human readable label, e.g. "Snapshot — Oct 17, 2026 at 3:45 PM"
        trigger_type: What caused the snapshot ("snapshot", "ai_action", ...)
        word_count: Sum of document word counts at capture time
        page_count: Sum of estimated page counts at capture time (>= 1)
        preview_image_path: Object name of the rendered preview (nullable)
        parent_snapshot_id: Weak reference to the previous branch head (nullable)
        created_at: Timestamp when snapshot was created
    """

    __tablename__ = "ProjectSnapshots"
    __allow_unmapped__ = True

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )

    project_id = Column(
        UUID(as_uuid=True),
        ForeignKey("Projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    label = Column(
        String(255),
        nullable=False,
    )

    trigger_type = Column(
        String(50),
        nullable=False,
        default="snapshot",
    )

    # Aggregates across all documents at capture time
    word_count = Column(
        Integer,
        nullable=False,
        default=0,
    )

    page_count = Column(
        Integer,
        nullable=False,
        default=1,
    )

    preview_image_path = Column(
        String(512),
        nullable=True,
    )

    parent_snapshot_id = Column(
        UUID(as_uuid=True),
        nullable=True,
    )

    created_at = Column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_project_snapshots_project_created", "project_id", "created_at"),
    )

    def __repr__(self) -> str:
        """String representation of ProjectSnapshot."""
        return f"<ProjectSnapshot(id={self.id}, label={self.label}, parent={self.parent_snapshot_id})>"
