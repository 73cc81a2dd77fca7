"""ProjectBranch SQLAlchemy model: a named pointer to a head snapshot."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID

from ..database import Base


class ProjectBranch(Base):
    """
    Branch model.

    A branch never owns snapshots. It only records the id of its head
    snapshot; history is recovered by walking ``parent_snapshot_id`` links
    from that head.

    Attributes:
        id: Unique identifier (UUID)
        project_id: FK to the owning project
        name: Branch name shown to users
        is_default: Whether this is the project's default branch
        head_snapshot_id: Weak reference to the head ProjectSnapshot (nullable)
        created_at: Timestamp when branch was created
    """

    __tablename__ = "ProjectBranches"
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

    name = Column(
        String(255),
        nullable=False,
    )

    is_default = Column(
        Boolean,
        nullable=False,
        default=False,
    )

    head_snapshot_id = Column(
        UUID(as_uuid=True),
        nullable=True,
    )

    created_at = Column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation of ProjectBranch."""
        return f"<ProjectBranch(id={self.id}, name={self.name}, head={self.head_snapshot_id})>"
