"""Project SQLAlchemy model: the aggregate root of version control."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID

from ..database import Base


class Project(Base):
    """
    Project model owning documents, branches and snapshots.

    Documents, branches and snapshots point at their project through
    ``project_id``; the project itself only records which branch is active.
    ``active_branch_id`` is a weak reference (no foreign key) resolved by
    looking the id up among the project's branches.

    Attributes:
        id: Unique identifier (UUID)
        name: Project name
        description: Free-form description
        color_tag: Optional display color
        sort_order: Position in project lists
        active_branch_id: Id of the branch currently checked out (nullable)
        created_at: Timestamp when project was created
        updated_at: Timestamp of the last version-control change
    """

    __tablename__ = "Projects"
    __allow_unmapped__ = True

    # Primary key
    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )

    # Project details
    name = Column(
        String(255),
        nullable=False,
        index=True,
    )

    description = Column(
        Text,
        nullable=False,
        default="",
    )

    color_tag = Column(
        String(20),
        nullable=True,
    )

    sort_order = Column(
        Integer,
        nullable=False,
        default=0,
    )

    # Weak reference to ProjectBranches.id
    active_branch_id = Column(
        UUID(as_uuid=True),
        nullable=True,
    )

    # Timestamps
    created_at = Column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )

    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation of Project."""
        return f"<Project(id={self.id}, name={self.name})>"
