"""SnapshotDocument SQLAlchemy model: one document's state inside a snapshot."""

import uuid

from sqlalchemy import Column, ForeignKey
from sqlalchemy.dialects.postgresql import UUID

from ..database import Base
from .document import CAPTURED_FIELDS, Document, DocumentStateMixin


class SnapshotDocument(DocumentStateMixin, Base):
    """
    Full, field-complete copy of a Document taken when a snapshot is made.

    Attributes:
        id: Unique identifier (UUID)
        snapshot_id: FK to the owning ProjectSnapshot
        document_id: Id of the captured Document (no FK: the live document
            may be deleted and later recreated from this record)
    """

    __tablename__ = "SnapshotDocuments"
    __allow_unmapped__ = True

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )

    snapshot_id = Column(
        UUID(as_uuid=True),
        ForeignKey("ProjectSnapshots.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    document_id = Column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
    )

    @classmethod
    def from_document(cls, document: Document, snapshot_id: uuid.UUID) -> "SnapshotDocument":
        """Copy every captured field of ``document`` into a new record."""
        return cls(
            id=uuid.uuid4(),
            snapshot_id=snapshot_id,
            document_id=document.id,
            **document.captured_state(),
        )

    def apply_to(self, document: Document) -> None:
        """Overwrite every captured field of ``document`` with this record's values."""
        for name in CAPTURED_FIELDS:
            setattr(document, name, getattr(self, name))

    def __repr__(self) -> str:
        """String representation of SnapshotDocument."""
        return f"<SnapshotDocument(id={self.id}, snapshot_id={self.snapshot_id}, document_id={self.document_id})>"
