"""Document SQLAlchemy model: the live, editable working copy.

A document carries its content in two formats (editor JSON for rich text,
plain text as fallback) together with the full page layout used to paginate
and render it. The columns that make up a captured document state are
declared once on ``DocumentStateMixin`` and shared with ``SnapshotDocument``
so capture and restore always agree on the field set.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID

from ..database import Base


class DocumentType(str, Enum):
    """Kind of composition a document holds."""

    ARTICLE = "article"
    ESSAY = "essay"
    REPORT = "report"
    LETTER = "letter"
    MANUSCRIPT = "manuscript"
    NOTES = "notes"


class PaperSize(str, Enum):
    """Supported page sizes."""

    LETTER = "letter"
    A4 = "a4"
    LEGAL = "legal"
    A5 = "a5"


# Page dimensions in points (width, height)
PAPER_DIMENSIONS: dict[str, tuple[float, float]] = {
    PaperSize.LETTER.value: (612.0, 792.0),
    PaperSize.A4.value: (595.0, 842.0),
    PaperSize.LEGAL.value: (612.0, 1008.0),
    PaperSize.A5.value: (420.0, 595.0),
}


class ParagraphAlignment(str, Enum):
    """Body text alignment."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    JUSTIFIED = "justified"


# Every column copied into a snapshot and written back on restore
CAPTURED_FIELDS: tuple[str, ...] = (
    "title",
    "document_type",
    "content_json",
    "content_plain",
    "word_count",
    "paper_size",
    "margin_top",
    "margin_bottom",
    "margin_left",
    "margin_right",
    "line_spacing",
    "paragraph_spacing_before",
    "paragraph_spacing",
    "first_line_indent",
    "body_font_name",
    "body_font_size",
    "body_alignment",
    "hyphenation_enabled",
    "include_page_numbers",
    "include_table_of_contents",
)


class DocumentStateMixin:
    """
    Columns describing one document state: metadata, content and layout.

    Attributes:
        title: Document title
        document_type: One of DocumentType
        content_json: Rich text content (editor JSON)
        content_plain: Plain text content (fallback and word counting)
        word_count: Number of words in the content
        paper_size: One of PaperSize
        margin_top / margin_bottom / margin_left / margin_right: Margins in points
        line_spacing: Line height multiplier
        paragraph_spacing_before: Space above each paragraph in points
        paragraph_spacing: Space below each paragraph in points
        first_line_indent: First line indent in points
        body_font_name: Body font family
        body_font_size: Body font size in points
        body_alignment: One of ParagraphAlignment
        hyphenation_enabled: Whether hyphenation is applied
        include_page_numbers: Whether page numbers are printed
        include_table_of_contents: Whether a table of contents page is added
    """

    # Metadata
    title = Column(String(255), nullable=False, default="Untitled")
    document_type = Column(
        String(50),
        nullable=False,
        default=DocumentType.ARTICLE.value,
    )

    # Content
    content_json = Column(Text, nullable=True)
    content_plain = Column(Text, nullable=False, default="")
    word_count = Column(Integer, nullable=False, default=0)

    # Layout
    paper_size = Column(String(20), nullable=False, default=PaperSize.LETTER.value)
    margin_top = Column(Float, nullable=False, default=72.0)
    margin_bottom = Column(Float, nullable=False, default=72.0)
    margin_left = Column(Float, nullable=False, default=72.0)
    margin_right = Column(Float, nullable=False, default=72.0)
    line_spacing = Column(Float, nullable=False, default=1.5)
    paragraph_spacing_before = Column(Float, nullable=False, default=0.0)
    paragraph_spacing = Column(Float, nullable=False, default=12.0)
    first_line_indent = Column(Float, nullable=False, default=0.0)
    body_font_name = Column(String(100), nullable=False, default="Georgia")
    body_font_size = Column(Float, nullable=False, default=16.0)
    body_alignment = Column(
        String(20),
        nullable=False,
        default=ParagraphAlignment.LEFT.value,
    )
    hyphenation_enabled = Column(Boolean, nullable=False, default=False)
    include_page_numbers = Column(Boolean, nullable=False, default=True)
    include_table_of_contents = Column(Boolean, nullable=False, default=False)

    def captured_state(self) -> dict:
        """Return the captured field values as a plain dict."""
        return {name: getattr(self, name) for name in CAPTURED_FIELDS}


class Document(DocumentStateMixin, Base):
    """
    Document model representing a live composition.

    A document may exist before it belongs to a project; the first
    versioning action attaches it to one. Supports soft delete via
    deleted_at and optimistic concurrency via row_version.

    Attributes:
        id: Unique identifier (UUID), stable across snapshot restores
        project_id: FK to Projects (nullable until versioning attaches it)
        sort_order: Position within the project
        row_version: Optimistic concurrency version counter
        deleted_at: Soft delete timestamp (null = active)
        created_at: Timestamp when document was created
        updated_at: Timestamp when document was last updated
    """

    __tablename__ = "Documents"
    __allow_unmapped__ = True

    # Primary key
    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )

    # Owning project
    project_id = Column(
        UUID(as_uuid=True),
        ForeignKey("Projects.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    # Ordering
    sort_order = Column(
        Integer,
        nullable=False,
        default=0,
    )

    # Concurrency
    row_version = Column(
        Integer,
        nullable=False,
        default=1,
    )

    # Soft delete
    deleted_at = Column(
        DateTime,
        nullable=True,
        index=True,
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

    __table_args__ = (
        Index("ix_documents_project_sort", "project_id", "sort_order"),
    )

    def __repr__(self) -> str:
        """String representation of Document."""
        return f"<Document(id={self.id}, title={self.title[:30] if self.title else ''})>"
