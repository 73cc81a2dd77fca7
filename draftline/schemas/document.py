"""Pydantic schemas for Document model validation."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models.document import DocumentType, PaperSize, ParagraphAlignment


class DocumentLayout(BaseModel):
    """Page and typography settings; every field optional for partial updates."""

    paper_size: Optional[PaperSize] = None
    margin_top: Optional[float] = Field(None, ge=0)
    margin_bottom: Optional[float] = Field(None, ge=0)
    margin_left: Optional[float] = Field(None, ge=0)
    margin_right: Optional[float] = Field(None, ge=0)
    line_spacing: Optional[float] = Field(None, gt=0)
    paragraph_spacing_before: Optional[float] = Field(None, ge=0)
    paragraph_spacing: Optional[float] = Field(None, ge=0)
    first_line_indent: Optional[float] = Field(None, ge=0)
    body_font_name: Optional[str] = Field(None, min_length=1, max_length=100)
    body_font_size: Optional[float] = Field(None, gt=0)
    body_alignment: Optional[ParagraphAlignment] = None
    hyphenation_enabled: Optional[bool] = None
    include_page_numbers: Optional[bool] = None
    include_table_of_contents: Optional[bool] = None


class DocumentCreate(DocumentLayout):
    """Schema for creating a new document."""

    title: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Document title",
        examples=["Chapter One"],
    )
    project_id: Optional[UUID] = Field(
        None,
        description="Project to create the document in (null = not yet versioned)",
    )
    document_type: DocumentType = Field(
        DocumentType.ARTICLE,
        description="Kind of composition",
    )
    content_json: Optional[str] = Field(
        None,
        description="Editor JSON content",
    )
    content_plain: Optional[str] = Field(
        None,
        description="Plain text content, used when no editor JSON is given",
    )


class DocumentUpdate(DocumentLayout):
    """Schema for updating a document's metadata, content or layout."""

    title: Optional[str] = Field(
        None,
        min_length=1,
        max_length=255,
        description="Document title",
    )
    document_type: Optional[DocumentType] = None
    content_json: Optional[str] = Field(
        None,
        description="Editor JSON content",
    )
    content_plain: Optional[str] = Field(
        None,
        description="Plain text content",
    )
    sort_order: Optional[int] = Field(
        None,
        description="Sort position within the project",
    )
    row_version: int = Field(
        ...,
        ge=1,
        description="Current row_version for optimistic concurrency check",
    )


class DocumentResponse(BaseModel):
    """Schema for full document response (includes content and layout)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: Optional[UUID] = None
    title: str
    document_type: str
    content_json: Optional[str] = None
    content_plain: str = ""
    word_count: int = 0
    paper_size: str
    margin_top: float
    margin_bottom: float
    margin_left: float
    margin_right: float
    line_spacing: float
    paragraph_spacing_before: float
    paragraph_spacing: float
    first_line_indent: float
    body_font_name: str
    body_font_size: float
    body_alignment: str
    hyphenation_enabled: bool
    include_page_numbers: bool
    include_table_of_contents: bool
    sort_order: int = 0
    row_version: int = 1
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class DocumentListItem(BaseModel):
    """Schema for document list item (no content fields)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    document_type: str
    word_count: int = 0
    sort_order: int = 0
    row_version: int = 1
    updated_at: datetime
