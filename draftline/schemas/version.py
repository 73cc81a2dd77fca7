"""Pydantic schemas for branches, snapshots and history."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SnapshotCreate(BaseModel):
    """Schema for taking a snapshot of a project."""

    trigger_type: str = Field(
        "snapshot",
        min_length=1,
        max_length=50,
        description="What caused the snapshot, e.g. 'snapshot' or 'ai_action'",
    )
    source_document_id: Optional[UUID] = Field(
        None,
        description="Document the preview is rendered from (default: first document)",
    )


class BranchCreate(BaseModel):
    """Schema for branching from a snapshot."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Branch name",
        examples=["Alternate ending"],
    )


class BranchResponse(BaseModel):
    """Schema for branch response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    name: str
    is_default: bool
    head_snapshot_id: Optional[UUID] = None
    created_at: datetime


class SnapshotResponse(BaseModel):
    """Schema for snapshot response (no captured documents)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    label: str
    trigger_type: str
    icon: str = Field("manual_save", description="Display icon key for the trigger type")
    word_count: int
    page_count: int
    preview_image_path: Optional[str] = None
    preview_url: Optional[str] = Field(None, description="Presigned download URL of the preview image")
    parent_snapshot_id: Optional[UUID] = None
    created_at: datetime


class SnapshotDocumentResponse(BaseModel):
    """Schema for one captured document."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    title: str
    document_type: str
    content_json: Optional[str] = None
    content_plain: str = ""
    word_count: int
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


class SnapshotDetailResponse(SnapshotResponse):
    """Snapshot with its captured documents."""

    documents: list[SnapshotDocumentResponse] = Field(default_factory=list)


class HistoryResponse(BaseModel):
    """History of the active branch plus branch selection state."""

    project_id: UUID
    active_branch: BranchResponse
    branches: list[BranchResponse]
    snapshots: list[SnapshotResponse]
    selected_snapshot_id: Optional[UUID] = None
    head_snapshot_id: Optional[UUID] = None


class RestoreResponse(BaseModel):
    """Outcome of a restore or checkout."""

    restored: bool = Field(..., description="False when the branch had nothing to restore")
    snapshot_id: Optional[UUID] = None
    updated_document_ids: list[UUID] = Field(default_factory=list)
    created_document_ids: list[UUID] = Field(default_factory=list)
    history: HistoryResponse
