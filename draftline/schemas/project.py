"""Pydantic schemas for Project model validation."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ProjectCreate(BaseModel):
    """Schema for creating a new project."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Project name",
        examples=["Novel Draft"],
    )
    description: str = Field(
        "",
        description="Project description",
    )
    color_tag: Optional[str] = Field(
        None,
        max_length=20,
        description="Display color",
    )


class ProjectResponse(BaseModel):
    """Schema for project response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str = ""
    color_tag: Optional[str] = None
    sort_order: int = 0
    active_branch_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime
