"""Projects API endpoints.

Projects are the aggregate root for version control: they own documents,
branches and snapshots.
"""

import logging
from uuid import UUID, uuid4

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.project import Project
from ..schemas.project import ProjectCreate, ProjectResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/projects",
    tags=["projects"],
)


async def get_project_or_404(db: AsyncSession, project_id: UUID) -> Project:
    """Load a project or raise 404."""
    project = await db.get(Project, project_id)
    if project is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Project {project_id} not found",
        )
    return project


@router.get("", response_model=list[ProjectResponse])
async def list_projects(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
) -> list[ProjectResponse]:
    """List projects, most recently changed first."""
    result = await db.execute(
        select(Project)
        .order_by(Project.updated_at.desc(), Project.id)
        .offset(skip)
        .limit(limit)
    )
    return [ProjectResponse.model_validate(p) for p in result.scalars().all()]


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    body: ProjectCreate,
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    """Create a project. Its default branch is created on first versioning action."""
    project = Project(
        id=uuid4(),
        name=body.name.strip(),
        description=body.description,
        color_tag=body.color_tag,
    )
    db.add(project)
    await db.flush()
    await db.refresh(project)
    logger.info(f"Created project '{project.name}' ({project.id})")
    return ProjectResponse.model_validate(project)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    """Get a project by id."""
    project = await get_project_or_404(db, project_id)
    return ProjectResponse.model_validate(project)
