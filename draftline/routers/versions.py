"""Version control API endpoints: history, snapshots, restore, branches.

Every mutating endpoint commits before broadcasting so that clients
reacting to an event re-fetch committed data.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_history_service, get_restore_broadcaster, get_snapshot_service
from ..models.branch import ProjectBranch
from ..models.project import Project
from ..models.snapshot import ProjectSnapshot
from ..schemas.version import (
    BranchCreate,
    BranchResponse,
    HistoryResponse,
    RestoreResponse,
    SnapshotCreate,
    SnapshotDetailResponse,
    SnapshotDocumentResponse,
    SnapshotResponse,
)
from ..services.minio_service import MinIOService, get_minio_service
from ..services.preview_service import get_preview_url
from ..services.snapshot_service import RestoreResult, SnapshotService, VersionIntegrityError
from ..services.version_history_service import HistoryState, VersionHistoryService, trigger_type_icon
from ..websocket.handlers import DocumentRestoreBroadcaster, notify_project
from ..websocket.manager import MessageType
from .documents import get_document_or_404
from .projects import get_project_or_404

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["versions"],
)


# ============================================================================
# Helpers
# ============================================================================


def snapshot_response(
    snapshot: ProjectSnapshot,
    storage: Optional[MinIOService] = None,
) -> SnapshotResponse:
    """Snapshot response with its display icon and a signed preview URL."""
    response = SnapshotResponse.model_validate(snapshot)
    response.icon = trigger_type_icon(snapshot.trigger_type)
    response.preview_url = get_preview_url(snapshot.preview_image_path, storage)
    return response


def history_response(state: HistoryState, storage: Optional[MinIOService] = None) -> HistoryResponse:
    """Convert orchestrator state to its API representation."""
    return HistoryResponse(
        project_id=state.project_id,
        active_branch=BranchResponse.model_validate(state.active_branch),
        branches=[BranchResponse.model_validate(b) for b in state.branches],
        snapshots=[snapshot_response(s, storage) for s in state.snapshots],
        selected_snapshot_id=state.selected_snapshot.id if state.selected_snapshot else None,
        head_snapshot_id=state.head_snapshot_id,
    )


def restore_response(
    state: HistoryState,
    snapshot: Optional[ProjectSnapshot],
    result: Optional[RestoreResult],
    storage: Optional[MinIOService] = None,
) -> RestoreResponse:
    return RestoreResponse(
        restored=result is not None,
        snapshot_id=snapshot.id if snapshot else None,
        updated_document_ids=result.updated_document_ids if result else [],
        created_document_ids=result.created_document_ids if result else [],
        history=history_response(state, storage),
    )


async def get_snapshot_or_404(db: AsyncSession, snapshot_id: UUID) -> ProjectSnapshot:
    """Load a snapshot or raise 404."""
    snapshot = await db.get(ProjectSnapshot, snapshot_id)
    if snapshot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Snapshot {snapshot_id} not found",
        )
    return snapshot


async def get_branch_or_404(db: AsyncSession, branch_id: UUID) -> ProjectBranch:
    """Load a branch or raise 404."""
    branch = await db.get(ProjectBranch, branch_id)
    if branch is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Branch {branch_id} not found",
        )
    return branch


def integrity_conflict(exc: VersionIntegrityError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


# ============================================================================
# History
# ============================================================================


@router.get("/projects/{project_id}/history", response_model=HistoryResponse)
async def get_history(
    project_id: UUID,
    selected_snapshot_id: Optional[UUID] = Query(None, description="Keep this snapshot selected if visible"),
    db: AsyncSession = Depends(get_db),
    history_service: VersionHistoryService = Depends(get_history_service),
    storage: MinIOService = Depends(get_minio_service),
) -> HistoryResponse:
    """
    History of the project's active branch, most recent first.

    Creates the default branch on first use.
    """
    project = await get_project_or_404(db, project_id)
    state = await history_service.load(project, selected_snapshot_id=selected_snapshot_id)
    return history_response(state, storage)


@router.get("/projects/{project_id}/branches", response_model=list[BranchResponse])
async def list_branches(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    history_service: VersionHistoryService = Depends(get_history_service),
) -> list[BranchResponse]:
    """List the project's branches ordered by name."""
    project = await get_project_or_404(db, project_id)
    state = await history_service.load(project)
    return [BranchResponse.model_validate(b) for b in state.branches]


# ============================================================================
# Snapshots
# ============================================================================


@router.post(
    "/projects/{project_id}/snapshots",
    response_model=SnapshotResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_snapshot(
    project_id: UUID,
    body: SnapshotCreate,
    db: AsyncSession = Depends(get_db),
    snapshot_service: SnapshotService = Depends(get_snapshot_service),
    storage: MinIOService = Depends(get_minio_service),
) -> SnapshotResponse:
    """Capture every document of the project on the active branch."""
    project = await get_project_or_404(db, project_id)

    source_document = None
    if body.source_document_id is not None:
        source_document = await get_document_or_404(db, body.source_document_id)

    snapshot = await snapshot_service.create_snapshot(
        project,
        source_document=source_document,
        trigger_type=body.trigger_type,
    )
    response = snapshot_response(snapshot, storage)

    await db.commit()
    await notify_project(
        project.id,
        MessageType.SNAPSHOT_CREATED,
        {"snapshot_id": str(snapshot.id), "trigger_type": snapshot.trigger_type},
    )
    return response


@router.get("/snapshots/{snapshot_id}", response_model=SnapshotDetailResponse)
async def get_snapshot(
    snapshot_id: UUID,
    db: AsyncSession = Depends(get_db),
    snapshot_service: SnapshotService = Depends(get_snapshot_service),
    storage: MinIOService = Depends(get_minio_service),
) -> SnapshotDetailResponse:
    """Get a snapshot with every captured document."""
    snapshot = await get_snapshot_or_404(db, snapshot_id)
    records = await snapshot_service.get_snapshot_documents(snapshot.id)
    return SnapshotDetailResponse(
        **snapshot_response(snapshot, storage).model_dump(),
        documents=[SnapshotDocumentResponse.model_validate(r) for r in records],
    )


@router.post("/snapshots/{snapshot_id}/restore", response_model=RestoreResponse)
async def restore_snapshot(
    snapshot_id: UUID,
    db: AsyncSession = Depends(get_db),
    history_service: VersionHistoryService = Depends(get_history_service),
    broadcaster: DocumentRestoreBroadcaster = Depends(get_restore_broadcaster),
    storage: MinIOService = Depends(get_minio_service),
) -> RestoreResponse:
    """
    Restore a snapshot into its project and move the active branch head to it.

    Documents created after the snapshot are kept.
    """
    snapshot = await get_snapshot_or_404(db, snapshot_id)
    project = await get_project_or_404(db, snapshot.project_id)

    state, result = await history_service.restore_with_result(snapshot, project)
    response = restore_response(state, snapshot, result, storage)

    await db.commit()
    await broadcaster.flush()
    await notify_project(
        project.id,
        MessageType.SNAPSHOT_RESTORED,
        {"snapshot_id": str(snapshot.id)},
    )
    return response


# ============================================================================
# Branches
# ============================================================================


@router.post(
    "/snapshots/{snapshot_id}/branches",
    response_model=BranchResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_branch(
    snapshot_id: UUID,
    body: BranchCreate,
    db: AsyncSession = Depends(get_db),
    snapshot_service: SnapshotService = Depends(get_snapshot_service),
) -> BranchResponse:
    """Create a branch starting at a snapshot and make it active."""
    snapshot = await get_snapshot_or_404(db, snapshot_id)
    project: Project = await get_project_or_404(db, snapshot.project_id)

    try:
        branch = await snapshot_service.create_branch(snapshot, body.name, project)
    except VersionIntegrityError as e:
        raise integrity_conflict(e)
    response = BranchResponse.model_validate(branch)

    await db.commit()
    await notify_project(
        project.id,
        MessageType.BRANCH_CREATED,
        {"branch_id": str(branch.id), "head_snapshot_id": str(snapshot.id)},
    )
    return response


@router.post("/branches/{branch_id}/checkout", response_model=RestoreResponse)
async def checkout_branch(
    branch_id: UUID,
    db: AsyncSession = Depends(get_db),
    snapshot_service: SnapshotService = Depends(get_snapshot_service),
    history_service: VersionHistoryService = Depends(get_history_service),
    broadcaster: DocumentRestoreBroadcaster = Depends(get_restore_broadcaster),
    storage: MinIOService = Depends(get_minio_service),
) -> RestoreResponse:
    """
    Activate a branch and restore its head snapshot.

    A branch without a head is activated and reported with
    ``restored: false``; no document changes.
    """
    branch = await get_branch_or_404(db, branch_id)
    project = await get_project_or_404(db, branch.project_id)

    try:
        head, result = await snapshot_service.checkout_branch_with_result(branch, project)
    except VersionIntegrityError as e:
        raise integrity_conflict(e)
    state = await history_service.load(project)
    response = restore_response(state, head, result, storage)

    await db.commit()
    await broadcaster.flush()
    await notify_project(
        project.id,
        MessageType.BRANCH_CHECKED_OUT,
        {"branch_id": str(branch.id), "head_snapshot_id": str(head.id) if head else None},
    )
    return response
