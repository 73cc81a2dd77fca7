"""Document API endpoints.

Documents are the live working copies that snapshots capture and restores
overwrite. Content updates keep the plain text and word count in sync with
the editor JSON; updates use row_version for optimistic concurrency.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_snapshot_service
from ..models.document import Document
from ..schemas.document import (
    DocumentCreate,
    DocumentLayout,
    DocumentListItem,
    DocumentResponse,
    DocumentUpdate,
)
from ..schemas.project import ProjectResponse
from ..services.pagination_service import count_words, extract_plain_text
from ..services.snapshot_service import SnapshotService
from ..websocket.handlers import notify_project
from ..websocket.manager import MessageType
from .projects import get_project_or_404

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["documents"],
)

_LAYOUT_FIELDS = tuple(DocumentLayout.model_fields)


def set_document_content(
    document: Document,
    content_json: Optional[str],
    content_plain: Optional[str],
) -> None:
    """
    Store new content and derive plain text and word count from it.

    Editor JSON wins; plain text alone replaces the content and clears the
    JSON.
    """
    if content_json is not None:
        document.content_json = content_json
        document.content_plain = extract_plain_text(content_json, content_plain or "")
    elif content_plain is not None:
        document.content_json = None
        document.content_plain = content_plain
    else:
        return
    document.word_count = count_words(document.content_plain)


def apply_layout(document: Document, values: dict) -> None:
    """Copy the layout fields present in ``values`` onto the document."""
    for name in _LAYOUT_FIELDS:
        if name in values and values[name] is not None:
            value = values[name]
            setattr(document, name, getattr(value, "value", value))


async def get_document_or_404(db: AsyncSession, document_id: UUID) -> Document:
    """Load a live (not soft-deleted) document or raise 404."""
    document = await db.get(Document, document_id)
    if document is None or document.deleted_at is not None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Document {document_id} not found",
        )
    return document


async def _broadcast_document_event(message_type: MessageType, document: Document) -> None:
    """Broadcast a document event to its project room, if it has a project."""
    if document.project_id is None:
        return
    await notify_project(
        document.project_id,
        message_type,
        {
            "document_id": str(document.id),
            "row_version": document.row_version,
        },
    )


@router.post("/documents", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    body: DocumentCreate,
    db: AsyncSession = Depends(get_db),
) -> DocumentResponse:
    """Create a document, optionally inside a project."""
    sort_order = 0
    if body.project_id is not None:
        await get_project_or_404(db, body.project_id)
        sort_order = await db.scalar(
            select(func.count())
            .select_from(Document)
            .where(Document.project_id == body.project_id)
            .where(Document.deleted_at.is_(None))
        ) or 0

    document = Document(
        id=uuid4(),
        project_id=body.project_id,
        title=body.title.strip(),
        document_type=body.document_type.value,
        sort_order=sort_order,
    )
    set_document_content(document, body.content_json, body.content_plain)
    apply_layout(document, body.model_dump())

    db.add(document)
    await db.flush()
    await db.refresh(document)

    # Commit before broadcast so clients re-fetch committed data
    await db.commit()
    await _broadcast_document_event(MessageType.DOCUMENT_CREATED, document)

    return DocumentResponse.model_validate(document)


@router.get("/projects/{project_id}/documents", response_model=list[DocumentListItem])
async def list_project_documents(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    snapshot_service: SnapshotService = Depends(get_snapshot_service),
) -> list[DocumentListItem]:
    """List the live documents of a project."""
    await get_project_or_404(db, project_id)
    documents = await snapshot_service.get_project_documents(project_id)
    return [DocumentListItem.model_validate(d) for d in documents]


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> DocumentResponse:
    """Get a document with content and layout."""
    document = await get_document_or_404(db, document_id)
    return DocumentResponse.model_validate(document)


@router.put("/documents/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: UUID,
    body: DocumentUpdate,
    db: AsyncSession = Depends(get_db),
) -> DocumentResponse:
    """
    Update a document's metadata, content or layout.

    Returns 409 when ``row_version`` does not match, e.g. because a restore
    rewrote the document since the client loaded it.
    """
    document = await get_document_or_404(db, document_id)

    if document.row_version != body.row_version:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=(
                f"Document was modified (current row_version {document.row_version}, "
                f"got {body.row_version}). Reload and try again."
            ),
        )

    values = body.model_dump(exclude_unset=True)
    if "title" in values and body.title is not None:
        document.title = body.title.strip()
    if body.document_type is not None:
        document.document_type = body.document_type.value
    if body.sort_order is not None:
        document.sort_order = body.sort_order
    set_document_content(document, body.content_json, body.content_plain)
    apply_layout(document, values)

    document.row_version = document.row_version + 1
    document.updated_at = datetime.utcnow()
    await db.flush()
    await db.refresh(document)

    await db.commit()
    await _broadcast_document_event(MessageType.DOCUMENT_UPDATED, document)

    return DocumentResponse.model_validate(document)


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    """
    Move a document to the trash (soft delete).

    Snapshots keep their copy; restoring a snapshot that contains the
    document brings it back.
    """
    document = await get_document_or_404(db, document_id)
    document.deleted_at = datetime.utcnow()
    await db.flush()

    await db.commit()
    await _broadcast_document_event(MessageType.DOCUMENT_DELETED, document)


@router.post("/documents/{document_id}/ensure-project", response_model=ProjectResponse)
async def ensure_document_project(
    document_id: UUID,
    db: AsyncSession = Depends(get_db),
    snapshot_service: SnapshotService = Depends(get_snapshot_service),
) -> ProjectResponse:
    """Return the document's project, attaching it to the default workspace if needed."""
    document = await get_document_or_404(db, document_id)
    project = await snapshot_service.ensure_project(document)
    await snapshot_service.ensure_default_branch(project)
    await db.refresh(project)
    return ProjectResponse.model_validate(project)
