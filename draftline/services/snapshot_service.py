"""Snapshot service: project bootstrap, snapshots, restore, branches, checkout.

Version control works on whole projects. A snapshot copies every live
document of a project into ``SnapshotDocuments``; a branch is a named
pointer to a head snapshot; history is the chain of ``parent_snapshot_id``
links behind a head. Restoring writes captured fields back onto live
documents and recreates documents that no longer exist.

References between entities (active branch, branch head, snapshot parent,
captured document) are plain ids resolved through lookups, never ORM
ownership. The service only flushes; the caller's session scope commits.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional, Protocol, TypeVar
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..models.branch import ProjectBranch
from ..models.document import Document
from ..models.project import Project
from ..models.snapshot import ProjectSnapshot
from ..models.snapshot_document import SnapshotDocument
from .pagination_service import PageEstimator, estimate_page_count
from .preview_service import PreviewRenderer

logger = logging.getLogger(__name__)

T = TypeVar("T", ProjectBranch, ProjectSnapshot)


class VersionIntegrityError(Exception):
    """A branch or snapshot was used with a project it does not belong to."""

    pass


class DocumentRestoredNotifier(Protocol):
    """Receives one call per document written by a restore."""

    async def document_restored(self, project_id: UUID, document_id: UUID) -> None:
        ...


@dataclass
class RestoreResult:
    """Documents touched by a restore."""

    snapshot_id: UUID
    updated_document_ids: list[UUID] = field(default_factory=list)
    created_document_ids: list[UUID] = field(default_factory=list)

    @property
    def affected_document_ids(self) -> list[UUID]:
        return self.updated_document_ids + self.created_document_ids


def format_snapshot_label(trigger_type: str, when: Optional[datetime] = None) -> str:
    """
    Build a snapshot label such as ``"Snapshot — Oct 17, 2026 at 3:45 PM"``.

    Args:
        trigger_type: Trigger tag, capitalized for display
        when: Timestamp to show (default: now, local time)
    """
    when = when or datetime.now()
    hour = when.hour % 12 or 12
    stamp = f"{when:%b} {when.day}, {when.year} at {hour}:{when:%M} {when:%p}"
    return f"{trigger_type.capitalize()} — {stamp}"


def by_creation(items: Iterable[T]) -> list[T]:
    """Order branches or snapshots oldest first, id as tie breaker."""
    return sorted(items, key=lambda item: (item.created_at or datetime.min, str(item.id)))


class SnapshotService:
    """
    Version control operations for one persistence session.

    Args:
        db: Session all reads and writes go through
        page_estimator: Returns the page count of a document (>= 1)
        preview_renderer: Stores a preview image for a snapshot; optional
        notifier: Told about every document a restore writes; optional
    """

    def __init__(
        self,
        db: AsyncSession,
        page_estimator: PageEstimator = estimate_page_count,
        preview_renderer: Optional[PreviewRenderer] = None,
        notifier: Optional[DocumentRestoredNotifier] = None,
    ):
        self.db = db
        self.page_estimator = page_estimator
        self.preview_renderer = preview_renderer
        self.notifier = notifier

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get_project_documents(self, project_id: UUID) -> list[Document]:
        """Live (not soft-deleted) documents of a project."""
        result = await self.db.execute(
            select(Document)
            .where(Document.project_id == project_id)
            .where(Document.deleted_at.is_(None))
            .order_by(Document.sort_order, Document.created_at, Document.id)
        )
        return list(result.scalars().all())

    async def get_project_branches(self, project_id: UUID) -> list[ProjectBranch]:
        """Branches of a project, oldest first."""
        result = await self.db.execute(
            select(ProjectBranch).where(ProjectBranch.project_id == project_id)
        )
        return by_creation(result.scalars().all())

    async def get_project_snapshots(self, project_id: UUID) -> list[ProjectSnapshot]:
        """Snapshots of a project, oldest first."""
        result = await self.db.execute(
            select(ProjectSnapshot).where(ProjectSnapshot.project_id == project_id)
        )
        return by_creation(result.scalars().all())

    async def get_snapshot(self, project_id: UUID, snapshot_id: UUID) -> Optional[ProjectSnapshot]:
        """A snapshot by id, only if it belongs to the project."""
        snapshot = await self.db.get(ProjectSnapshot, snapshot_id)
        if snapshot is None or snapshot.project_id != project_id:
            return None
        return snapshot

    async def get_snapshot_documents(self, snapshot_id: UUID) -> list[SnapshotDocument]:
        """Records captured by a snapshot."""
        result = await self.db.execute(
            select(SnapshotDocument)
            .where(SnapshotDocument.snapshot_id == snapshot_id)
            .order_by(SnapshotDocument.title, SnapshotDocument.id)
        )
        return list(result.scalars().all())

    # =========================================================================
    # Bootstrap
    # =========================================================================

    async def find_or_create_project(self, name: str, description: str = "") -> Project:
        """
        Return the oldest project called ``name``, creating it if missing.

        A failing lookup is treated as "not found". The lookup runs in a
        savepoint so the failure does not abort the surrounding transaction.
        """
        existing: Optional[Project] = None
        try:
            async with self.db.begin_nested():
                result = await self.db.execute(
                    select(Project)
                    .where(Project.name == name)
                    .order_by(Project.created_at, Project.id)
                    .limit(1)
                )
                existing = result.scalars().first()
        except SQLAlchemyError as e:
            logger.warning(f"Project lookup for '{name}' failed, creating a new one: {e}")

        if existing is not None:
            return existing

        project = Project(id=uuid4(), name=name, description=description)
        self.db.add(project)
        await self.db.flush()
        logger.info(f"Created project '{name}' ({project.id})")
        return project

    async def ensure_project(self, document: Document) -> Project:
        """
        Return the document's project, attaching it to the default
        workspace project when it has none.
        """
        if document.project_id is not None:
            project = await self.db.get(Project, document.project_id)
            if project is not None:
                return project
            logger.warning(
                f"Document {document.id} references missing project {document.project_id}"
            )

        project = await self.find_or_create_project(
            settings.default_project_name,
            settings.default_project_description,
        )
        document.project_id = project.id
        await self.db.flush()
        logger.info(f"Attached document {document.id} to project {project.id}")
        return project

    async def ensure_default_branch(self, project: Project) -> ProjectBranch:
        """
        Return the project's active branch, adopting or creating one.

        Resolution order: the recorded active branch, the first default
        branch, the first branch, a new default branch.
        """
        branches = await self.get_project_branches(project.id)

        if project.active_branch_id is not None:
            for branch in branches:
                if branch.id == project.active_branch_id:
                    return branch

        defaults = [branch for branch in branches if branch.is_default]
        if defaults:
            if len(defaults) > 1:
                logger.warning(
                    f"Project {project.id} has {len(defaults)} default branches, "
                    f"using the oldest ({defaults[0].id})"
                )
            project.active_branch_id = defaults[0].id
            await self.db.flush()
            return defaults[0]

        if branches:
            project.active_branch_id = branches[0].id
            await self.db.flush()
            return branches[0]

        branch = ProjectBranch(
            id=uuid4(),
            project_id=project.id,
            name=settings.default_branch_name,
            is_default=True,
            head_snapshot_id=None,
        )
        self.db.add(branch)
        project.active_branch_id = branch.id
        await self.db.flush()
        logger.info(f"Created default branch '{branch.name}' for project {project.id}")
        return branch

    # =========================================================================
    # Snapshots
    # =========================================================================

    async def create_snapshot(
        self,
        project: Project,
        source_document: Optional[Document] = None,
        trigger_type: Optional[str] = None,
    ) -> ProjectSnapshot:
        """
        Capture every live document of ``project`` on the active branch.

        Args:
            project: Project to capture
            source_document: Document the preview is rendered from
                (default: the project's first document)
            trigger_type: What caused the snapshot (default: settings.default_trigger_type)

        Returns:
            The new snapshot, now the head of the active branch
        """
        trigger_type = trigger_type or settings.default_trigger_type
        branch = await self.ensure_default_branch(project)
        documents = await self.get_project_documents(project.id)

        word_count = sum(document.word_count or 0 for document in documents)
        page_count = max(1, sum(self.page_estimator(document) for document in documents))

        snapshot = ProjectSnapshot(
            id=uuid4(),
            project_id=project.id,
            label=format_snapshot_label(trigger_type),
            trigger_type=trigger_type,
            word_count=word_count,
            page_count=page_count,
            parent_snapshot_id=branch.head_snapshot_id,
        )
        self.db.add(snapshot)
        await self.db.flush()

        for document in documents:
            self.db.add(SnapshotDocument.from_document(document, snapshot.id))

        preview_source = source_document or (documents[0] if documents else None)
        if preview_source is not None:
            snapshot.preview_image_path = self._render_preview(snapshot.id, preview_source)

        branch.head_snapshot_id = snapshot.id
        project.updated_at = datetime.utcnow()
        await self.db.flush()

        logger.info(
            f"Created snapshot {snapshot.id} on branch '{branch.name}' of project {project.id} "
            f"({len(documents)} documents, {word_count} words, {page_count} pages)"
        )
        return snapshot

    def _render_preview(self, snapshot_id: UUID, document: Document) -> Optional[str]:
        if self.preview_renderer is None or not settings.snapshot_previews_enabled:
            return None
        try:
            return self.preview_renderer.save_preview(snapshot_id, document)
        except Exception as e:
            logger.warning(f"Preview rendering failed for snapshot {snapshot_id}: {e}")
            return None

    # =========================================================================
    # Restore
    # =========================================================================

    async def restore(self, snapshot: ProjectSnapshot, project: Project) -> RestoreResult:
        """
        Write a snapshot back onto the project's documents.

        Documents captured by the snapshot are overwritten; captured
        documents that no longer exist are recreated under their original
        id. Live documents the snapshot does not know about are left
        untouched: restore never deletes.

        Raises:
            VersionIntegrityError: If the snapshot belongs to another project
        """
        if snapshot.project_id != project.id:
            raise VersionIntegrityError(
                f"Snapshot {snapshot.id} does not belong to project {project.id}"
            )

        records = await self.get_snapshot_documents(snapshot.id)
        records_by_document = {record.document_id: record for record in records}
        result = RestoreResult(snapshot_id=snapshot.id)
        now = datetime.utcnow()

        live_documents = await self.get_project_documents(project.id)
        live_ids = {document.id for document in live_documents}
        for document in live_documents:
            record = records_by_document.get(document.id)
            if record is None:
                continue
            self._apply_record(record, document, now)
            result.updated_document_ids.append(document.id)

        next_sort_order = len(live_documents)
        for record in records:
            if record.document_id in live_ids:
                continue
            document = await self._materialize(record, project, now, next_sort_order)
            if document is None:
                continue
            next_sort_order += 1
            result.created_document_ids.append(document.id)

        project.updated_at = now
        await self.db.flush()

        logger.info(
            f"Restored snapshot {snapshot.id} into project {project.id}: "
            f"{len(result.updated_document_ids)} updated, "
            f"{len(result.created_document_ids)} recreated"
        )

        for document_id in result.affected_document_ids:
            await self._notify_restored(project.id, document_id)

        return result

    def _apply_record(self, record: SnapshotDocument, document: Document, now: datetime) -> None:
        record.apply_to(document)
        document.updated_at = now
        document.row_version = (document.row_version or 0) + 1
        logger.debug(f"Restored document {document.id} from record {record.id}")

    async def _materialize(
        self,
        record: SnapshotDocument,
        project: Project,
        now: datetime,
        sort_order: int,
    ) -> Optional[Document]:
        """Recreate (or revive) the document a record was captured from."""
        document = await self.db.get(Document, record.document_id)

        if document is None:
            document = Document(
                id=record.document_id,
                project_id=project.id,
                sort_order=sort_order,
                row_version=1,
                created_at=now,
            )
            record.apply_to(document)
            document.updated_at = now
            self.db.add(document)
            logger.debug(f"Recreated document {document.id} from record {record.id}")
            return document

        if document.project_id not in (None, project.id):
            logger.warning(
                f"Document {document.id} now belongs to project {document.project_id}, "
                f"not restoring it into project {project.id}"
            )
            return None

        # Soft-deleted or detached row with the captured id
        document.project_id = project.id
        document.deleted_at = None
        self._apply_record(record, document, now)
        return document

    async def _notify_restored(self, project_id: UUID, document_id: UUID) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.document_restored(project_id, document_id)
        except Exception as e:
            logger.warning(f"Restore notification for document {document_id} failed: {e}")

    # =========================================================================
    # Branches
    # =========================================================================

    async def create_branch(
        self,
        from_snapshot: ProjectSnapshot,
        name: str,
        project: Project,
    ) -> ProjectBranch:
        """
        Create a branch whose head is ``from_snapshot`` and make it active.

        No snapshot is copied or moved.

        Raises:
            VersionIntegrityError: If the snapshot belongs to another project
        """
        if from_snapshot.project_id != project.id:
            raise VersionIntegrityError(
                f"Snapshot {from_snapshot.id} does not belong to project {project.id}"
            )

        branch = ProjectBranch(
            id=uuid4(),
            project_id=project.id,
            name=name.strip(),
            is_default=False,
            head_snapshot_id=from_snapshot.id,
        )
        self.db.add(branch)
        project.active_branch_id = branch.id
        await self.db.flush()
        logger.info(
            f"Created branch '{branch.name}' ({branch.id}) from snapshot {from_snapshot.id}"
        )
        return branch

    async def checkout_branch(
        self,
        branch: ProjectBranch,
        project: Project,
    ) -> Optional[ProjectSnapshot]:
        """
        Activate ``branch`` and restore its head snapshot.

        Returns:
            The restored head snapshot, or None when the branch has no head
            and nothing was restored

        Raises:
            VersionIntegrityError: If the branch belongs to another project
        """
        snapshot, _ = await self.checkout_branch_with_result(branch, project)
        return snapshot

    async def checkout_branch_with_result(
        self,
        branch: ProjectBranch,
        project: Project,
    ) -> tuple[Optional[ProjectSnapshot], Optional[RestoreResult]]:
        """Same as ``checkout_branch`` but also returns what the restore touched."""
        if branch.project_id != project.id:
            raise VersionIntegrityError(
                f"Branch {branch.id} does not belong to project {project.id}"
            )

        project.active_branch_id = branch.id
        await self.db.flush()
        logger.info(f"Checked out branch '{branch.name}' ({branch.id}) in project {project.id}")

        if branch.head_snapshot_id is None:
            return None, None

        snapshot = await self.get_snapshot(project.id, branch.head_snapshot_id)
        if snapshot is None:
            logger.warning(
                f"Branch {branch.id} points at missing snapshot {branch.head_snapshot_id}"
            )
            return None, None

        result = await self.restore(snapshot, project)
        return snapshot, result
