"""History view of a project's active branch.

The history of a branch is recovered by following ``parent_snapshot_id``
links from its head snapshot. The walk stops at a root snapshot, at a
parent id that is not among the project's snapshots, or when an id comes
round a second time, so bad data shortens the history instead of looping.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.branch import ProjectBranch
from ..models.document import Document
from ..models.project import Project
from ..models.snapshot import ProjectSnapshot
from .snapshot_service import RestoreResult, SnapshotService

logger = logging.getLogger(__name__)

# Display icon keys per trigger type
TRIGGER_TYPE_ICONS: dict[str, str] = {
    "snapshot": "manual_save",
    "ai_action": "ai_action",
}
DEFAULT_TRIGGER_ICON = "manual_save"


def trigger_type_icon(trigger_type: Optional[str]) -> str:
    """Map a snapshot trigger type to the icon key shown next to it."""
    return TRIGGER_TYPE_ICONS.get(trigger_type or "", DEFAULT_TRIGGER_ICON)


def walk_history(
    head_snapshot_id: Optional[UUID],
    snapshots_by_id: dict[UUID, ProjectSnapshot],
) -> list[ProjectSnapshot]:
    """
    Follow parent links from ``head_snapshot_id``, most recent first.

    Args:
        head_snapshot_id: Where to start (None yields an empty history)
        snapshots_by_id: Every snapshot of the project, keyed by id

    Returns:
        The snapshots reached before the chain ends, dangles or cycles
    """
    history: list[ProjectSnapshot] = []
    visited: set[UUID] = set()
    current_id = head_snapshot_id

    while current_id is not None:
        if current_id in visited:
            logger.warning(f"Snapshot history cycles back to {current_id}, stopping")
            break
        snapshot = snapshots_by_id.get(current_id)
        if snapshot is None:
            logger.warning(f"Snapshot history references missing snapshot {current_id}, stopping")
            break
        visited.add(current_id)
        history.append(snapshot)
        current_id = snapshot.parent_snapshot_id

    return history


def sort_branches(branches: Iterable[ProjectBranch]) -> list[ProjectBranch]:
    """Order branches by name, ignoring case."""
    return sorted(branches, key=lambda branch: (branch.name.casefold(), branch.name))


@dataclass
class HistoryState:
    """What a history panel shows for one project."""

    project_id: UUID
    active_branch: ProjectBranch
    branches: list[ProjectBranch] = field(default_factory=list)
    snapshots: list[ProjectSnapshot] = field(default_factory=list)
    selected_snapshot: Optional[ProjectSnapshot] = None

    @property
    def head_snapshot_id(self) -> Optional[UUID]:
        return self.active_branch.head_snapshot_id


class VersionHistoryService:
    """
    Builds history state for a project and runs version actions that
    change it, returning the refreshed state after each action.
    """

    def __init__(self, db: AsyncSession, snapshot_service: Optional[SnapshotService] = None):
        self.db = db
        self.snapshots = snapshot_service or SnapshotService(db)

    async def load(
        self,
        project: Project,
        selected_snapshot_id: Optional[UUID] = None,
    ) -> HistoryState:
        """
        Resolve the active branch and its visible history.

        The previous selection is kept when it is still part of the
        history; otherwise the most recent snapshot is selected.
        """
        active_branch = await self.snapshots.ensure_default_branch(project)
        branches = await self.snapshots.get_project_branches(project.id)
        all_snapshots = await self.snapshots.get_project_snapshots(project.id)

        history = walk_history(
            active_branch.head_snapshot_id,
            {snapshot.id: snapshot for snapshot in all_snapshots},
        )

        selected = None
        if selected_snapshot_id is not None:
            selected = next((s for s in history if s.id == selected_snapshot_id), None)
        if selected is None and history:
            selected = history[0]

        return HistoryState(
            project_id=project.id,
            active_branch=active_branch,
            branches=sort_branches(branches),
            snapshots=history,
            selected_snapshot=selected,
        )

    async def head_snapshot_id(self, project: Project) -> Optional[UUID]:
        """Head of the project's active branch."""
        branch = await self.snapshots.ensure_default_branch(project)
        return branch.head_snapshot_id

    async def create_manual_snapshot(
        self,
        project: Project,
        source_document: Optional[Document] = None,
        trigger_type: str = "snapshot",
    ) -> HistoryState:
        """Take a snapshot and select it."""
        snapshot = await self.snapshots.create_snapshot(
            project,
            source_document=source_document,
            trigger_type=trigger_type,
        )
        return await self.load(project, selected_snapshot_id=snapshot.id)

    async def restore(self, snapshot: ProjectSnapshot, project: Project) -> HistoryState:
        """
        Restore ``snapshot`` and move the active branch head onto it, so the
        next snapshot continues from the restored state.
        """
        state, _ = await self.restore_with_result(snapshot, project)
        return state

    async def restore_with_result(
        self,
        snapshot: ProjectSnapshot,
        project: Project,
    ) -> tuple[HistoryState, RestoreResult]:
        """Same as ``restore`` but also returns what the restore touched."""
        result = await self.snapshots.restore(snapshot, project)
        branch = await self.snapshots.ensure_default_branch(project)
        branch.head_snapshot_id = snapshot.id
        await self.db.flush()
        logger.info(f"Moved head of branch '{branch.name}' to snapshot {snapshot.id}")
        state = await self.load(project, selected_snapshot_id=snapshot.id)
        return state, result

    async def create_branch(
        self,
        snapshot: ProjectSnapshot,
        name: str,
        project: Project,
    ) -> HistoryState:
        """Branch from ``snapshot`` and show the new branch's history."""
        await self.snapshots.create_branch(snapshot, name, project)
        return await self.load(project, selected_snapshot_id=snapshot.id)

    async def checkout_branch(self, branch: ProjectBranch, project: Project) -> HistoryState:
        """Check out ``branch`` and select its most recent snapshot."""
        await self.snapshots.checkout_branch(branch, project)
        return await self.load(project)
