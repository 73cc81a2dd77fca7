"""Tests for branch history walking and the history orchestrator."""

import logging
from types import SimpleNamespace
from uuid import uuid4

import pytest

from draftline.models import ProjectBranch
from draftline.services.version_history_service import (
    VersionHistoryService,
    sort_branches,
    trigger_type_icon,
    walk_history,
)


def chain(*ids):
    """Snapshots linked parent-to-child in the order given (oldest first)."""
    snapshots = {}
    parent = None
    for snapshot_id in ids:
        snapshots[snapshot_id] = SimpleNamespace(id=snapshot_id, parent_snapshot_id=parent)
        parent = snapshot_id
    return snapshots


class TestWalkHistory:
    """Tests for following parent links."""

    def test_most_recent_first(self):
        s1, s2, s3 = uuid4(), uuid4(), uuid4()

        history = walk_history(s3, chain(s1, s2, s3))

        assert [s.id for s in history] == [s3, s2, s1]

    def test_no_head_is_empty(self):
        assert walk_history(None, chain(uuid4())) == []

    def test_stops_at_cycle(self, caplog):
        a, b = uuid4(), uuid4()
        snapshots = {
            a: SimpleNamespace(id=a, parent_snapshot_id=b),
            b: SimpleNamespace(id=b, parent_snapshot_id=a),
        }

        with caplog.at_level(logging.WARNING):
            history = walk_history(a, snapshots)

        assert [s.id for s in history] == [a, b]
        assert "cycles" in caplog.text

    def test_stops_at_missing_parent(self):
        s1, s2 = uuid4(), uuid4()
        snapshots = chain(s1, s2)
        snapshots[s1].parent_snapshot_id = uuid4()

        history = walk_history(s2, snapshots)

        assert [s.id for s in history] == [s2, s1]

    def test_missing_head(self):
        assert walk_history(uuid4(), chain(uuid4())) == []


class TestPresentation:
    """Tests for icons and branch ordering."""

    def test_trigger_icons(self):
        assert trigger_type_icon("snapshot") == "manual_save"
        assert trigger_type_icon("ai_action") == "ai_action"
        assert trigger_type_icon("autosave") == "manual_save"
        assert trigger_type_icon(None) == "manual_save"

    def test_branches_sorted_by_name_ignoring_case(self):
        names = ["main", "Beta", "alpha"]
        branches = [ProjectBranch(id=uuid4(), name=name) for name in names]

        assert [b.name for b in sort_branches(branches)] == ["alpha", "Beta", "main"]


class TestVersionHistoryService:
    """Tests for the history orchestrator."""

    @pytest.mark.asyncio
    async def test_load_empty_project(self, db_session, snapshot_service, project):
        service = VersionHistoryService(db_session, snapshot_service)

        state = await service.load(project)

        assert state.active_branch.is_default
        assert state.snapshots == []
        assert state.selected_snapshot is None
        assert state.head_snapshot_id is None
        assert len(state.branches) == 1

    @pytest.mark.asyncio
    async def test_history_and_default_selection(self, db_session, snapshot_service, project, make_document):
        service = VersionHistoryService(db_session, snapshot_service)
        await make_document(project, "Draft", "text")
        s1 = await snapshot_service.create_snapshot(project)
        s2 = await snapshot_service.create_snapshot(project)
        s3 = await snapshot_service.create_snapshot(project)

        state = await service.load(project)

        assert [s.id for s in state.snapshots] == [s3.id, s2.id, s1.id]
        assert state.selected_snapshot.id == s3.id
        assert state.head_snapshot_id == s3.id

    @pytest.mark.asyncio
    async def test_selection_kept_when_visible(self, db_session, snapshot_service, project):
        service = VersionHistoryService(db_session, snapshot_service)
        s1 = await snapshot_service.create_snapshot(project)
        await snapshot_service.create_snapshot(project)

        state = await service.load(project, selected_snapshot_id=s1.id)

        assert state.selected_snapshot.id == s1.id

    @pytest.mark.asyncio
    async def test_selection_reset_when_not_on_branch(self, db_session, snapshot_service, project):
        service = VersionHistoryService(db_session, snapshot_service)
        s1 = await snapshot_service.create_snapshot(project)
        s2 = await snapshot_service.create_snapshot(project)
        await snapshot_service.create_branch(s1, "Side", project)

        state = await service.load(project, selected_snapshot_id=s2.id)

        assert [s.id for s in state.snapshots] == [s1.id]
        assert state.selected_snapshot.id == s1.id

    @pytest.mark.asyncio
    async def test_manual_snapshot_is_selected(self, db_session, snapshot_service, project):
        service = VersionHistoryService(db_session, snapshot_service)

        state = await service.create_manual_snapshot(project)

        assert len(state.snapshots) == 1
        assert state.selected_snapshot.id == state.snapshots[0].id
        assert await service.head_snapshot_id(project) == state.snapshots[0].id

    @pytest.mark.asyncio
    async def test_restore_moves_head(self, db_session, snapshot_service, project, make_document):
        service = VersionHistoryService(db_session, snapshot_service)
        document = await make_document(project, "Draft", "first")
        s1 = await snapshot_service.create_snapshot(project)
        document.content_plain = "second"
        await db_session.flush()
        await snapshot_service.create_snapshot(project)

        state = await service.restore(s1, project)

        assert state.head_snapshot_id == s1.id
        assert [s.id for s in state.snapshots] == [s1.id]
        assert state.selected_snapshot.id == s1.id
        assert document.content_plain == "first"

        s3 = await snapshot_service.create_snapshot(project)
        assert s3.parent_snapshot_id == s1.id

    @pytest.mark.asyncio
    async def test_branch_and_checkout(self, db_session, snapshot_service, project):
        service = VersionHistoryService(db_session, snapshot_service)
        s1 = await snapshot_service.create_snapshot(project)
        s2 = await snapshot_service.create_snapshot(project)
        main = await snapshot_service.ensure_default_branch(project)

        state = await service.create_branch(s1, "Side", project)
        assert state.active_branch.name == "Side"
        assert [b.name for b in state.branches] == ["Main", "Side"]

        state = await service.checkout_branch(main, project)
        assert state.active_branch.id == main.id
        assert state.selected_snapshot.id == s2.id

    @pytest.mark.asyncio
    async def test_restore_with_result_reports_documents(self, db_session, snapshot_service, project, make_document):
        service = VersionHistoryService(db_session, snapshot_service)
        document = await make_document(project, "Draft", "kept")
        s1 = await snapshot_service.create_snapshot(project)
        await snapshot_service.create_snapshot(project)

        state, result = await service.restore_with_result(s1, project)

        assert result.snapshot_id == s1.id
        assert result.updated_document_ids == [document.id]
        assert state.head_snapshot_id == s1.id
