"""API tests for history, snapshots, restore and branches."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest


async def setup_project(client, text="First draft of the story") -> tuple[dict, dict]:
    project = (await client.post("/api/projects", json={"name": "Novel"})).json()
    document = (await client.post("/api/documents", json={
        "title": "Chapter 1",
        "project_id": project["id"],
        "content_plain": text,
    })).json()
    return project, document


async def take_snapshot(client, project_id, **body) -> dict:
    response = await client.post(f"/api/projects/{project_id}/snapshots", json=body)
    assert response.status_code == 201
    return response.json()


class TestHistoryAPI:
    """Tests for history and snapshot endpoints."""

    @pytest.mark.asyncio
    async def test_history_of_new_project(self, client):
        project, _ = await setup_project(client)

        response = await client.get(f"/api/projects/{project['id']}/history")

        assert response.status_code == 200
        data = response.json()
        assert data["active_branch"]["name"] == "Main"
        assert data["active_branch"]["is_default"] is True
        assert data["snapshots"] == []
        assert data["head_snapshot_id"] is None

    @pytest.mark.asyncio
    async def test_snapshots_listed_newest_first(self, client):
        project, _ = await setup_project(client)
        s1 = await take_snapshot(client, project["id"])
        s2 = await take_snapshot(client, project["id"], trigger_type="ai_action")

        data = (await client.get(f"/api/projects/{project['id']}/history")).json()

        assert [s["id"] for s in data["snapshots"]] == [s2["id"], s1["id"]]
        assert data["selected_snapshot_id"] == s2["id"]
        assert data["snapshots"][0]["icon"] == "ai_action"
        assert data["snapshots"][1]["icon"] == "manual_save"
        assert s2["parent_snapshot_id"] == s1["id"]

    @pytest.mark.asyncio
    async def test_snapshot_detail_contains_documents(self, client):
        project, document = await setup_project(client)
        snapshot = await take_snapshot(client, project["id"])

        response = await client.get(f"/api/snapshots/{snapshot['id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["word_count"] == 5
        assert [d["document_id"] for d in data["documents"]] == [document["id"]]
        assert data["documents"][0]["content_plain"] == "First draft of the story"

    @pytest.mark.asyncio
    async def test_snapshots_carry_signed_preview_url(self, client):
        project, _ = await setup_project(client)
        snapshot = await take_snapshot(client, project["id"])

        expected = f"https://previews.test/snapshots/{snapshot['id']}/preview.svg?signed=1"
        assert snapshot["preview_image_path"] == f"snapshots/{snapshot['id']}/preview.svg"
        assert snapshot["preview_url"] == expected
        history = (await client.get(f"/api/projects/{project['id']}/history")).json()
        assert history["snapshots"][0]["preview_url"] == expected
        detail = (await client.get(f"/api/snapshots/{snapshot['id']}")).json()
        assert detail["preview_url"] == expected

    @pytest.mark.asyncio
    async def test_snapshot_without_preview_has_no_url(self, client):
        project = (await client.post("/api/projects", json={"name": "Empty"})).json()

        snapshot = await take_snapshot(client, project["id"])

        assert snapshot["preview_image_path"] is None
        assert snapshot["preview_url"] is None

    @pytest.mark.asyncio
    async def test_missing_snapshot(self, client):
        response = await client.get("/api/snapshots/00000000-0000-0000-0000-000000000000")
        assert response.status_code == 404


class TestRestoreAPI:
    """Tests for restoring snapshots."""

    @pytest.mark.asyncio
    async def test_restore_rewrites_document_and_moves_head(self, client):
        project, document = await setup_project(client)
        s1 = await take_snapshot(client, project["id"])
        await client.put(f"/api/documents/{document['id']}", json={
            "content_plain": "A completely different version",
            "row_version": 1,
        })
        await take_snapshot(client, project["id"])

        response = await client.post(f"/api/snapshots/{s1['id']}/restore")

        assert response.status_code == 200
        data = response.json()
        assert data["restored"] is True
        assert data["updated_document_ids"] == [document["id"]]
        assert data["history"]["head_snapshot_id"] == s1["id"]
        restored = (await client.get(f"/api/documents/{document['id']}")).json()
        assert restored["content_plain"] == "First draft of the story"
        assert restored["row_version"] == 3

    @pytest.mark.asyncio
    async def test_editor_with_stale_version_gets_conflict(self, client):
        project, document = await setup_project(client)
        s1 = await take_snapshot(client, project["id"])
        await client.post(f"/api/snapshots/{s1['id']}/restore")

        response = await client.put(f"/api/documents/{document['id']}", json={
            "title": "Stale edit",
            "row_version": 1,
        })

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_restore_recreates_trashed_document(self, client):
        project, document = await setup_project(client)
        s1 = await take_snapshot(client, project["id"])
        await client.delete(f"/api/documents/{document['id']}")

        data = (await client.post(f"/api/snapshots/{s1['id']}/restore")).json()

        assert data["created_document_ids"] == [document["id"]]
        assert (await client.get(f"/api/documents/{document['id']}")).status_code == 200


class TestBranchesAPI:
    """Tests for branch creation and checkout."""

    @pytest.mark.asyncio
    async def test_create_branch_and_checkout_back(self, client):
        project, document = await setup_project(client)
        s1 = await take_snapshot(client, project["id"])

        response = await client.post(f"/api/snapshots/{s1['id']}/branches", json={"name": "Darker ending"})
        assert response.status_code == 201
        branch = response.json()
        assert branch["head_snapshot_id"] == s1["id"]
        assert branch["is_default"] is False

        await client.put(f"/api/documents/{document['id']}", json={
            "content_plain": "The darker ending",
            "row_version": 1,
        })
        await take_snapshot(client, project["id"])

        branches = (await client.get(f"/api/projects/{project['id']}/branches")).json()
        assert [b["name"] for b in branches] == ["Darker ending", "Main"]
        main = next(b for b in branches if b["is_default"])

        response = await client.post(f"/api/branches/{main['id']}/checkout")

        assert response.status_code == 200
        data = response.json()
        assert data["restored"] is True
        assert data["snapshot_id"] == s1["id"]
        assert data["history"]["active_branch"]["id"] == main["id"]
        restored = (await client.get(f"/api/documents/{document['id']}")).json()
        assert restored["content_plain"] == "First draft of the story"

    @pytest.mark.asyncio
    async def test_checkout_branch_without_head(self, client):
        project, _ = await setup_project(client)
        history = (await client.get(f"/api/projects/{project['id']}/history")).json()
        main_id = history["active_branch"]["id"]

        response = await client.post(f"/api/branches/{main_id}/checkout")

        assert response.status_code == 200
        assert response.json()["restored"] is False
        assert response.json()["updated_document_ids"] == []

    @pytest.mark.asyncio
    async def test_missing_branch(self, client):
        response = await client.post("/api/branches/00000000-0000-0000-0000-000000000000/checkout")
        assert response.status_code == 404


class TestBroadcastFailures:
    """Committed changes succeed even when live updates cannot be delivered."""

    @pytest.fixture
    def failing_manager(self):
        mgr = MagicMock()
        mgr.broadcast_to_room = AsyncMock(side_effect=ConnectionError("redis down"))
        with patch("draftline.websocket.handlers.manager", mgr):
            yield mgr

    @pytest.mark.asyncio
    async def test_snapshot_and_restore_survive_broadcast_failure(self, client, failing_manager):
        project, document = await setup_project(client)

        snapshot = await take_snapshot(client, project["id"])
        response = await client.post(f"/api/snapshots/{snapshot['id']}/restore")

        assert response.status_code == 200
        assert response.json()["updated_document_ids"] == [document["id"]]
        assert failing_manager.broadcast_to_room.await_count >= 3

    @pytest.mark.asyncio
    async def test_branch_and_checkout_survive_broadcast_failure(self, client, failing_manager):
        project, _ = await setup_project(client)
        snapshot = await take_snapshot(client, project["id"])

        branch = await client.post(f"/api/snapshots/{snapshot['id']}/branches", json={"name": "Side"})
        checkout = await client.post(f"/api/branches/{branch.json()['id']}/checkout")

        assert branch.status_code == 201
        assert checkout.status_code == 200
        assert checkout.json()["restored"] is True
