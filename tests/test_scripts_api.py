"""Tests for script and version endpoints."""

import pytest

from tests.conftest import make_project, make_script


@pytest.fixture()
def project(client):
    return client.post("/api/projects", json=make_project()).json()


@pytest.fixture()
def folder_id(project):
    return project["folders"][0]["id"]


@pytest.fixture()
def script(client, project, folder_id):
    resp = client.post("/api/scripts", json=make_script(project["id"], folder_id, content="draft"))
    assert resp.status_code == 201
    return resp.json()


class TestScripts:

    def test_create_bumps_folder_count(self, client, project, script):
        assert script["versions"][0]["version"] == 1
        stored = client.get(f"/api/projects/{project['id']}").json()
        assert stored["folders"][0]["script_count"] == 1

    def test_create_in_missing_folder_returns_404(self, client, project):
        resp = client.post("/api/scripts", json=make_script(project["id"], "ghost"))
        assert resp.status_code == 404
        assert resp.json()["error"] == "FOLDER_NOT_FOUND"

    def test_list_requires_owner_or_project(self, client):
        resp = client.get("/api/scripts")
        assert resp.status_code == 400

    def test_list_filters_by_status(self, client, project, folder_id, script):
        final = make_script(project["id"], folder_id, title="Final cut")
        final["metadata"]["status"] = "final"
        client.post("/api/scripts", json=final)

        resp = client.get("/api/scripts", params={"owner_id": "user-1", "status": "final"})
        data = resp.json()
        assert data["total"] == 1
        assert data["scripts"][0]["title"] == "Final cut"

    def test_update_metadata(self, client, script):
        resp = client.put(f"/api/scripts/{script['id']}", json={"metadata": {"status": "review"}})
        assert resp.status_code == 200
        assert resp.json()["metadata"]["status"] == "review"
        assert resp.json()["metadata"]["tags"] == ["hooks"]

    def test_update_content_appends_version(self, client, script):
        resp = client.put(f"/api/scripts/{script['id']}/content", json={"content": "final"})
        assert resp.status_code == 200
        assert [v["version"] for v in resp.json()["versions"]] == [1, 2]

    def test_move(self, client, project, folder_id, script):
        other = client.post(f"/api/projects/{project['id']}/folders", json={"name": "Other"}).json()
        resp = client.put(f"/api/scripts/{script['id']}/move", json={"folder_id": other["id"]})
        assert resp.status_code == 200

        stored = client.get(f"/api/projects/{project['id']}").json()
        counts = {f["id"]: f["script_count"] for f in stored["folders"]}
        assert counts == {folder_id: 0, other["id"]: 1}

    def test_delete(self, client, project, script):
        resp = client.delete(f"/api/scripts/{script['id']}")
        assert resp.status_code == 204
        assert client.get(f"/api/scripts/{script['id']}").status_code == 404
        stored = client.get(f"/api/projects/{project['id']}").json()
        assert stored["stats"]["total_scripts"] == 0

    def test_stats(self, client, script):
        resp = client.get("/api/scripts/stats", params={"owner_id": "user-1"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["total_scripts"] == 1
        assert data["scripts_by_content_type"]["tiktok"] == 1

    def test_move_into_another_owners_project_returns_400(self, client, script):
        foreign = client.post("/api/projects", json=make_project(owner_id="user-2")).json()
        resp = client.put(
            f"/api/scripts/{script['id']}/move",
            json={"folder_id": foreign["folders"][0]["id"], "project_id": foreign["id"]},
        )
        assert resp.status_code == 400
        assert resp.json()["details"] == {"field": "project_id"}

    def test_null_duration_clears_it(self, client, script):
        client.put(f"/api/scripts/{script['id']}", json={"metadata": {"duration": 45}})
        resp = client.put(f"/api/scripts/{script['id']}", json={"metadata": {"duration": None}})
        assert resp.status_code == 200
        assert resp.json()["metadata"]["duration"] is None
        assert resp.json()["metadata"]["status"] == "draft"

    def test_search(self, client, project, folder_id, script):
        client.post("/api/scripts", json=make_script(project["id"], folder_id, title="Unrelated", content="x"))
        resp = client.get("/api/scripts/search", params={"owner_id": "user-1", "q": "IDEAS"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 1
        assert data["scripts"][0]["id"] == script["id"]

    def test_search_requires_query(self, client):
        assert client.get("/api/scripts/search", params={"owner_id": "user-1"}).status_code == 422
        resp = client.get("/api/scripts/search", params={"owner_id": "user-1", "q": "  "})
        assert resp.status_code == 400

    def test_bulk_status(self, client, script):
        resp = client.post(
            "/api/scripts/bulk-status",
            json={"script_ids": [script["id"], "ghost"], "status": "final"},
        )
        assert resp.status_code == 200
        assert resp.json() == {"updated": 1, "missing_ids": ["ghost"]}
        assert client.get(f"/api/scripts/{script['id']}").json()["metadata"]["status"] == "final"

    def test_bulk_status_rejects_empty_list(self, client):
        resp = client.post("/api/scripts/bulk-status", json={"script_ids": [], "status": "final"})
        assert resp.status_code == 422


class TestVersions:

    def test_history_newest_first(self, client, script):
        client.put(f"/api/scripts/{script['id']}/content", json={"content": "final"})
        resp = client.get(f"/api/scripts/{script['id']}/versions")
        assert resp.status_code == 200
        assert [v["content"] for v in resp.json()] == ["final", "draft"]

    def test_get_version(self, client, script):
        resp = client.get(f"/api/scripts/{script['id']}/versions/1")
        assert resp.status_code == 200
        assert resp.json()["content"] == "draft"

    def test_get_missing_version_returns_404(self, client, script):
        resp = client.get(f"/api/scripts/{script['id']}/versions/7")
        assert resp.status_code == 404
        assert resp.json()["error"] == "VERSION_NOT_FOUND"

    def test_revert(self, client, script):
        client.put(f"/api/scripts/{script['id']}/content", json={"content": "final"})
        resp = client.post(f"/api/scripts/{script['id']}/versions/1/revert")
        assert resp.status_code == 200
        data = resp.json()
        assert data["content"] == "draft"
        assert [(v["version"], v["content"]) for v in data["versions"]] == [
            (1, "draft"), (2, "final"), (3, "draft"),
        ]
