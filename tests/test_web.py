"""Tests for the HTTP API."""
import pytest
from fastapi.testclient import TestClient

from yonk_sql_architect.storage import TABLES_KEY
from yonk_sql_architect.web.app import create_app
from yonk_sql_architect.workspace import Workspace

from conftest import SAMPLE_ANSWER, FakeSqlOracle, FakeTaggingOracle


@pytest.fixture
def tagging_oracle():
    return FakeTaggingOracle({"users": ["用户", "Accounts"]})


@pytest.fixture
def client(workspace):
    with TestClient(create_app(workspace=workspace)) as test_client:
        yield test_client


def import_users(client):
    response = client.post(
        "/api/tables/import",
        json={"sql": "CREATE TABLE `users` (`id` INT); CREATE TABLE `orders` (`id` INT);", "tags": "CRM"},
    )
    assert response.status_code == 201
    return response.json()["tables"]


class TestTablesApi:
    """Test table registry endpoints."""

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "ok"

    def test_import_and_list(self, client, store):
        """Should import pasted SQL and list it back."""
        tables = import_users(client)

        assert [t["name"] for t in tables] == ["users", "orders"]
        assert tables[0]["tags"] == ["CRM"]
        listing = client.get("/api/tables").json()
        assert listing["total"] == 2
        assert listing["tagging"] is False
        assert TABLES_KEY in store.data

    def test_search(self, client):
        import_users(client)

        listing = client.get("/api/tables", params={"search": "ord"}).json()

        assert [t["name"] for t in listing["tables"]] == ["orders"]

    def test_import_nothing(self, client):
        """Should answer 422 when no CREATE TABLE is found."""
        response = client.post("/api/tables/import", json={"sql": "SELECT 1;"})

        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "parse_yielded_nothing"

    def test_upload_raw_body(self, client):
        """Should import a dump posted as the request body."""
        response = client.post(
            "/api/tables/upload",
            params={"tags": "日志"},
            content="CREATE TABLE `app_log` (`id` INT);".encode("utf-8"),
        )

        assert response.status_code == 201
        assert response.json()["tables"][0]["tags"] == ["日志"]

    def test_get_update_and_delete(self, client):
        """Should fetch, retag and delete a table by id."""
        table_id = import_users(client)[0]["id"]

        assert client.get(f"/api/tables/{table_id}").json()["name"] == "users"

        response = client.put(f"/api/tables/{table_id}/tags", json={"tags": ["A", "B"]})
        assert response.json()["tags"] == ["A", "B"]

        assert client.delete(f"/api/tables/{table_id}").status_code == 200
        assert client.get(f"/api/tables/{table_id}").status_code == 404

    def test_unknown_table(self, client):
        assert client.put("/api/tables/missing/tags", json={"tags": []}).status_code == 404
        assert client.delete("/api/tables/missing").status_code == 404

    def test_clear(self, client):
        import_users(client)

        assert client.delete("/api/tables").json() == {"removed": 2}
        assert client.get("/api/tables").json()["total"] == 0

    def test_autotag(self, client):
        """Should merge oracle suggestions and return the report."""
        import_users(client)

        body = client.post("/api/tables/autotag").json()

        assert body["error"] is None
        assert body["report"]["tables_updated"] == ["users"]
        users = client.get("/api/tables", params={"search": "users"}).json()["tables"][0]
        assert users["tags"] == ["CRM", "用户", "Accounts"]


class TestTagsApi:
    """Test tag library endpoints."""

    def test_add_and_remove(self, client):
        response = client.post("/api/tags", json={"tag": "CRM"})
        assert response.status_code == 201
        assert response.json()["added"] is True
        assert client.post("/api/tags", json={"tag": "CRM"}).json()["added"] is False

        assert "CRM" not in client.delete("/api/tags/CRM").json()["tags"]
        assert client.delete("/api/tags/CRM").status_code == 404

    def test_replace(self, client):
        assert client.put("/api/tags", json={"tags": ["X", "Y"]}).json() == {"tags": ["X", "Y"]}
        assert client.get("/api/tags").json() == {"tags": ["X", "Y"]}


class TestQueriesApi:
    """Test generation and saved query endpoints."""

    def test_generate_without_tables(self, client):
        response = client.post("/api/queries/generate", json={"requirement": "anything"})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "no_tables"

    def test_generate(self, client):
        import_users(client)

        body = client.post("/api/queries/generate", json={"requirement": "orders per user"}).json()

        assert body["title"] == "Orders per user"
        assert body["raw"] == SAMPLE_ANSWER
        assert body["sql"].startswith("SELECT")

    def test_generate_oracle_down(self, store):
        workspace = Workspace(store, FakeTaggingOracle(), FakeSqlOracle(answer=None))
        with TestClient(create_app(workspace=workspace)) as client:
            import_users(client)
            response = client.post("/api/queries/generate", json={"requirement": "x"})

        assert response.status_code == 502

    def test_saved_queries(self, client):
        created = client.post("/api/queries/saved", json={"code": "SELECT 1", "name": "one"})
        assert created.status_code == 201
        query_id = created.json()["id"]

        patched = client.patch(f"/api/queries/saved/{query_id}", json={"name": "renamed"})
        assert patched.json()["name"] == "renamed"
        assert patched.json()["code"] == "SELECT 1"

        assert len(client.get("/api/queries/saved").json()["queries"]) == 1
        assert client.delete(f"/api/queries/saved/{query_id}").status_code == 200
        assert client.patch(f"/api/queries/saved/{query_id}", json={"name": "x"}).status_code == 404
