"""Integration tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from reflow_blocks import __version__
from reflow_blocks.api import app
from reflow_blocks.workflow import WorkflowDocument


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


class TestApi:
    """Test API endpoints."""

    def test_root(self, client: TestClient):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["version"] == __version__
        assert "import" in response.json()["endpoints"]

    def test_health(self, client: TestClient):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_import(self, client: TestClient, sample_script: str):
        response = client.post("/import", json={"code": sample_script, "name": "Sample", "sourcePath": "sample.js"})

        assert response.status_code == 200
        document = response.json()["document"]
        assert document["metadata"]["name"] == "Sample"
        assert document["metadata"]["sourcePath"] == "sample.js"
        root = document["blocks"][document["root"]]
        assert len(root["children"]["body"]) == 9

    def test_import_syntax_error(self, client: TestClient):
        response = client.post("/import", json={"code": "if (a {"})

        assert response.status_code == 400
        assert response.json()["detail"].startswith("Failed to import script")

    def test_export(self, client: TestClient, nested_document: WorkflowDocument):
        response = client.post("/export", json={"document": nested_document.to_dict()})

        assert response.status_code == 200
        assert response.json()["code"] == 'if (ready) {\n  log("a");\n  log("b");\n}\nwait(2);\n'

    def test_import_then_export(self, client: TestClient, sample_script: str):
        document = client.post("/import", json={"code": sample_script}).json()["document"]

        response = client.post("/export", json={"document": document})

        assert response.json()["code"] == sample_script.split("\n", 1)[1]

    def test_export_invalid_structure(self, client: TestClient, nested_document: WorkflowDocument):
        data = nested_document.to_dict()
        data["blocks"]["if"]["children"]["alternate"] = ["ghost"]

        response = client.post("/export", json={"document": data})

        assert response.status_code == 400
        assert "ghost" in response.json()["detail"]

    def test_export_malformed_document(self, client: TestClient):
        response = client.post("/export", json={"document": {"id": "x"}})

        assert response.status_code == 422

    def test_validate(self, client: TestClient):
        response = client.post("/validate", json={"code": "wait(1);\nclick(target);\ndebugger;"})

        body = response.json()
        assert body["isValid"] is True
        assert body["blockCount"] == 3
        assert body["kinds"]["raw-statement"] == 1

    def test_validate_syntax_error(self, client: TestClient):
        body = client.post("/validate", json={"code": "wait(1"}).json()

        assert body["isValid"] is False
        assert body["errors"]

    def test_blocks(self, client: TestClient):
        everything = client.get("/blocks").json()
        ai_blocks = client.get("/blocks", params={"category": "ai"}).json()

        assert len(everything) == 33
        assert {schema["kind"] for schema in ai_blocks} == {"vision-call", "ai-call"}
        assert "childSlots" in everything[0]
