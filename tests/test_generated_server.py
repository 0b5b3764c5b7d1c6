"""Runs a generated Python server in-process and checks it against the wire contract."""

import importlib
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from mcp_forge.config import AuthConfig, ServerConfig
from mcp_forge.conformance import ConformanceValidator
from mcp_forge.generator.registry import generate
from mcp_forge.pipeline import import_definition

FIXTURES = Path(__file__).parent / "fixtures"
SECRET = "s3cret"
AUTH = {"X-API-Key": SECRET}

# Top-level modules of a generated Python project
GENERATED_MODULES = ("main", "models", "routes", "middleware")


def _unload():
    for name in list(sys.modules):
        if name.split(".")[0] in GENERATED_MODULES:
            del sys.modules[name]


@pytest.fixture
def client(tmp_path, monkeypatch):
    result = import_definition((FIXTURES / "petstore.yaml").read_text(encoding="utf-8"), "petstore.yaml")
    config = ServerConfig.from_definition(
        result.definition, result.endpoints, authentication=AuthConfig(type="API Key"),
    )
    generated = generate(config)
    assert generated.success, generated.error
    generated.files.write_to(tmp_path)

    monkeypatch.setenv("API_KEY", SECRET)
    monkeypatch.syspath_prepend(str(tmp_path))
    _unload()
    try:
        yield TestClient(importlib.import_module("main").app)
    finally:
        _unload()


def test_root(client):
    body = client.get("/").json()
    assert body["name"] == "Swagger Petstore"
    assert body["capabilities"] == {"resources": ["/pets", "/pets/{petId}"], "tools": ["/pets"]}


def test_missing_key_is_unauthorized(client):
    response = client.get("/mcp/resources/pets")
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Unauthorized"}

    response = client.post("/mcp/tools/pets", headers={"X-API-Key": "wrong"}, json={})
    assert response.status_code == 401


def test_resource_echoes_path_and_query(client):
    response = client.get("/mcp/resources/pets/42?limit=5", headers=AUTH)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["operation"] == "showPetById"
    assert data["params"] == {"petId": "42", "limit": "5"}
    assert data["content"] == [{"type": "text", "text": "Resource data for /pets/{petId}"}]


@pytest.mark.parametrize("content, request_data", [
    (b"", {}),
    (b"  \n", {}),
    (b"null", {}),
    (b'{"name": "Rex", "extra": [1, "a"]}', {"name": "Rex", "extra": [1, "a"]}),
    (b'{"id": null, "tag": "small"}', {"id": None, "tag": "small"}),
    (b'{"id": 7, "name": "Rex"}', {"id": 7, "name": "Rex"}),
])
def test_tool_accepts_body(client, content, request_data):
    # No Content-Type: the body is read as JSON regardless
    response = client.post("/mcp/tools/pets", headers=AUTH, content=content)
    assert response.status_code == 200
    result = response.json()["result"]
    assert result["requestData"] == request_data
    assert result["content"] == [{"type": "text", "text": "Executed createPets for /pets"}]


@pytest.mark.parametrize("content", [
    b"[1]",
    b'"pet"',
    b"42",
    b"{",
    b'{"id": "7"}',
    b'{"id": 7.5}',
    b'{"id": true}',
    b'{"name": 3}',
])
def test_tool_rejects_body(client, content):
    response = client.post("/mcp/tools/pets", headers=AUTH, content=content)
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid request body"}


def test_conformance_passes(client):
    report = ConformanceValidator("http://testserver", api_key=SECRET, transport=client._transport).run()
    assert report.success, report.failures
    assert [r.test for r in report.results] == [
        "Root endpoint", "Resource endpoint", "Tool endpoint", "Authentication",
    ]
    assert report.results[-1].message == "Correctly rejected unauthenticated request"
