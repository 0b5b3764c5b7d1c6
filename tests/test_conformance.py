import base64
import json

import httpx
import pytest

from mcp_forge.conformance import ConformanceValidator

ROOT = {
    "name": "Pet Store",
    "version": "1.0.0",
    "description": "",
    "capabilities": {"resources": ["/pets", "/pets/{petId}"], "tools": ["/pets"]},
}


def _server(secret: str | None = None, root: dict | None = None, overrides: dict | None = None):
    """A handler behaving like a generated server, recording every request."""
    seen: list[httpx.Request] = []
    overrides = overrides or {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        path = request.url.path
        if path in overrides:
            return overrides[path]
        if path == "/":
            return httpx.Response(200, json=root or ROOT)
        if secret is not None:
            supplied = request.headers.get("X-API-Key")
            auth = request.headers.get("Authorization", "")
            if auth.startswith("Basic "):
                supplied = base64.b64decode(auth[6:]).decode()
            if supplied != secret:
                return httpx.Response(401, json={"success": False, "error": "Unauthorized"})
        if request.method == "GET" and path.startswith("/mcp/resources/"):
            return httpx.Response(200, json={
                "success": True,
                "data": {"id": "ep1", "operation": "list_pets", "params": {}, "content": []},
            })
        if request.method == "POST" and path.startswith("/mcp/tools/"):
            data = json.loads(request.content or b"{}")
            return httpx.Response(200, json={
                "success": True,
                "result": {"id": "ep2", "operation": "create_pets", "params": {}, "content": [], "requestData": data},
            })
        return httpx.Response(404, json={"success": False, "error": "Not Found"})

    return handler, seen


def _run(handler, **kwargs):
    return ConformanceValidator("http://server.test/", transport=httpx.MockTransport(handler), **kwargs).run()


class TestConformingServer:
    def test_all_checks_pass(self):
        handler, seen = _server()
        report = _run(handler)
        assert report.success
        assert [(r.test, r.message) for r in report.results] == [
            ("Root endpoint", "Server: Pet Store v1.0.0"),
            ("Resource endpoint", "Successfully accessed resource: /pets"),
            ("Tool endpoint", "Successfully called tool: /pets"),
            ("Authentication", "No API key provided, skipping authentication test"),
        ]
        assert [(r.method, r.url.path) for r in seen] == [
            ("GET", "/"),
            ("GET", "/mcp/resources/pets"),
            ("POST", "/mcp/tools/pets"),
        ]
        assert json.loads(seen[2].content) == {"test": True}

    def test_api_key_and_rejection(self):
        handler, seen = _server(secret="s3cret")
        report = _run(handler, api_key="s3cret")
        assert report.success
        assert report.results[-1].message == "Correctly rejected unauthenticated request"
        assert seen[1].headers["X-API-Key"] == "s3cret"
        assert seen[1].headers["Authorization"] == "Bearer s3cret"
        assert "X-API-Key" not in seen[-1].headers

    def test_basic_scheme(self):
        handler, seen = _server(secret="admin:pw")
        report = _run(handler, api_key="admin:pw", auth_scheme="basic")
        assert report.success
        assert seen[1].headers["Authorization"] == "Basic " + base64.b64encode(b"admin:pw").decode()

    def test_no_capabilities(self):
        handler, _ = _server(root=dict(ROOT, capabilities={"resources": [], "tools": []}))
        report = _run(handler, api_key="k")
        assert report.success
        assert [r.message for r in report.results[1:]] == [
            "No resources to test",
            "No tools to test",
            "No endpoints available to test authentication",
        ]

    def test_tools_only_calls_the_tool_once(self):
        handler, seen = _server(secret="k", root=dict(ROOT, capabilities={"resources": [], "tools": ["/pets"]}))
        report = _run(handler, api_key="k")
        assert report.success
        assert report.results[-1].message == "No resources to test, skipping authentication test"
        assert [(r.method, r.url.path) for r in seen] == [("GET", "/"), ("POST", "/mcp/tools/pets")]


class TestFailures:
    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        report = _run(handler)
        assert not report.success
        assert len(report.results) == 1
        assert report.results[0].test == "Connection"
        assert report.results[0].message.startswith("Could not connect to server")

    def test_root_not_json(self):
        handler, seen = _server(overrides={"/": httpx.Response(200, text="<html>")})
        report = _run(handler)
        assert [(r.test, r.message) for r in report.failures] == [("Root endpoint", "Response is not JSON")]
        assert len(seen) == 1

    def test_root_missing_fields(self):
        handler, _ = _server(root={"name": "x"})
        report = _run(handler)
        assert report.results[0].message == "Missing required fields (name, version, capabilities)"
        assert len(report.results) == 1

    def test_root_http_error(self):
        handler, _ = _server(overrides={"/": httpx.Response(500)})
        report = _run(handler)
        assert report.results[0].message == "HTTP 500: Internal Server Error"

    def test_invalid_envelopes(self):
        handler, _ = _server(overrides={
            "/mcp/resources/pets": httpx.Response(200, json={"success": True, "data": {"id": 1}}),
            "/mcp/tools/pets": httpx.Response(200, json=[1, 2]),
        })
        report = _run(handler)
        assert [r.message for r in report.failures] == [
            "Invalid resource response format",
            "Invalid tool response format",
        ]

    def test_unprotected_server(self):
        handler, _ = _server()
        report = _run(handler, api_key="k")
        assert [r.message for r in report.failures] == ["Expected 401, got 200"]

    def test_wrong_key_rejected(self):
        handler, _ = _server(secret="right")
        report = _run(handler, api_key="wrong")
        assert [r.message for r in report.failures] == ["HTTP 401: Unauthorized", "HTTP 401: Unauthorized"]

    def test_unknown_auth_scheme(self):
        with pytest.raises(ValueError):
            ConformanceValidator("http://server.test", auth_scheme="digest")
