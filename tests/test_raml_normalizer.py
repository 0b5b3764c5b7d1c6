from pathlib import Path

from mcp_forge.diagnostics import Diagnostics
from mcp_forge.parser.base import McpType
from mcp_forge.parser.loader import parse_definition
from mcp_forge.parser.normalize import normalize

FIXTURES = Path(__file__).parent / "fixtures"


def _endpoints(content: str | None = None, diagnostics: Diagnostics | None = None):
    d = diagnostics if diagnostics is not None else Diagnostics()
    if content is None:
        content = (FIXTURES / "library.raml").read_text(encoding="utf-8")
    return normalize(parse_definition(content, "raml", d), d)


def _find(endpoints, method: str, path: str):
    return next(e for e in endpoints if e.method.value == method and e.path == path)


class TestRamlResources:
    def test_nested_paths_concatenate(self):
        assert [e.label for e in _endpoints()] == [
            "GET /books",
            "POST /books",
            "GET /books/{bookId}",
            "DELETE /books/{bookId}",
            "POST /books/{bookId}/loans",
        ]

    def test_kinds(self):
        endpoints = _endpoints()
        assert _find(endpoints, "GET", "/books").mcp_type == McpType.RESOURCE
        assert _find(endpoints, "POST", "/books/{bookId}/loans").mcp_type == McpType.TOOL

    def test_display_name_is_summary(self):
        assert _find(_endpoints(), "GET", "/books").summary == "List books"

    def test_query_parameters(self):
        params = {p.name: p for p in _find(_endpoints(), "GET", "/books").parameters}
        assert params["author"].location == "query"
        assert params["author"].required is False
        assert params["author"].description == "Filter by author"
        assert params["limit"].type == "integer"
        assert params["limit"].required is False

    def test_uri_parameters_inherited_by_nested_resources(self):
        loans = _find(_endpoints(), "POST", "/books/{bookId}/loans")
        params = {p.name: p for p in loans.parameters}
        assert params["bookId"].location == "path"
        assert params["bookId"].type == "integer"
        assert params["bookId"].required is True
        assert params["X-Member-Id"].location == "header"
        assert params["X-Member-Id"].required is True

    def test_body_schema(self):
        loans = _find(_endpoints(), "POST", "/books/{bookId}/loans")
        assert set(loans.request_schema["properties"]) == {"member", "days"}

    def test_include_kept_as_text(self):
        post = _find(_endpoints(), "POST", "/books")
        assert post.request_schema == "!include schemas/book.json"

    def test_responses(self):
        get_book = _find(_endpoints(), "GET", "/books/{bookId}")
        assert [r.status_code for r in get_book.responses] == ["200", "404"]
        assert get_book.responses[1].description == "Not found"

    def test_undeclared_placeholder_becomes_required_path_param(self):
        endpoints = _endpoints("#%RAML 1.0\ntitle: T\n/users/{userId}:\n  get: {}\n")
        assert endpoints[0].parameters[0].name == "userId"
        assert endpoints[0].parameters[0].required is True


class TestRamlWarnings:
    def test_no_resources(self):
        d = Diagnostics()
        assert _endpoints("#%RAML 1.0\ntitle: Empty\n", d) == []
        assert any("no resources" in w.message for w in d.for_stage("normalize"))

    def test_options_skipped(self):
        d = Diagnostics()
        endpoints = _endpoints("#%RAML 1.0\ntitle: T\n/a:\n  options: {}\n  get: {}\n", d)
        assert [e.label for e in endpoints] == ["GET /a"]
        assert any("OPTIONS" in w.message for w in d.warnings)

    def test_base_uri_parameters_reported(self):
        d = Diagnostics()
        content = "#%RAML 1.0\ntitle: T\nbaseUriParameters:\n  region: string\n/a:\n  get: {}\n"
        _endpoints(content, d)
        assert any("region" in w.message for w in d.warnings)
