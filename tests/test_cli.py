import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import yaml
from click.testing import CliRunner

from mcp_forge.cli import _filter_endpoints, main
from mcp_forge.conformance import CheckResult, ConformanceReport
from mcp_forge.parser.base import Endpoint

FIXTURES = Path(__file__).parent / "fixtures"


def _make_endpoint(method: str, path: str) -> Endpoint:
    return Endpoint(id=f"{method} {path}", path=path, method=method)


class TestCliInspect:
    def test_inspect_lists_endpoints(self):
        runner = CliRunner()
        result = runner.invoke(main, ["inspect", str(FIXTURES / "petstore.yaml")])
        assert result.exit_code == 0, result.output
        assert "Found 3 endpoints (openapi3)." in result.output
        assert "[resource] GET /pets" in result.output
        assert "[tool    ] POST /pets" in result.output

    def test_inspect_json(self):
        runner = CliRunner()
        result = runner.invoke(main, ["inspect", str(FIXTURES / "petstore.yaml"), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output[result.output.index("["):])
        assert [ep["mcpType"] for ep in data] == ["resource", "tool", "resource"]
        assert data[0]["operationId"] == "listPets"

    def test_unknown_format(self, tmp_path):
        doc = tmp_path / "notes.txt"
        doc.write_text("just some words", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(main, ["inspect", str(doc)])
        assert result.exit_code == 1
        assert "Could not determine the API definition format" in result.output


class TestCliInitConfigAndGenerate:
    def test_round_trip(self, tmp_path):
        config_path = tmp_path / "server.yaml"
        runner = CliRunner()
        result = runner.invoke(main, [
            "init-config", str(FIXTURES / "petstore.yaml"),
            "-o", str(config_path),
            "--name", "Pets",
            "--only", "GET /pets*",
        ])
        assert result.exit_code == 0, result.output
        assert "Selected 2 of 3 endpoints." in result.output

        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        assert data["name"] == "Pets"
        assert [ep["selected"] for ep in data["endpoints"]] == [True, False, True]

        out = tmp_path / "server"
        result = runner.invoke(main, ["generate", str(config_path), "-o", str(out), "--language", "ts"])
        assert result.exit_code == 0, result.output
        manifest = json.loads((out / "mcp-manifest.json").read_text(encoding="utf-8"))
        assert manifest["language"] == "TypeScript"
        assert manifest["capabilities"] == {"resources": ["/pets", "/pets/{petId}"], "tools": []}
        assert (out / "src" / "index.ts").exists()

    def test_generate_invalid_config(self, tmp_path):
        config_path = tmp_path / "server.yaml"
        config_path.write_text("description: no name\n", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(main, ["generate", str(config_path), "-o", str(tmp_path / "out")])
        assert result.exit_code == 1
        assert "Invalid server config" in result.output

    def test_generate_unsupported_language(self, tmp_path):
        config_path = tmp_path / "server.yaml"
        config_path.write_text("name: Pets\nlanguage: Rust\n", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(main, ["generate", str(config_path), "-o", str(tmp_path / "out")])
        assert result.exit_code == 1
        assert "Rust" in result.output
        assert not (tmp_path / "out").exists()


class TestCliRun:
    def test_run_python(self, tmp_path):
        out = tmp_path / "server"
        runner = CliRunner()
        result = runner.invoke(main, [
            "run", str(FIXTURES / "petstore.yaml"),
            "-o", str(out),
            "--auth-type", "api-key",
        ])
        assert result.exit_code == 0, result.output
        assert (out / "main.py").exists()
        assert (out / "middleware" / "auth.py").exists()
        assert (out / "docker-compose.yml").exists()
        assert "Generated" in result.output

    def test_run_go_with_filter_and_provider(self, tmp_path):
        out = tmp_path / "server"
        runner = CliRunner()
        result = runner.invoke(main, [
            "run", str(FIXTURES / "store_v2.json"),
            "-o", str(out),
            "--language", "golang",
            "--provider", "AWS",
            "--only", "/orders",
        ])
        assert result.exit_code == 0, result.output
        assert "Filtered to 2 endpoints." in result.output
        assert (out / "go.mod").exists()
        assert (out / "serverless.yml").exists()
        manifest = json.loads((out / "mcp-manifest.json").read_text(encoding="utf-8"))
        assert manifest["capabilities"] == {"resources": ["/orders"], "tools": ["/orders"]}

    def test_run_no_match(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "run", str(FIXTURES / "petstore.yaml"),
            "-o", str(tmp_path / "server"),
            "--only", "DELETE /orders",
        ])
        assert result.exit_code == 1
        assert "No endpoints match: DELETE /orders" in result.output

    def test_keep_existing(self, tmp_path):
        out = tmp_path / "server"
        out.mkdir()
        (out / "README.md").write_text("my notes\n", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(main, [
            "run", str(FIXTURES / "petstore.yaml"),
            "-o", str(out),
            "--keep-existing",
        ])
        assert result.exit_code == 0, result.output
        assert (out / "README.md").read_text(encoding="utf-8") == "my notes\n"
        assert "Kept 1 existing files" in result.output
        assert (out / "main.py").exists()

    def test_language_from_env(self, tmp_path):
        out = tmp_path / "server"
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["run", str(FIXTURES / "library.raml"), "-o", str(out)],
            env={"MCP_FORGE_LANGUAGE": "typescript"},
        )
        assert result.exit_code == 0, result.output
        assert (out / "package.json").exists()


class TestCliValidate:
    @patch("mcp_forge.cli.ConformanceValidator")
    def test_all_pass(self, MockValidator):
        mock_validator = MagicMock()
        mock_validator.run.return_value = ConformanceReport(success=True, results=[
            CheckResult(test="Root endpoint", passed=True, message="Server: Pets v1.0.0"),
        ])
        MockValidator.return_value = mock_validator

        runner = CliRunner()
        result = runner.invoke(main, ["validate", "http://localhost:8000", "--api-key", "k"])

        assert result.exit_code == 0
        assert "PASS Root endpoint: Server: Pets v1.0.0" in result.output
        assert "All checks passed." in result.output
        MockValidator.assert_called_once_with("http://localhost:8000", api_key="k", timeout=10.0, auth_scheme="auto")

    @patch("mcp_forge.cli.ConformanceValidator")
    def test_failure_exit_code(self, MockValidator):
        MockValidator.return_value.run.return_value = ConformanceReport(success=False, results=[
            CheckResult(test="Connection", passed=False, message="Could not connect to server: refused"),
        ])
        runner = CliRunner()
        result = runner.invoke(main, ["validate", "http://localhost:1"])
        assert result.exit_code == 1
        assert "FAIL Connection" in result.output


class TestCliLanguages:
    def test_lists_backends(self):
        runner = CliRunner()
        result = runner.invoke(main, ["languages"])
        assert result.exit_code == 0
        assert [line.split()[0] for line in result.output.splitlines()] == ["Python", "TypeScript", "Go"]


class TestFilterEndpoints:
    def test_filter_by_method_and_path(self):
        endpoints = [
            _make_endpoint("GET", "/pets"),
            _make_endpoint("POST", "/pets"),
            _make_endpoint("GET", "/users"),
        ]
        result = _filter_endpoints(endpoints, ("POST /pets",))
        assert len(result) == 1
        assert result[0].method == "POST"
        assert result[0].path == "/pets"

    def test_filter_by_path_only(self):
        endpoints = [
            _make_endpoint("GET", "/pets"),
            _make_endpoint("POST", "/pets/123"),
            _make_endpoint("GET", "/users"),
        ]
        result = _filter_endpoints(endpoints, ("/pets/*",))
        assert len(result) == 1
        assert result[0].path == "/pets/123"

    def test_filter_method_is_case_insensitive(self):
        endpoints = [_make_endpoint("DELETE", "/pets/1")]
        assert _filter_endpoints(endpoints, ("delete /pets/*",)) == endpoints

    def test_filter_no_match(self):
        endpoints = [
            _make_endpoint("GET", "/pets"),
            _make_endpoint("POST", "/pets"),
        ]
        result = _filter_endpoints(endpoints, ("DELETE /orders",))
        assert len(result) == 0
