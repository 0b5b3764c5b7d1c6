"""Shared rendering machinery for the language backends.

Each backend renders the route table through its own Jinja2 templates and
adds the files every project carries: README, .env.example, the
structural manifest and the hosting metadata for the chosen provider.
"""

import json
from pathlib import Path
from typing import Any

import jinja2

from mcp_forge.generator.files import ServerFile
from mcp_forge.generator.ir import Route, RouteTable, TypeRef, camel, pascal

TEMPLATE_DIR = Path(__file__).parent / "templates"


def quote(value: Any) -> str:
    """A double-quoted string literal valid in Python, TypeScript, Go and YAML."""
    text = json.dumps("" if value is None else str(value), ensure_ascii=False)
    return text.replace("\u2028", "\\u2028").replace("\u2029", "\\u2029")


def comment(value: Any) -> str:
    """Collapse text onto one line so it can sit after a line comment marker."""
    return " ".join(str(value or "").split())


def route_comment(route: Route) -> str:
    text = f"{route.method} {route.path}"
    if route.summary:
        text += f": {route.summary}"
    return comment(text)


def py_type(ref: TypeRef) -> str:
    if ref.kind == "array":
        return f"List[Optional[{py_type(ref.item) if ref.item else 'Any'}]]"
    return {
        "string": "str",
        "integer": "int",
        "number": "float",
        "boolean": "bool",
        "object": "Dict[str, Any]",
    }.get(ref.kind, "Any")


def ts_type(ref: TypeRef) -> str:
    if ref.kind == "array":
        item = ts_type(ref.item) if ref.item else "unknown"
        return f"Array<{item} | null>"
    return {
        "string": "string",
        "integer": "number",
        "number": "number",
        "boolean": "boolean",
        "object": "Record<string, unknown>",
    }.get(ref.kind, "unknown")


def value_check(ref: TypeRef) -> str:
    """Name of the body field check for ``ref`` in the TypeScript and Go envelopes.

    Both envelopes define the same helpers, so one expression serves both.
    """
    if ref.kind == "array":
        return f"arrayOf({value_check(ref.item) if ref.item else 'isAny'})"
    return {
        "string": "isString",
        "integer": "isInteger",
        "number": "isNumber",
        "boolean": "isBoolean",
        "object": "isObject",
    }.get(ref.kind, "isAny")


def query_comment(route: Route) -> str:
    """``Query: limit (integer, required), tag (string)``"""
    parts = []
    for p in route.query_params:
        detail = p.type.kind + (", required" if p.required else "")
        parts.append(f"{p.name} ({detail})")
    return comment("Query: " + ", ".join(parts))


def express_path(template: str) -> str:
    """``/pets/{pet_id}`` -> ``/pets/:pet_id``"""
    return "/".join(
        ":" + seg[1:-1] if seg.startswith("{") and seg.endswith("}") else seg
        for seg in template.split("/")
    )


def make_environment() -> jinja2.Environment:
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=jinja2.StrictUndefined,
    )
    env.filters.update({
        "quote": quote,
        "comment": comment,
        "route_comment": route_comment,
        "camel": camel,
        "pascal": pascal,
        "py_type": py_type,
        "ts_type": ts_type,
        "value_check": value_check,
        "query_comment": query_comment,
        "express_path": express_path,
    })
    return env


def build_manifest(table: RouteTable, language: str) -> dict:
    """Structural description of a generated server, consumed by packaging."""
    return {
        "name": table.name,
        "version": table.version,
        "description": table.description,
        "language": language,
        "capabilities": table.capabilities,
        "routes": [
            {
                "kind": r.kind,
                "method": r.http_method,
                "route": r.mcp_path,
                "sourceMethod": r.method,
                "sourcePath": r.path,
                "operation": r.operation,
                "endpointId": r.endpoint_id,
                "summary": r.summary,
                "description": r.description,
                "queryParameters": [
                    {
                        "name": p.name,
                        "type": p.type.kind,
                        "required": p.required,
                        "description": p.description,
                    }
                    for p in r.query_params
                ],
            }
            for r in table.routes
        ],
        "auth": {
            "scheme": table.auth.scheme,
            "location": table.auth.location if table.auth.enabled else None,
            "name": table.auth.param_name or None,
            "secretEnv": table.auth.env_var if table.auth.enabled else None,
        },
        "hosting": table.hosting.model_dump(mode="json"),
    }


class Backend:
    """Base class for a target language.

    Subclasses set the class attributes and implement ``_source_files``.
    """

    language = ""
    aliases: tuple[str, ...] = ()
    template_dir = ""
    port = 8000
    # Hosting metadata: serverless runtime/handler, App Engine runtime
    aws_runtime = ""
    aws_handler = ""
    gcp_runtime = ""
    gcp_entrypoint = ""
    # Azure Functions custom handler process
    azure_executable = ""
    azure_arguments: tuple[str, ...] = ()
    install_command = ""
    build_command = ""
    start_command = ""

    def __init__(self):
        self.env = make_environment()

    def render(self, template: str, **context) -> str:
        return self.env.get_template(f"{self.template_dir}/{template}").render(backend=self, **context)

    def render_common(self, template: str, **context) -> str:
        return self.env.get_template(f"common/{template}").render(backend=self, **context)

    def _file(self, path: str, content: str, type_: str, language: str | None = None) -> ServerFile:
        return ServerFile(
            name=path.rsplit("/", 1)[-1],
            path=path,
            content=content,
            type=type_,
            language=language,
        )

    def _source_files(self, table: RouteTable) -> list[ServerFile]:
        raise NotImplementedError

    def _hosting_file(self, table: RouteTable) -> ServerFile:
        provider = table.provider
        if provider == "aws":
            path, template, language = "serverless.yml", "serverless.yml.j2", "yaml"
        elif provider == "gcp":
            path, template, language = "app.yaml", "app.yaml.j2", "yaml"
        elif provider == "azure":
            path, template, language = "host.json", "host.json.j2", "json"
        else:
            path, template, language = "docker-compose.yml", "docker-compose.yml.j2", "yaml"
        return self._file(path, self.render_common(template, table=table), "config", language)

    def generate(self, table: RouteTable) -> list[ServerFile]:
        """Render every file of the project, in a fixed order."""
        files = self._source_files(table)
        files.append(self._file(
            "README.md", self.render_common("README.md.j2", table=table), "documentation", "markdown",
        ))
        files.append(self._file(
            ".env.example", self.render_common("env.example.j2", table=table), "config",
        ))
        files.append(self._file(
            "mcp-manifest.json",
            json.dumps(build_manifest(table, self.language), indent=2, ensure_ascii=False) + "\n",
            "config",
            "json",
        ))
        files.append(self._hosting_file(table))
        return files
