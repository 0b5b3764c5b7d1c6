"""Language-neutral route table shared by every backend.

``build_route_table`` turns a ServerConfig into the exact set of routes,
handler names and type descriptors a server exposes. Backends only
render this table, so every language serves the same wire surface.
"""

import keyword
import re
from typing import Any

from pydantic import BaseModel

from mcp_forge.classifier import RESOURCE, TOOL, operation_name, to_identifier
from mcp_forge.config import AuthLocation, AuthType, HostingConfig, ServerConfig
from mcp_forge.diagnostics import Diagnostics
from mcp_forge.parser.base import Endpoint, McpType
from mcp_forge.parser.openapi import schema_type

RESOURCE_PREFIX = "/mcp/resources"
TOOL_PREFIX = "/mcp/tools"

# Credential names used when the config does not set one
DEFAULT_HEADER_NAME = "X-API-Key"
DEFAULT_QUERY_NAME = "api_key"
DEFAULT_COOKIE_NAME = "api_key"
AUTHORIZATION_HEADER = "Authorization"
SECRET_ENV_VAR = "API_KEY"

_PLAIN_SEGMENT = re.compile(r"^[A-Za-z0-9_~-][A-Za-z0-9._~-]*$")
_WHOLE_PARAM = re.compile(r"^\{([^{}]+)\}$")

# Names pydantic reserves on BaseModel subclasses, plus builtins used in
# generated field annotations
_PYDANTIC_RESERVED = {
    "schema", "json", "dict", "copy", "construct", "validate", "fields",
    "parse_obj", "parse_raw", "parse_file", "from_orm", "update_forward_refs",
    "schema_json", "str", "int", "float", "bool",
}

# Local names used inside generated handlers
_HANDLER_LOCALS = {
    "request", "request_data", "body", "params", "vars", "w", "r", "req", "res",
    "resource_result", "tool_result", "read_body",
}

# Module-level names in generated route files
_RESERVED_HANDLERS = {
    "app", "router", "main", "root", "unauthorized", "require_auth", "write_json", "write_error",
    "resource_result", "tool_result", "read_body",
}

_SCALARS = {
    "string": "string", "str": "string", "text": "string", "date": "string",
    "date-time": "string", "datetime": "string", "uuid": "string", "file": "string",
    "integer": "integer", "int": "integer", "int32": "integer", "int64": "integer",
    "long": "integer",
    "number": "number", "float": "number", "double": "number", "decimal": "number",
    "boolean": "boolean", "bool": "boolean",
    "array": "array", "list": "array",
    "object": "object", "map": "object", "dict": "object",
}


class TypeRef(BaseModel):
    """A portable type: one of string/integer/number/boolean/array/object/any.

    ``raw`` keeps the declared type text so unknown types are not lost.
    """

    kind: str
    raw: str = ""
    item: "TypeRef | None" = None


def type_from_text(text: str) -> TypeRef:
    raw = (text or "").strip()
    key = raw.lower()
    if key.endswith("[]"):
        return TypeRef(kind="array", raw=raw, item=type_from_text(raw[:-2]))
    return TypeRef(kind=_SCALARS.get(key, "any"), raw=raw)


def type_from_schema(schema: Any) -> TypeRef:
    if not isinstance(schema, dict):
        return type_from_text(str(schema)) if isinstance(schema, str) else TypeRef(kind="any")
    ref = type_from_text(schema_type(schema))
    if ref.kind == "array" and ref.item is None:
        items = schema.get("items")
        ref.item = type_from_schema(items) if items else TypeRef(kind="any")
    return ref


class RouteParam(BaseModel):
    name: str  # as written in the original path
    ident: str  # wildcard name in the route template


class RequestField(BaseModel):
    name: str  # wire name
    ident: str  # snake_case identifier safe in every target language
    type: TypeRef
    required: bool = False
    description: str = ""
    location: str = "body"


class AuthSpec(BaseModel):
    scheme: str = "none"  # none / api_key / bearer / basic
    location: str = "header"
    param_name: str = ""
    env_var: str = SECRET_ENV_VAR

    @property
    def enabled(self) -> bool:
        return self.scheme != "none"


class Route(BaseModel):
    kind: str  # resource / tool
    endpoint_id: str
    operation: str
    method: str  # declared HTTP method of the wrapped API
    path: str  # original path
    template: str  # path with sanitized wildcards
    handler: str  # unique snake_case handler name
    summary: str = ""
    description: str = ""
    path_params: list[RouteParam] = []
    query_params: list[RequestField] = []
    fields: list[RequestField] = []
    model_name: str | None = None

    @property
    def prefix(self) -> str:
        return RESOURCE_PREFIX if self.kind == RESOURCE else TOOL_PREFIX

    @property
    def http_method(self) -> str:
        return "GET" if self.kind == RESOURCE else "POST"

    @property
    def mcp_path(self) -> str:
        return self.prefix + self.path


class RouteTable(BaseModel):
    name: str
    slug: str
    description: str = ""
    version: str
    language: str = ""
    auth: AuthSpec
    hosting: HostingConfig
    routes: list[Route] = []

    @property
    def resources(self) -> list[Route]:
        return [r for r in self.routes if r.kind == RESOURCE]

    @property
    def tools(self) -> list[Route]:
        return [r for r in self.routes if r.kind == TOOL]

    @property
    def provider(self) -> str:
        key = self.hosting.provider.strip().lower()
        return {"google": "gcp"}.get(key, key)

    @property
    def capabilities(self) -> dict[str, list[str]]:
        return {
            "resources": [r.path for r in self.resources],
            "tools": [r.path for r in self.tools],
        }


# -- naming -------------------------------------------------------------------

def camel(ident: str) -> str:
    head, *rest = ident.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


def pascal(ident: str) -> str:
    return "".join(p[:1].upper() + p[1:] for p in ident.split("_") if p)


def safe_ident(text: str) -> str:
    """snake_case identifier that is not a Python keyword or pydantic attribute."""
    ident = to_identifier(text)
    if ident.startswith("model_"):
        return "field_" + ident
    if keyword.iskeyword(ident) or ident in _PYDANTIC_RESERVED:
        ident += "_"
    return ident


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "mcp-server"


def _field_key(ident: str) -> str:
    return pascal(ident).lower()


def _unique(ident: str, taken: set[str], key=lambda s: s) -> str:
    candidate = ident
    n = 2
    while key(candidate) in taken:
        candidate = f"{ident}_{n}"
        n += 1
    taken.add(key(candidate))
    return candidate


def route_template(path: str) -> tuple[str, list[RouteParam]]:
    """Rewrite ``path`` so every wildcard has a plain identifier name.

    A segment that is not a bare ``{param}`` and not plain literal text
    becomes a single wildcard ``{p_N}`` matching the whole segment.
    """
    segments = []
    params: list[RouteParam] = []
    taken: set[str] = set(_HANDLER_LOCALS)
    names: set[str] = set()
    for n, segment in enumerate(path.split("/")):
        if not segment:
            segments.append(segment)
            continue
        whole = _WHOLE_PARAM.match(segment)
        if whole:
            ident = _unique(safe_ident(whole.group(1)), taken)
            name = whole.group(1) if whole.group(1) not in names else ident
            names.add(name)
            params.append(RouteParam(name=name, ident=ident))
            segments.append("{" + ident + "}")
        elif _PLAIN_SEGMENT.match(segment):
            segments.append(segment)
        else:
            ident = _unique(f"p_{n}", taken)
            name = segment if segment not in names else ident
            names.add(name)
            params.append(RouteParam(name=name, ident=ident))
            segments.append("{" + ident + "}")
    template = "/".join(segments)
    return template or "/", params


# -- assembly -----------------------------------------------------------------

def _auth_spec(config: ServerConfig, diagnostics: Diagnostics) -> AuthSpec:
    auth = config.authentication
    if auth.type == AuthType.NONE:
        return AuthSpec()
    if auth.type == AuthType.API_KEY:
        location = (auth.location or AuthLocation.HEADER).value
        default = {
            "header": DEFAULT_HEADER_NAME,
            "query": DEFAULT_QUERY_NAME,
            "cookie": DEFAULT_COOKIE_NAME,
        }[location]
        return AuthSpec(scheme="api_key", location=location, param_name=auth.name or default)

    scheme = "bearer" if auth.type == AuthType.BEARER else "basic"
    if auth.location not in (None, AuthLocation.HEADER):
        diagnostics.warn("generate", f"{auth.type.value} is always read from the Authorization header")
    return AuthSpec(scheme=scheme, location="header", param_name=AUTHORIZATION_HEADER)


def _request_fields(endpoint: Endpoint) -> list[RequestField]:
    schema = endpoint.request_schema
    fields: list[RequestField] = []
    taken: set[str] = set()
    if isinstance(schema, dict) and isinstance(schema.get("properties"), dict):
        required = schema.get("required") if isinstance(schema.get("required"), list) else []
        for name, prop in schema["properties"].items():
            prop = prop if isinstance(prop, dict) else {}
            fields.append(RequestField(
                name=str(name),
                ident=_unique(safe_ident(str(name)), taken, key=_field_key),
                type=type_from_schema(prop),
                required=name in required,
                description=str(prop.get("description") or ""),
            ))
        return fields
    for param in endpoint.parameters:
        if param.location in ("query", "formData", "body"):
            fields.append(RequestField(
                name=param.name,
                ident=_unique(safe_ident(param.name), taken, key=_field_key),
                type=type_from_text(param.type),
                required=param.required,
                description=param.description,
                location=param.location,
            ))
    return fields


def _query_params(endpoint: Endpoint) -> list[RequestField]:
    taken: set[str] = set()
    return [
        RequestField(
            name=p.name,
            ident=_unique(safe_ident(p.name), taken),
            type=type_from_text(p.type),
            required=p.required,
            description=p.description,
            location="query",
        )
        for p in endpoint.parameters
        if p.location == "query"
    ]


def build_route_table(config: ServerConfig, diagnostics: Diagnostics) -> RouteTable:
    """Resolve a ServerConfig into the routes every backend must serve.

    Unselected and ``none`` endpoints are dropped, malformed endpoints and
    repeated (kind, path) pairs are skipped with a warning, and handler
    names are made unique in both snake_case and camelCase form.
    """
    routes: list[Route] = []
    seen_routes: set[tuple[str, str]] = set()
    handlers: set[str] = {camel(name).lower() for name in _RESERVED_HANDLERS}
    models: set[str] = set()

    for ep in config.endpoints:
        if not ep.selected or ep.mcp_type in (None, McpType.NONE):
            continue
        if not ep.is_wellformed:
            diagnostics.warn("generate", "Skipped malformed endpoint (missing path or method)", ep.label)
            continue
        kind = ep.mcp_type.value
        path = ep.path.strip()
        if not path.startswith("/"):
            path = "/" + path
        if (kind, path) in seen_routes:
            diagnostics.warn("generate", f"Skipped duplicate {kind} route; the first one wins", ep.label)
            continue
        seen_routes.add((kind, path))

        operation = ep.operation_id or operation_name(ep.method.value, path)
        handler = _unique(safe_ident(operation), handlers, key=lambda s: camel(s).lower())
        template, path_params = route_template(path)
        model_name = None
        fields: list[RequestField] = []
        if kind == TOOL:
            fields = _request_fields(ep)
            model_name = _unique(pascal(handler) + "Request", models)

        routes.append(Route(
            kind=kind,
            endpoint_id=ep.id,
            operation=operation,
            method=ep.method.value,
            path=path,
            template=template,
            handler=handler,
            summary=ep.summary,
            description=ep.description,
            path_params=path_params,
            query_params=_query_params(ep) if kind == RESOURCE else [],
            fields=fields,
            model_name=model_name,
        ))

    return RouteTable(
        name=config.name,
        slug=slugify(config.name),
        description=config.description,
        version=config.version,
        language=config.language,
        auth=_auth_spec(config, diagnostics),
        hosting=config.hosting,
        routes=routes,
    )
