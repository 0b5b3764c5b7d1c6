"""OpenAPI / Swagger normalizer.

Walks the ``paths`` of an OpenAPI 3.x or Swagger 2.0 document into
canonical Endpoint models.
"""

from typing import Any

from mcp_forge.diagnostics import Diagnostics
from mcp_forge.parser.base import Endpoint, Parameter, ParsedDefinition, Response

OPERATION_METHODS = ("get", "post", "put", "patch", "delete", "head")
SKIPPED_METHODS = ("options", "trace")

MAX_REF_DEPTH = 8


def _resolve_pointer(doc: dict, ref: str) -> Any:
    node: Any = doc
    for part in ref[2:].split("/"):
        part = part.replace("~1", "/").replace("~0", "~")
        if isinstance(node, dict) and part in node:
            node = node[part]
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            raise KeyError(ref)
    return node


def deref(doc: dict, node: Any, diagnostics: Diagnostics, seen: tuple[str, ...] = (), depth: int = 0) -> Any:
    """Resolve local ``$ref`` pointers below ``node``.

    External, circular and unresolvable references stay as ``{"$ref": ...}``
    so no information is dropped.
    """
    if isinstance(node, list):
        return [deref(doc, item, diagnostics, seen, depth) for item in node]
    if not isinstance(node, dict):
        return node

    ref = node.get("$ref")
    if isinstance(ref, str):
        if not ref.startswith("#/") or ref in seen or depth >= MAX_REF_DEPTH:
            return node
        try:
            target = _resolve_pointer(doc, ref)
        except KeyError:
            diagnostics.warn("normalize", f"Unresolvable reference kept as text: {ref}")
            return node
        resolved = deref(doc, target, diagnostics, seen + (ref,), depth + 1)
        if isinstance(resolved, dict):
            extra = {k: v for k, v in node.items() if k != "$ref"}
            return {**resolved, **extra}
        return resolved

    return {key: deref(doc, value, diagnostics, seen, depth) for key, value in node.items()}


def schema_type(schema: Any) -> str:
    """Describe a schema's type as text; unknown shapes are kept verbatim."""
    if not isinstance(schema, dict) or not schema:
        return "string"
    type_ = schema.get("type")
    if isinstance(type_, list):
        non_null = [t for t in type_ if t != "null"]
        type_ = non_null[0] if non_null else "null"
    if type_:
        return str(type_)
    if "$ref" in schema:
        return str(schema["$ref"])
    for key in ("allOf", "oneOf", "anyOf"):
        if key in schema:
            return key
    if "properties" in schema:
        return "object"
    if "items" in schema:
        return "array"
    return "string"


def _parameter(raw: dict, flavor: str) -> Parameter:
    location = str(raw.get("in", "query"))
    if flavor == "openapi2" and "schema" not in raw:
        type_ = str(raw.get("type", "string"))
    else:
        type_ = schema_type(raw.get("schema"))
    required = raw.get("required")
    return Parameter(
        name=str(raw["name"]),
        type=type_,
        required=bool(required) if required is not None else location == "path",
        description=str(raw.get("description") or ""),
        location=location,
    )


def _json_media(content: Any) -> Any:
    """Pick the JSON media type entry of a content map, else the first one."""
    if not isinstance(content, dict) or not content:
        return None
    for media_type, entry in content.items():
        if media_type == "application/json" or media_type.endswith("+json"):
            return entry
    return next(iter(content.values()))


def _request_schema(operation: dict, body_param: dict | None) -> Any:
    if body_param is not None:
        return body_param.get("schema")
    body = operation.get("requestBody")
    if not isinstance(body, dict):
        return None
    media = _json_media(body.get("content"))
    return media.get("schema") if isinstance(media, dict) else None


def _responses(responses: Any, flavor: str) -> list[Response]:
    result = []
    if not isinstance(responses, dict):
        return result
    for status_code, resp in responses.items():
        if not isinstance(resp, dict):
            continue
        if flavor == "openapi2":
            schema = resp.get("schema")
        else:
            media = _json_media(resp.get("content"))
            schema = media.get("schema") if isinstance(media, dict) else None
        result.append(Response(
            status_code=str(status_code),
            description=str(resp.get("description") or ""),
            schema=schema,
        ))
    return result


def _merge_parameters(
    path_level: list, op_level: list, flavor: str, diagnostics: Diagnostics, label: str,
) -> tuple[list[Parameter], dict | None]:
    """Merge parameter lists; operation-level entries override path-level ones."""
    merged: dict[str, Parameter] = {}
    body_param = None
    for source in (path_level, op_level):
        seen_here: set[str] = set()
        for raw in source:
            if not isinstance(raw, dict) or "name" not in raw:
                diagnostics.warn("normalize", "Skipped parameter without a name", label)
                continue
            if raw.get("in") == "body":
                body_param = raw
                continue
            param = _parameter(raw, flavor)
            if param.name in seen_here:
                diagnostics.warn("normalize", f"Duplicate parameter '{param.name}' ignored", label)
                continue
            seen_here.add(param.name)
            merged[param.name] = param
    return list(merged.values()), body_param


def normalize_openapi(definition: ParsedDefinition, diagnostics: Diagnostics) -> list[Endpoint]:
    """Parse the paths of an OpenAPI/Swagger document into Endpoints."""
    doc = definition.document
    flavor = definition.flavor
    endpoints: list[Endpoint] = []

    for path, path_item in doc.get("paths", {}).items():
        path_item = deref(doc, path_item, diagnostics)
        if not isinstance(path_item, dict):
            diagnostics.warn("normalize", "Path item is not an object", str(path))
            continue
        path_params = path_item.get("parameters") or []

        for method, operation in path_item.items():
            method = str(method).lower()
            if method in SKIPPED_METHODS:
                diagnostics.warn("normalize", f"{method.upper()} operations are not exposed", str(path))
                continue
            if method not in OPERATION_METHODS:
                continue
            if not isinstance(operation, dict):
                operation = {}

            label = f"{method.upper()} {path}"
            params, body_param = _merge_parameters(
                path_params, operation.get("parameters") or [], flavor, diagnostics, label,
            )
            tags = operation.get("tags") or []

            endpoints.append(Endpoint(
                id="",
                path=str(path),
                method=method,
                summary=str(operation.get("summary") or ""),
                description=str(operation.get("description") or ""),
                operation_id=str(operation.get("operationId") or ""),
                tags=[str(t) for t in tags] if isinstance(tags, list) else [],
                parameters=params,
                request_schema=_request_schema(operation, body_param),
                responses=_responses(operation.get("responses"), flavor),
            ))

    return endpoints
