"""RAML normalizer.

Only resource blocks and their method nodes are read: keys that start
with ``/`` are resources, nested resources concatenate their paths, and
each HTTP method key under a resource becomes one endpoint.
"""

import re
from typing import Any

from mcp_forge.diagnostics import Diagnostics
from mcp_forge.parser.base import Endpoint, Parameter, ParsedDefinition, Response

METHODS = ("get", "post", "put", "patch", "delete", "head")
SKIPPED_METHODS = ("options", "trace")

_PLACEHOLDER = re.compile(r"\{([^}]+)\}")


def _parameters(block: Any, location: str, required_default: bool) -> list[Parameter]:
    """Read a RAML parameter map (``uriParameters``, ``queryParameters``, ``headers``)."""
    params = []
    if not isinstance(block, dict):
        return params
    for name, spec in block.items():
        name = str(name)
        optional_marker = name.endswith("?")
        name = name.rstrip("?")
        if isinstance(spec, dict):
            type_ = str(spec.get("type") or "string")
            required = spec.get("required")
            description = str(spec.get("description") or spec.get("displayName") or "")
        else:
            # RAML 1.0 shorthand: ``limit: integer``
            type_ = str(spec) if spec else "string"
            required = None
            description = ""
        if required is None:
            required = False if optional_marker else required_default
        params.append(Parameter(
            name=name,
            type=type_,
            required=bool(required),
            description=description,
            location=location,
        ))
    return params


def _body_schema(body: Any) -> Any:
    """Schema of the first JSON media type in a RAML ``body`` node."""
    if not isinstance(body, dict) or not body:
        return None
    media_types = [key for key in body if "/" in str(key)]
    if media_types:
        chosen = next((m for m in media_types if "json" in str(m)), media_types[0])
        entry = body[chosen]
    else:
        entry = body
    if isinstance(entry, dict):
        for key in ("schema", "type", "properties"):
            if key in entry:
                return entry if key == "properties" else entry[key]
        return entry or None
    return entry


def _responses(responses: Any) -> list[Response]:
    result = []
    if not isinstance(responses, dict):
        return result
    for status_code, spec in responses.items():
        spec = spec if isinstance(spec, dict) else {}
        result.append(Response(
            status_code=str(status_code),
            description=str(spec.get("description") or ""),
            schema=_body_schema(spec.get("body")),
        ))
    return result


def _walk(
    node: dict,
    path: str,
    uri_params: list[Parameter],
    endpoints: list[Endpoint],
    diagnostics: Diagnostics,
) -> None:
    inherited = {p.name: p for p in uri_params}
    for param in _parameters(node.get("uriParameters"), "path", True):
        inherited[param.name] = param
    for name in _PLACEHOLDER.findall(path):
        inherited.setdefault(name, Parameter(name=name, required=True, location="path"))

    for key, value in node.items():
        key = str(key)
        method = key.lower()
        if method in SKIPPED_METHODS:
            diagnostics.warn("normalize", f"{method.upper()} operations are not exposed", path)
            continue
        if method not in METHODS:
            continue
        spec = value if isinstance(value, dict) else {}

        params: dict[str, Parameter] = dict(inherited)
        for param in _parameters(spec.get("queryParameters"), "query", False):
            params.setdefault(param.name, param)
        for param in _parameters(spec.get("headers"), "header", False):
            params.setdefault(param.name, param)

        endpoints.append(Endpoint(
            id="",
            path=path,
            method=method,
            summary=str(spec.get("displayName") or ""),
            description=str(spec.get("description") or ""),
            parameters=list(params.values()),
            request_schema=_body_schema(spec.get("body")),
            responses=_responses(spec.get("responses")),
        ))

    for key, value in node.items():
        key = str(key)
        if not key.startswith("/"):
            continue
        if value is None:
            value = {}
        if not isinstance(value, dict):
            diagnostics.warn("normalize", "Resource is not a mapping; skipped", path + key)
            continue
        _walk(value, path + key, list(inherited.values()), endpoints, diagnostics)


def normalize_raml(definition: ParsedDefinition, diagnostics: Diagnostics) -> list[Endpoint]:
    """Flatten the RAML resource tree into Endpoints."""
    doc = definition.document
    endpoints: list[Endpoint] = []
    base_params = _parameters(doc.get("baseUriParameters"), "path", True)
    top_level = {key: value for key, value in doc.items() if str(key).startswith("/")}
    if not top_level:
        diagnostics.warn("normalize", "RAML document declares no resources")
    _walk(top_level, "", [], endpoints, diagnostics)

    if base_params:
        names = ", ".join(p.name for p in base_params)
        diagnostics.warn("normalize", f"Base URI parameters are not exposed: {names}")
    return endpoints
