"""Turn a ParsedDefinition into the canonical endpoint list."""

import hashlib
import logging

from mcp_forge.classifier import operation_name
from mcp_forge.diagnostics import Diagnostics
from mcp_forge.parser.base import Endpoint, ParsedDefinition
from mcp_forge.parser.blueprint import normalize_blueprint
from mcp_forge.parser.openapi import normalize_openapi
from mcp_forge.parser.raml import normalize_raml

logger = logging.getLogger(__name__)

_NORMALIZERS = {
    "openapi2": normalize_openapi,
    "openapi3": normalize_openapi,
    "raml": normalize_raml,
    "blueprint": normalize_blueprint,
}


def endpoint_id(method: str, path: str, index: int = 0) -> str:
    """Stable id for a route; ``index`` only counts repeats of the same route."""
    key = f"{method.upper()} {path}"
    if index:
        key = f"{key}#{index}"
    return "ep_" + hashlib.sha1(key.encode("utf-8")).hexdigest()[:12]


def assign_ids(endpoints: list[Endpoint], diagnostics: Diagnostics) -> list[Endpoint]:
    """Give every endpoint a unique id and an operation id."""
    seen: dict[str, int] = {}
    result = []
    for ep in endpoints:
        method = ep.method.value if ep.method else ""
        route = f"{method} {ep.path}"
        index = seen.get(route, 0)
        seen[route] = index + 1
        if index:
            diagnostics.warn("normalize", f"Route declared {index + 1} times; ids disambiguated", route)
        result.append(ep.model_copy(update={
            "id": endpoint_id(method, ep.path, index),
            "operation_id": ep.operation_id or operation_name(method, ep.path),
        }))
    return result


def normalize(definition: ParsedDefinition, diagnostics: Diagnostics | None = None) -> list[Endpoint]:
    """Extract canonical endpoints from a parsed definition.

    Args:
        definition: Output of ``parse_definition``.
        diagnostics: Collector for non-fatal warnings; a fresh one is used
            when omitted.

    Returns:
        Endpoints in document order, each with a unique ``id``, an
        ``operation_id`` and its default ``mcp_type``.
    """
    if diagnostics is None:
        diagnostics = Diagnostics()
    normalizer = _NORMALIZERS.get(definition.flavor)
    if normalizer is None:
        raise ValueError(f"No normalizer for flavor: {definition.flavor!r}")
    endpoints = assign_ids(normalizer(definition, diagnostics), diagnostics)
    logger.debug("Normalized %d endpoints from %s document", len(endpoints), definition.flavor)
    return endpoints
