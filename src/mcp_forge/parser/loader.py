"""Parse raw definition text into a format-specific tree.

JSON and YAML share one object-graph path (YAML is a superset for this
purpose). RAML is loaded as YAML with its custom tags kept as opaque
text, and Markdown / API Blueprint is split into heading sections. A
parse error is final: retrying another format is the detector's job.
"""

import json
import logging
from typing import Any

import yaml

from mcp_forge.diagnostics import Diagnostics
from mcp_forge.errors import DetectionFailure, ParseFailure
from mcp_forge.parser import detect
from mcp_forge.parser.base import ParsedDefinition
from mcp_forge.parser.blueprint import read_blueprint

logger = logging.getLogger(__name__)


class _RamlLoader(yaml.SafeLoader):
    """SafeLoader that keeps RAML tags (``!include`` etc.) as plain text."""

    def __init__(self, stream):
        super().__init__(stream)
        self.raml_tags: list[str] = []


def _construct_raml_tag(loader: _RamlLoader, tag_suffix: str, node: yaml.Node) -> str:
    if isinstance(node, yaml.ScalarNode):
        value = loader.construct_scalar(node)
    else:
        value = "..."
    text = f"!{tag_suffix} {value}".strip()
    loader.raml_tags.append(text)
    return text


_RamlLoader.add_multi_constructor("!", _construct_raml_tag)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _load_object_graph(content: str, fmt: str) -> Any:
    try:
        if fmt == detect.JSON:
            return json.loads(content)
        return yaml.safe_load(content)
    except (json.JSONDecodeError, ValueError, yaml.YAMLError) as e:
        raise ParseFailure(f"Malformed {fmt.upper()} document: {e}") from e


def _openapi_base_url(doc: dict) -> str:
    servers = doc.get("servers")
    if isinstance(servers, list) and servers and isinstance(servers[0], dict):
        return _text(servers[0].get("url"))
    host = _text(doc.get("host"))
    base_path = _text(doc.get("basePath"))
    if host:
        schemes = doc.get("schemes") or ["https"]
        return f"{schemes[0]}://{host}{base_path}"
    return base_path


def _parse_openapi(content: str, fmt: str, diagnostics: Diagnostics) -> ParsedDefinition:
    doc = _load_object_graph(content, fmt)
    if not isinstance(doc, dict):
        raise ParseFailure(f"Expected an object at the top level of the {fmt.upper()} document")
    if not isinstance(doc.get("paths"), dict):
        raise ParseFailure("No paths defined in the API definition")

    swagger = _text(doc.get("swagger"))
    openapi = _text(doc.get("openapi"))
    if swagger.startswith("2"):
        flavor = "openapi2"
    elif openapi.startswith("3"):
        flavor = "openapi3"
    else:
        flavor = "openapi3"
        diagnostics.warn("parse", "No 'openapi' or 'swagger' version marker; assuming OpenAPI 3")

    info = doc.get("info") if isinstance(doc.get("info"), dict) else {}
    return ParsedDefinition(
        format=fmt,
        flavor=flavor,
        title=_text(info.get("title")),
        version=_text(info.get("version")),
        description=_text(info.get("description")),
        base_url=_openapi_base_url(doc),
        document=doc,
    )


def _parse_raml(content: str, diagnostics: Diagnostics) -> ParsedDefinition:
    loader = _RamlLoader(content)
    try:
        doc = loader.get_single_data()
    except yaml.YAMLError as e:
        raise ParseFailure(f"Malformed RAML document: {e}") from e
    finally:
        loader.dispose()

    if not isinstance(doc, dict):
        raise ParseFailure("Expected a mapping at the top level of the RAML document")
    for tag in loader.raml_tags:
        diagnostics.warn("parse", f"RAML tag not resolved, kept as text: {tag}")

    first_line = content.lstrip().splitlines()[0] if content.strip() else ""
    if not first_line.startswith("#%RAML"):
        diagnostics.warn("parse", "Missing '#%RAML' version header")
    if not doc.get("title"):
        diagnostics.warn("parse", "RAML document has no title")

    return ParsedDefinition(
        format=detect.RAML,
        flavor="raml",
        title=_text(doc.get("title")),
        version=_text(doc.get("version")),
        description=_text(doc.get("description")),
        base_url=_text(doc.get("baseUri")),
        document=doc,
    )


def _parse_markdown(content: str, diagnostics: Diagnostics) -> ParsedDefinition:
    if not content.strip():
        raise ParseFailure("Empty API Blueprint document")
    blueprint = read_blueprint(content)
    if not blueprint.sections:
        diagnostics.warn("parse", "No headings found; the document has no endpoint sections")
    if not blueprint.format_line and not blueprint.title:
        diagnostics.warn("parse", "Missing API Blueprint header or FORMAT line")
    return ParsedDefinition(
        format=detect.MARKDOWN,
        flavor="blueprint",
        title=blueprint.title,
        description=blueprint.description,
        base_url=blueprint.host,
        document=blueprint,
    )


def parse_definition(content: str, fmt: str, diagnostics: Diagnostics) -> ParsedDefinition:
    """Parse ``content`` as ``fmt`` into a ParsedDefinition.

    Raises DetectionFailure for an unknown format and ParseFailure for a
    malformed document.
    """
    logger.debug("Parsing definition as %s", fmt)
    if fmt in (detect.JSON, detect.YAML):
        return _parse_openapi(content, fmt, diagnostics)
    if fmt == detect.RAML:
        return _parse_raml(content, diagnostics)
    if fmt == detect.MARKDOWN:
        return _parse_markdown(content, diagnostics)
    raise DetectionFailure(
        "Could not determine the API definition format; expected OpenAPI (JSON/YAML), RAML or API Blueprint"
    )
