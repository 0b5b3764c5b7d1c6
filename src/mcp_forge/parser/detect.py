"""Auto-detect API definition format."""

import json
import re
from pathlib import PurePath

import yaml

JSON = "json"
YAML = "yaml"
RAML = "raml"
MARKDOWN = "markdown"
UNKNOWN = "unknown"

FORMATS = (JSON, YAML, RAML, MARKDOWN)

_EXTENSIONS: dict[str, str] = {
    ".json": JSON,
    ".yaml": YAML,
    ".yml": YAML,
    ".raml": RAML,
    ".md": MARKDOWN,
    ".markdown": MARKDOWN,
    ".apib": MARKDOWN,
}

_YAML_MARKERS = re.compile(r"^(openapi|swagger|info|paths)\s*:", re.MULTILINE)

# Top-level keys that make a parsed mapping look like an API definition
_DEFINITION_KEYS = {
    "openapi", "swagger", "info", "paths", "servers", "host", "basePath",
    "components", "definitions",
}


def _try_json(text: str) -> object | None:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None


def _try_yaml(text: str) -> object | None:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError:
        return None


def _looks_like_definition(data: object) -> bool:
    return isinstance(data, dict) and any(key in data for key in _DEFINITION_KEYS)


def detect_format(content: str, filename: str | None = None) -> str:
    """Detect the format of an API definition document.

    Returns: 'json', 'yaml', 'raml', 'markdown' or 'unknown'. Never raises;
    callers must treat 'unknown' as a validation failure.
    """
    if filename:
        fmt = _EXTENSIONS.get(PurePath(filename).suffix.lower())
        if fmt:
            return fmt

    text = content.lstrip("\ufeff").strip()
    if not text:
        return UNKNOWN

    if text[0] in "{[" and _try_json(text) is not None:
        return JSON

    if text.startswith("#%RAML"):
        return RAML
    if text.startswith("# ") or text.startswith("FORMAT:"):
        return MARKDOWN

    if _YAML_MARKERS.search(text) and isinstance(_try_yaml(text), dict):
        return YAML

    # Exhaustive fallback: a parse only counts when it yields a definition
    if _looks_like_definition(_try_json(text)):
        return JSON
    if _looks_like_definition(_try_yaml(text)):
        return YAML

    return UNKNOWN
