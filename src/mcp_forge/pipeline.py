"""Definition import pipeline: detect -> parse -> normalize."""

import logging

from pydantic import BaseModel

from mcp_forge.diagnostics import Diagnostic, Diagnostics
from mcp_forge.errors import DetectionFailure
from mcp_forge.parser.base import Endpoint, ParsedDefinition
from mcp_forge.parser.detect import FORMATS, UNKNOWN, detect_format
from mcp_forge.parser.loader import parse_definition
from mcp_forge.parser.normalize import normalize

logger = logging.getLogger(__name__)


class ImportResult(BaseModel):
    """Endpoints extracted from one document, plus what was found on the way."""

    format: str
    definition: ParsedDefinition
    endpoints: list[Endpoint]
    warnings: list[Diagnostic] = []


def import_definition(
    content: str,
    filename: str | None = None,
    fmt: str = "auto",
    diagnostics: Diagnostics | None = None,
) -> ImportResult:
    """Run a raw document through detection, parsing and normalization.

    Raises DetectionFailure when the format cannot be determined and
    ParseFailure when the document is malformed; in both cases nothing
    downstream runs.
    """
    if diagnostics is None:
        diagnostics = Diagnostics()

    if fmt == "auto":
        fmt = detect_format(content, filename)
    elif fmt not in FORMATS:
        raise DetectionFailure(f"Unknown format {fmt!r}; expected one of: {', '.join(FORMATS)}")
    if fmt == UNKNOWN:
        raise DetectionFailure(
            "Could not determine the API definition format; expected OpenAPI (JSON/YAML), RAML or API Blueprint"
        )
    logger.info("Importing %s as %s", filename or "<content>", fmt)

    definition = parse_definition(content, fmt, diagnostics)
    endpoints = normalize(definition, diagnostics)
    return ImportResult(
        format=fmt,
        definition=definition,
        endpoints=endpoints,
        warnings=list(diagnostics.warnings),
    )
