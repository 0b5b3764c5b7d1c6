"""Language backends and the single code generation entry point."""

import logging

import jinja2
from pydantic import ValidationError

from mcp_forge.config import ServerConfig
from mcp_forge.diagnostics import Diagnostics
from mcp_forge.errors import GenerationFailure, McpForgeError, UnsupportedLanguage
from mcp_forge.generator.backend import Backend
from mcp_forge.generator.files import GenerationResult, ProjectFileSet
from mcp_forge.generator.go import GoBackend
from mcp_forge.generator.ir import build_route_table
from mcp_forge.generator.python import PythonBackend
from mcp_forge.generator.typescript import TypeScriptBackend
from mcp_forge.generator.validator import validate_files

logger = logging.getLogger(__name__)

BACKENDS: tuple[type[Backend], ...] = (PythonBackend, TypeScriptBackend, GoBackend)


def supported_languages() -> list[str]:
    return [b.language for b in BACKENDS]


def get_backend(language: str) -> Backend:
    """Look up a backend by name or alias, case-insensitively."""
    key = (language or "").strip().lower()
    for backend in BACKENDS:
        if key == backend.language.lower() or key in backend.aliases:
            return backend()
    raise UnsupportedLanguage(language, supported_languages())


def render_project(config: ServerConfig, diagnostics: Diagnostics) -> ProjectFileSet:
    """Render and self-check a project. Raises on any failure."""
    backend = get_backend(config.language)
    try:
        table = build_route_table(config, diagnostics)
    except (ValueError, TypeError) as e:
        raise GenerationFailure(f"Could not build the route table: {e}") from e
    logger.debug(
        "Route table for %s: %d resources, %d tools",
        table.name, len(table.resources), len(table.tools),
    )
    try:
        files = ProjectFileSet(files=backend.generate(table))
    except jinja2.TemplateError as e:
        raise GenerationFailure(f"Template error in {backend.language} backend: {e}") from e
    except ValidationError as e:
        raise GenerationFailure(f"Invalid file set from {backend.language} backend: {e}") from e

    errors = validate_files(files.as_dict())
    if errors:
        detail = "; ".join(f"{path}: {msg}" for path, msg in errors.items())
        raise GenerationFailure(f"Generated files failed the syntax check: {detail}")
    return files


def generate(config: ServerConfig, diagnostics: Diagnostics | None = None) -> GenerationResult:
    """Generate a server project for ``config.language``.

    Never raises for generation problems: an unsupported language or any
    internal failure yields ``success=False`` with an error and no files.
    Skipped endpoints are reported in ``warnings``.
    """
    if diagnostics is None:
        diagnostics = Diagnostics()
    try:
        files = render_project(config, diagnostics)
    except McpForgeError as e:
        logger.error("Generation failed for %s: %s", config.name, e)
        return GenerationResult(success=False, error=str(e), warnings=list(diagnostics.warnings))

    logger.info("Generated %d files for %s (%s)", len(files.files), config.name, config.language)
    return GenerationResult(success=True, files=files, warnings=list(diagnostics.warnings))
