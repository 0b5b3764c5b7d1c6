"""CLI entry point for mcp-forge."""

import fnmatch
import json
import logging
from pathlib import Path

import click
import yaml
from pydantic import ValidationError

from mcp_forge.config import AuthConfig, AuthLocation, AuthType, HostingConfig, ServerConfig
from mcp_forge.conformance import AUTH_SCHEMES, ConformanceValidator
from mcp_forge.diagnostics import Diagnostic
from mcp_forge.errors import McpForgeError
from mcp_forge.generator.registry import BACKENDS, generate
from mcp_forge.parser.base import Endpoint
from mcp_forge.parser.detect import FORMATS
from mcp_forge.pipeline import ImportResult, import_definition

AUTH_TYPES = {
    "none": AuthType.NONE,
    "api-key": AuthType.API_KEY,
    "bearer": AuthType.BEARER,
    "basic": AuthType.BASIC,
}


def _filter_endpoints(endpoints: list[Endpoint], patterns: tuple[str, ...]) -> list[Endpoint]:
    """Keep endpoints matching any pattern.

    ``"POST /pets"`` matches method and path; ``"/pets/*"`` matches the path
    only. Both sides accept fnmatch wildcards.
    """
    matched = []
    for ep in endpoints:
        method = ep.method.value if ep.method else ""
        for pattern in patterns:
            if " " in pattern.strip():
                want_method, want_path = pattern.strip().split(None, 1)
                if fnmatch.fnmatchcase(method, want_method.upper()) and fnmatch.fnmatchcase(ep.path, want_path):
                    matched.append(ep)
                    break
            elif fnmatch.fnmatchcase(ep.path, pattern.strip()):
                matched.append(ep)
                break
    return matched


def _echo_warnings(warnings: list[Diagnostic]) -> None:
    for w in warnings:
        click.echo(f"warning: {w}", err=True)


def _import_doc(doc_path: Path, fmt: str) -> ImportResult:
    click.echo(f"Parsing {doc_path} (format: {fmt})...")
    try:
        result = import_definition(doc_path.read_text(encoding="utf-8"), filename=doc_path.name, fmt=fmt)
    except McpForgeError as e:
        raise click.ClickException(str(e)) from e
    _echo_warnings(result.warnings)
    click.echo(f"Found {len(result.endpoints)} endpoints ({result.definition.flavor}).")
    return result


def _build_config(result: ImportResult, endpoints: list[Endpoint], options: dict) -> ServerConfig:
    auth_type = AUTH_TYPES[options["auth_type"]]
    overrides = {
        "name": options["name"],
        "description": options["description"],
        "language": options["language"],
        "authentication": AuthConfig(
            type=auth_type,
            location=AuthLocation(options["auth_location"]) if options["auth_location"] else None,
            name=options["auth_name"],
        ),
        "hosting": HostingConfig(
            provider=options["provider"],
            type=options["hosting_type"],
            region=options["region"],
        ),
    }
    try:
        return ServerConfig.from_definition(result.definition, endpoints, **overrides)
    except ValidationError as e:
        raise click.ClickException(f"Invalid server configuration: {e}") from e


def _generate_into(config: ServerConfig, output: Path, keep_existing: bool) -> None:
    click.echo(f"Generating {config.language} server {config.name!r}...")
    result = generate(config)
    _echo_warnings(result.warnings)
    if not result.success:
        raise click.ClickException(result.error or "Generation failed")

    output.mkdir(parents=True, exist_ok=True)
    written = result.files.write_to(output, overwrite=not keep_existing)
    for path in written:
        click.echo(f"  Created {path}")
    skipped = len(result.files.files) - len(written)
    if skipped:
        click.echo(f"  Kept {skipped} existing files")
    click.echo(f"Generated {len(written)} files in {output}")


def server_options(func):
    """Options shared by the commands that build a ServerConfig from a document."""
    options = [
        click.option("--name", default=None, help="Server name (defaults to the document title)."),
        click.option("--description", default=None, help="Server description."),
        click.option("--language", envvar="MCP_FORGE_LANGUAGE", default=None,
                     help="Target language or alias (default: Python)."),
        click.option("--auth-type", default="none", type=click.Choice(list(AUTH_TYPES)),
                     help="Authentication required on /mcp routes."),
        click.option("--auth-location", default=None, type=click.Choice([loc.value for loc in AuthLocation]),
                     help="Where an API key is sent (default: header)."),
        click.option("--auth-name", default=None, help="Header, query or cookie name of the API key."),
        click.option("--provider", default="Self-hosted", help="Hosting provider: AWS, GCP, Azure or Self-hosted."),
        click.option("--hosting-type", default="Container", help="Hosting type: Serverless, Container or VM."),
        click.option("--region", default=None, help="Deployment region."),
        click.option("--only", "only", multiple=True,
                     help='Endpoint filter, e.g. "GET /pets" or "/pets/*". Repeatable.'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """mcp-forge: generate MCP adapter servers from API definitions."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--format", "fmt", default="auto", type=click.Choice(["auto", *FORMATS]), help="Document format.")
@click.option("--json", "as_json", is_flag=True, help="Print endpoints as JSON.")
def inspect(doc_path: Path, fmt: str, as_json: bool):
    """Print the normalized endpoints of an API definition."""
    result = _import_doc(doc_path, fmt)
    if as_json:
        data = [ep.model_dump(mode="json", by_alias=True) for ep in result.endpoints]
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return
    for ep in result.endpoints:
        kind = ep.mcp_type.value if ep.mcp_type else "none"
        click.echo(f"  [{kind:8}] {ep.label:40} {ep.operation_id}  ({ep.id})")


@main.command("init-config")
@click.argument("doc_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(dir_okay=False, path_type=Path),
              help="Output path of the server config (YAML).")
@click.option("--format", "fmt", default="auto", type=click.Choice(["auto", *FORMATS]), help="Document format.")
@server_options
def init_config(doc_path: Path, output: Path, fmt: str, only: tuple[str, ...], **options):
    """Write an editable server config for an API definition.

    Endpoints not matched by --only are kept but deselected.
    """
    result = _import_doc(doc_path, fmt)
    endpoints = result.endpoints
    if only:
        keep = {ep.id for ep in _filter_endpoints(endpoints, only)}
        endpoints = [ep.model_copy(update={"selected": ep.id in keep}) for ep in endpoints]
        click.echo(f"Selected {len(keep)} of {len(endpoints)} endpoints.")
    config = _build_config(result, endpoints, options)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(config.to_yaml(), encoding="utf-8")
    click.echo(f"Server config saved to {output}")


@main.command("generate")
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(file_okay=False, path_type=Path),
              help="Output directory for the server project.")
@click.option("--language", envvar="MCP_FORGE_LANGUAGE", default=None, help="Override the config's language.")
@click.option("--keep-existing", is_flag=True, help="Do not overwrite files that already exist.")
def generate_cmd(config_path: Path, output: Path, language: str | None, keep_existing: bool):
    """Generate a server project from a server config file."""
    click.echo(f"Reading server config from {config_path}...")
    try:
        config = ServerConfig.from_file(config_path)
    except (ValidationError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Invalid server config {config_path}: {e}") from e
    if language:
        config = config.model_copy(update={"language": language})
    _generate_into(config, output, keep_existing)


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(file_okay=False, path_type=Path),
              help="Output directory for the server project.")
@click.option("--format", "fmt", default="auto", type=click.Choice(["auto", *FORMATS]), help="Document format.")
@click.option("--keep-existing", is_flag=True, help="Do not overwrite files that already exist.")
@server_options
def run(doc_path: Path, output: Path, fmt: str, keep_existing: bool, only: tuple[str, ...], **options):
    """Full pipeline: parse doc -> normalize -> generate server."""
    # Step 1: Parse
    result = _import_doc(doc_path, fmt)

    # Step 2: Select
    endpoints = result.endpoints
    if only:
        endpoints = _filter_endpoints(endpoints, only)
        click.echo(f"Filtered to {len(endpoints)} endpoints.")
        if not endpoints:
            raise click.ClickException(f"No endpoints match: {', '.join(only)}")

    # Step 3: Generate
    config = _build_config(result, endpoints, options)
    _generate_into(config, output, keep_existing)


@main.command()
@click.argument("url")
@click.option("--api-key", envvar="MCP_FORGE_API_KEY", default=None, help="Credential for /mcp routes.")
@click.option("--auth-scheme", default="auto", type=click.Choice(list(AUTH_SCHEMES)),
              help="auto: X-API-Key and Bearer headers; basic: HTTP Basic with user:password.")
@click.option("--timeout", default=10.0, type=float, show_default=True, help="Per-request timeout in seconds.")
def validate(url: str, api_key: str | None, auth_scheme: str, timeout: float):
    """Check a running MCP server for wire-contract conformance."""
    click.echo(f"Validating MCP server at {url}")
    report = ConformanceValidator(url, api_key=api_key, timeout=timeout, auth_scheme=auth_scheme).run()
    for r in report.results:
        mark = "PASS" if r.passed else "FAIL"
        click.echo(f"  {mark} {r.test}: {r.message}")
    if not report.success:
        click.echo(f"{len(report.failures)} checks failed.", err=True)
        raise SystemExit(1)
    click.echo("All checks passed.")


@main.command()
def languages():
    """List supported target languages."""
    for backend in BACKENDS:
        click.echo(f"{backend.language:12} aliases: {', '.join(backend.aliases)}")
