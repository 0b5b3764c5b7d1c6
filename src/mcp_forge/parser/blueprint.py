"""Markdown / API Blueprint parser.

There is no formal grammar here: the document is split into heading
sections and any heading that names an HTTP verb and a path becomes an
endpoint. The recognized shapes are:

  ## GET /pets                      plain Markdown heading
  ### List pets [GET /pets]         Blueprint action with its own URI
  ## Pets [/pets{?limit}]           Blueprint resource ...
  ### List [GET]                    ... and an action inheriting its URI
  ## List pets                      heading followed by a `GET /pets` line

Parameters come from ``+ Parameters`` lists or Markdown tables, and
responses from ``+ Response <code>`` lines. Extraction is best-effort;
anything skipped is reported as a warning.
"""

import json
import re

from pydantic import BaseModel

from mcp_forge.diagnostics import Diagnostics
from mcp_forge.parser.base import Endpoint, Parameter, ParsedDefinition, Response

_VERBS = "GET|POST|PUT|PATCH|DELETE|HEAD"

_HEADING = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_ACTION_WITH_URI = re.compile(rf"\[\s*({_VERBS})\s+([^\]\s]+)\s*\]")
_ACTION_ONLY = re.compile(rf"\[\s*({_VERBS})\s*\]")
_RESOURCE = re.compile(r"\[\s*(/[^\]\s]*)\s*\]")
_PLAIN = re.compile(rf"\b({_VERBS})\s+(/\S*)")
_VERB_WORD = re.compile(rf"\b({_VERBS})\b")
_BODY_ENDPOINT = re.compile(rf"^\s*`?\s*({_VERBS})\s+(/[^\s`]*)\s*`?\s*$")
_QUERY_EXPANSION = re.compile(r"\{[?&]([^}]*)\}")
_PATH_PARAM = re.compile(r"\{([^}?&]+)\}")
_LIST_ITEM = re.compile(r"^(\s*)[+*-]\s+(.*)$")
_PARAM_ITEM = re.compile(r"^([A-Za-z_][\w.\-]*)\s*(?::\s*(?:`[^`]*`|[^(]*?))?\s*(?:\(([^)]*)\))?\s*(?:-\s*(.*))?$")
_RESPONSE = re.compile(r"^Response\s+(\d{3})\b\s*(?:\(([^)]*)\))?")
_TABLE_SEPARATOR = re.compile(r"^\|?\s*:?-{2,}")

_TRUTHY = {"yes", "y", "true", "required", "x", "✓", "✔"}


class Section(BaseModel):
    """A heading and the lines up to the next heading."""

    level: int
    heading: str
    lines: list[str] = []
    line_no: int = 0


class Blueprint(BaseModel):
    title: str = ""
    description: str = ""
    format_line: str = ""
    host: str = ""
    sections: list[Section] = []


def read_blueprint(content: str) -> Blueprint:
    """Split a Markdown document into metadata and heading sections."""
    blueprint = Blueprint()
    preamble: list[str] = []
    current: Section | None = None

    for no, line in enumerate(content.splitlines(), start=1):
        match = _HEADING.match(line)
        if match:
            current = Section(level=len(match.group(1)), heading=match.group(2), line_no=no)
            blueprint.sections.append(current)
        elif current is not None:
            current.lines.append(line)
        else:
            preamble.append(line)

    for line in preamble:
        stripped = line.strip()
        if stripped.startswith("FORMAT:"):
            blueprint.format_line = stripped
        elif stripped.startswith("HOST:"):
            blueprint.host = stripped[len("HOST:"):].strip()

    if blueprint.sections and blueprint.sections[0].level == 1:
        first = blueprint.sections[0]
        if not _describes_endpoint(first.heading):
            blueprint.title = first.heading
            blueprint.description = _paragraph(first.lines)
    return blueprint


def _describes_endpoint(heading: str) -> bool:
    return bool(_ACTION_WITH_URI.search(heading) or _PLAIN.search(heading.replace("`", "")))


def _paragraph(lines: list[str]) -> str:
    """Leading prose of a section, stopping at the first list, table or fence."""
    text: list[str] = []
    for line in lines:
        stripped = line.strip()
        indented_code = line.startswith(("    ", "\t")) and stripped
        if indented_code or stripped.startswith(("+", "*", "-", "|", "```")) or _BODY_ENDPOINT.match(line):
            if text:
                break
            continue
        if not stripped:
            if text:
                break
            continue
        text.append(stripped)
    return " ".join(text)


def _split_path(raw: str) -> tuple[str, list[str]]:
    """Separate URI-template query expansions from the path."""
    query: list[str] = []
    for expansion in _QUERY_EXPANSION.findall(raw):
        query.extend(name.strip() for name in expansion.split(",") if name.strip())
    path = _QUERY_EXPANSION.sub("", raw).split("?")[0].rstrip(".,;:")
    if not path.startswith("/"):
        path = "/" + path
    return path, query


def _parse_attributes(attrs: str) -> tuple[str, bool | None]:
    type_ = "string"
    required = None
    for part in (p.strip() for p in attrs.split(",")):
        if part == "required":
            required = True
        elif part == "optional":
            required = False
        elif part:
            type_ = part
    return type_, required


def _parameter_list(lines: list[str], start: int) -> list[Parameter]:
    """Read the items nested under a ``+ Parameters`` line."""
    header_indent = len(_LIST_ITEM.match(lines[start]).group(1))
    item_indent: int | None = None
    params: list[Parameter] = []
    for line in lines[start + 1:]:
        if not line.strip():
            continue
        item = _LIST_ITEM.match(line)
        indent = len(line) - len(line.lstrip())
        if indent <= header_indent:
            break
        if not item:
            continue
        if item_indent is None:
            item_indent = indent
        if indent != item_indent:
            continue
        match = _PARAM_ITEM.match(item.group(2).strip())
        if not match:
            continue
        type_, required = _parse_attributes(match.group(2) or "")
        params.append(Parameter(
            name=match.group(1),
            type=type_,
            required=True if required is None else required,
            description=(match.group(3) or "").strip(),
        ))
    return params


def _cells(line: str) -> list[str]:
    return [c.strip() for c in line.strip().strip("|").split("|")]


def _table_parameters(lines: list[str], diagnostics: Diagnostics, label: str) -> list[Parameter]:
    """Best-effort parameters from Markdown tables whose header has a 'name' column."""
    params: list[Parameter] = []
    i = 0
    while i < len(lines):
        line = lines[i].strip()
        if not (line.startswith("|") and i + 1 < len(lines) and _TABLE_SEPARATOR.match(lines[i + 1].strip())):
            i += 1
            continue
        header = [h.lower() for h in _cells(line)]
        i += 2
        if "name" not in header:
            continue
        columns = {key: header.index(key) for key in ("name", "type", "required", "description", "in", "location") if key in header}
        while i < len(lines) and lines[i].strip().startswith("|"):
            row = _cells(lines[i])
            i += 1
            if len(row) != len(header):
                diagnostics.warn("normalize", f"Skipped malformed table row: {lines[i - 1].strip()}", label)
                continue
            name = row[columns["name"]].strip("`")
            if not name:
                continue
            location = row[columns["in"]] if "in" in columns else row[columns["location"]] if "location" in columns else "query"
            params.append(Parameter(
                name=name,
                type=row[columns["type"]].strip("`") or "string" if "type" in columns else "string",
                required=row[columns["required"]].lower() in _TRUTHY if "required" in columns else False,
                description=row[columns["description"]] if "description" in columns else "",
                location=location.lower() or "query",
            ))
    return params


def _request_schema(lines: list[str], diagnostics: Diagnostics, label: str):
    """JSON from the ``+ Schema`` block of the first ``+ Request``, if any."""
    in_request = False
    for idx, line in enumerate(lines):
        item = _LIST_ITEM.match(line)
        if not item:
            continue
        text = item.group(2).strip()
        if text.startswith("Request"):
            in_request = True
        elif text.startswith("Response"):
            in_request = False
        elif in_request and text == "Schema":
            indent = len(item.group(1))
            block: list[str] = []
            for body in lines[idx + 1:]:
                if body.strip() and len(body) - len(body.lstrip()) <= indent:
                    break
                block.append(body)
            raw = "\n".join(b.strip() for b in block if b.strip() and not b.strip().startswith("```"))
            try:
                return json.loads(raw)
            except ValueError:
                diagnostics.warn("normalize", "Request schema is not valid JSON; kept as text", label)
                return raw
    return None


def _responses(lines: list[str]) -> list[Response]:
    responses: list[Response] = []
    for line in lines:
        item = _LIST_ITEM.match(line)
        if not item:
            continue
        match = _RESPONSE.match(item.group(2).strip())
        if match:
            responses.append(Response(status_code=match.group(1), description=match.group(2) or ""))
    return responses


def _merge_parameters(path: str, query: list[str], listed: list[Parameter]) -> list[Parameter]:
    path_names = _PATH_PARAM.findall(path)
    merged: dict[str, Parameter] = {}
    for name in path_names:
        merged[name] = Parameter(name=name, required=True, location="path")
    for name in query:
        merged.setdefault(name, Parameter(name=name, required=False, location="query"))
    for param in listed:
        if param.name in path_names:
            merged[param.name] = param.model_copy(update={"location": "path", "required": True})
        elif param.name in query:
            merged[param.name] = param.model_copy(update={"location": "query"})
        else:
            merged[param.name] = param
    return list(merged.values())


def _section_endpoint(section: Section, resource_path: str | None) -> tuple[str, str, str] | None:
    """Return (verb, raw path, summary) for a section that declares an endpoint."""
    heading = section.heading.replace("`", "")

    match = _ACTION_WITH_URI.search(heading)
    if match:
        return match.group(1), match.group(2), heading[:match.start()].strip()

    match = _ACTION_ONLY.search(heading)
    if match and resource_path:
        return match.group(1), resource_path, heading[:match.start()].strip()

    match = _PLAIN.search(heading)
    if match:
        summary = (heading[:match.start()] + heading[match.end():]).strip(" -:")
        return match.group(1), match.group(2), summary

    for line in section.lines[:5]:
        match = _BODY_ENDPOINT.match(line)
        if match:
            return match.group(1), match.group(2), heading.strip()
    return None


def normalize_blueprint(definition: ParsedDefinition, diagnostics: Diagnostics) -> list[Endpoint]:
    """Extract endpoints from heading sections."""
    blueprint: Blueprint = definition.document
    endpoints: list[Endpoint] = []
    resources: list[tuple[int, str]] = []  # (heading level, path)

    for section in blueprint.sections:
        while resources and resources[-1][0] >= section.level:
            resources.pop()
        resource_path = resources[-1][1] if resources else None

        found = _section_endpoint(section, resource_path)
        if found is None:
            heading = section.heading.replace("`", "")
            resource = _RESOURCE.search(heading)
            if resource and not _VERB_WORD.search(heading):
                resources.append((section.level, resource.group(1)))
            elif _VERB_WORD.search(heading):
                diagnostics.warn(
                    "normalize",
                    f"Heading names an HTTP verb but no usable path (line {section.line_no})",
                    section.heading,
                )
            continue

        verb, raw_path, summary = found
        path, query = _split_path(raw_path)
        label = f"{verb} {path}"
        listed: list[Parameter] = []
        for idx, line in enumerate(section.lines):
            item = _LIST_ITEM.match(line)
            if item and item.group(2).strip() == "Parameters":
                listed.extend(_parameter_list(section.lines, idx))
        listed.extend(_table_parameters(section.lines, diagnostics, label))

        unique: list[Parameter] = []
        seen: set[str] = set()
        for param in listed:
            if param.name in seen:
                diagnostics.warn("normalize", f"Duplicate parameter '{param.name}' ignored", label)
                continue
            seen.add(param.name)
            unique.append(param)

        endpoints.append(Endpoint(
            id="",
            path=path,
            method=verb,
            summary=summary,
            description=_paragraph(section.lines),
            parameters=_merge_parameters(path, query, unique),
            request_schema=_request_schema(section.lines, diagnostics, label),
            responses=_responses(section.lines),
        ))

    return endpoints
