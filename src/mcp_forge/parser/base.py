"""Canonical data models for parsed API definitions.

All parsers (OpenAPI, RAML, API Blueprint) convert their input into
these standard models for downstream classification and generation.
Field names are snake_case in Python and camelCase on the wire, so
records written by the UI (``mcpType``, ``statusCode``) load unchanged.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from mcp_forge.classifier import classify

MODEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"


class McpType(str, Enum):
    NONE = "none"
    RESOURCE = "resource"
    TOOL = "tool"


class Parameter(BaseModel):
    """A single endpoint parameter."""

    model_config = MODEL_CONFIG

    name: str
    type: str = "string"  # unknown types are kept verbatim
    required: bool = False
    description: str = ""
    location: str = "query"  # path / query / header / cookie / body / formData


class Response(BaseModel):
    """One declared response of an endpoint."""

    model_config = MODEL_CONFIG

    status_code: str
    description: str = ""
    schema_: Any = Field(default=None, alias="schema")

    @field_validator("status_code", mode="before")
    @classmethod
    def _status_as_text(cls, value: Any) -> str:
        return str(value)


class Endpoint(BaseModel):
    """A single API operation in canonical form."""

    model_config = MODEL_CONFIG

    id: str
    path: str
    method: HttpMethod | None
    summary: str = ""
    description: str = ""
    operation_id: str = ""
    tags: list[str] = []
    parameters: list[Parameter] = []
    request_schema: Any = None
    responses: list[Response] = []
    mcp_type: McpType | None = None
    selected: bool = True

    @field_validator("method", mode="before")
    @classmethod
    def _normalize_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().upper()
            return value or None
        return value

    @field_validator("parameters")
    @classmethod
    def _unique_parameter_names(cls, params: list[Parameter]) -> list[Parameter]:
        seen: set[str] = set()
        for p in params:
            if p.name in seen:
                raise ValueError(f"duplicate parameter name: {p.name}")
            seen.add(p.name)
        return params

    @model_validator(mode="after")
    def _default_mcp_type(self) -> "Endpoint":
        if self.mcp_type is None:
            self.mcp_type = McpType(classify(self.method)) if self.method else McpType.NONE
        return self

    @property
    def is_wellformed(self) -> bool:
        return bool(self.path.strip()) and self.method is not None

    @property
    def label(self) -> str:
        method = self.method.value if self.method else "?"
        return f"{method} {self.path or '?'}"


class ParsedDefinition(BaseModel):
    """Format-specific tree plus the document metadata found while parsing."""

    format: str  # json / yaml / raml / markdown
    flavor: str  # openapi2 / openapi3 / raml / blueprint
    title: str = ""
    version: str = ""
    description: str = ""
    base_url: str = ""
    document: Any = None
