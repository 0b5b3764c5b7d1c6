"""Server configuration: the single input to code generation.

A ServerConfig can be written to YAML, curated by hand (select endpoints,
override ``mcpType``) and loaded back with ``ServerConfig.from_file``.
"""

import json
from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from mcp_forge.parser.base import MODEL_CONFIG, Endpoint, ParsedDefinition


class AuthType(str, Enum):
    NONE = "None"
    API_KEY = "API Key"
    BEARER = "Bearer Token"
    BASIC = "Basic Auth"


class AuthLocation(str, Enum):
    HEADER = "header"
    QUERY = "query"
    COOKIE = "cookie"


class AuthConfig(BaseModel):
    model_config = MODEL_CONFIG

    type: AuthType = AuthType.NONE
    location: AuthLocation | None = None
    name: str | None = None
    value: str | None = None

    @model_validator(mode="after")
    def _clear_when_disabled(self) -> "AuthConfig":
        if self.type == AuthType.NONE:
            self.location = None
            self.name = None
            self.value = None
        return self

    @property
    def enabled(self) -> bool:
        return self.type != AuthType.NONE


class HostingConfig(BaseModel):
    """Where the generated server is meant to run; only feeds deployment files."""

    model_config = MODEL_CONFIG

    provider: str = "Self-hosted"  # AWS / GCP / Azure / Self-hosted
    type: str = "Container"  # Serverless / Container / VM
    region: str | None = None


class ServerConfig(BaseModel):
    model_config = MODEL_CONFIG

    name: str
    description: str = ""
    language: str = "Python"
    version: str = "1.0.0"
    authentication: AuthConfig = Field(default_factory=AuthConfig)
    hosting: HostingConfig = Field(default_factory=HostingConfig)
    endpoints: list[Endpoint] = []

    @field_validator("endpoints")
    @classmethod
    def _unique_ids(cls, endpoints: list[Endpoint]) -> list[Endpoint]:
        seen: set[str] = set()
        for ep in endpoints:
            if ep.id in seen:
                raise ValueError(f"duplicate endpoint id: {ep.id}")
            seen.add(ep.id)
        return endpoints

    @classmethod
    def from_definition(
        cls,
        definition: ParsedDefinition,
        endpoints: list[Endpoint],
        **overrides,
    ) -> "ServerConfig":
        """Build a config seeded with a definition's metadata."""
        fields = {
            "name": definition.title or "MCP Server",
            "description": definition.description,
            "endpoints": endpoints,
        }
        if definition.version:
            fields["version"] = definition.version
        fields.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(fields)

    @classmethod
    def from_file(cls, path: Path | str) -> "ServerConfig":
        """Load a config from a YAML or JSON file."""
        path = Path(path)
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
        return cls.model_validate(data or {})

    def to_yaml(self) -> str:
        data = self.model_dump(mode="json", by_alias=True)
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
