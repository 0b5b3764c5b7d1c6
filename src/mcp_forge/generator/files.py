"""Output models of a generation run."""

from pathlib import Path

from pydantic import BaseModel, field_validator

from mcp_forge.diagnostics import Diagnostic
from mcp_forge.parser.base import MODEL_CONFIG


class ServerFile(BaseModel):
    """One generated file. ``path`` is relative to the project root."""

    model_config = MODEL_CONFIG

    name: str
    path: str
    content: str
    type: str  # code / config / documentation
    language: str | None = None

    @field_validator("type")
    @classmethod
    def _known_type(cls, value: str) -> str:
        if value not in ("code", "config", "documentation"):
            raise ValueError(f"unknown file type: {value}")
        return value


class ProjectFileSet(BaseModel):
    """Ordered files of one project; no two share a path."""

    files: list[ServerFile] = []

    @field_validator("files")
    @classmethod
    def _unique_paths(cls, files: list[ServerFile]) -> list[ServerFile]:
        seen: set[str] = set()
        for f in files:
            if f.path in seen:
                raise ValueError(f"duplicate file path: {f.path}")
            seen.add(f.path)
        return files

    def get(self, path: str) -> ServerFile | None:
        return next((f for f in self.files if f.path == path), None)

    def as_dict(self) -> dict[str, str]:
        return {f.path: f.content for f in self.files}

    def write_to(self, root: Path, overwrite: bool = True) -> list[Path]:
        """Write every file below ``root``; returns the written paths.

        With ``overwrite=False`` files that already exist are left untouched.
        """
        written = []
        for f in self.files:
            target = root / f.path
            if not overwrite and target.exists():
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(f.content, encoding="utf-8")
            written.append(target)
        return written


class GenerationResult(BaseModel):
    success: bool
    files: ProjectFileSet | None = None
    error: str | None = None
    warnings: list[Diagnostic] = []
