"""Request-scoped diagnostics.

Each import or generation call owns one ``Diagnostics`` instance and
passes it explicitly to every stage, so warnings are attributable to the
request that produced them.
"""

import logging

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Diagnostic(BaseModel):
    """A single non-fatal finding reported by a pipeline stage."""

    stage: str  # parse / normalize / generate
    message: str
    endpoint: str | None = None

    def __str__(self) -> str:
        where = f" ({self.endpoint})" if self.endpoint else ""
        return f"[{self.stage}] {self.message}{where}"


class Diagnostics:
    """Collects warnings for one request."""

    def __init__(self):
        self.warnings: list[Diagnostic] = []

    def warn(self, stage: str, message: str, endpoint: str | None = None) -> None:
        item = Diagnostic(stage=stage, message=message, endpoint=endpoint)
        self.warnings.append(item)
        logger.warning("%s", item)

    def for_stage(self, stage: str) -> list[Diagnostic]:
        return [w for w in self.warnings if w.stage == stage]
