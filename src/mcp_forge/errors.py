"""Exception hierarchy for the definition import and generation pipeline."""


class McpForgeError(Exception):
    """Base exception for mcp-forge errors."""
    pass


class DetectionFailure(McpForgeError):
    """Raised when the format of an API definition cannot be determined."""
    pass


class ParseFailure(McpForgeError):
    """Raised when a document in a recognized format is malformed."""
    pass


class UnsupportedLanguage(McpForgeError):
    """Raised when code generation is requested for an unknown target."""

    def __init__(self, language: str, supported: list[str]):
        self.language = language
        self.supported = supported
        super().__init__(
            f"Unsupported language: {language!r} (supported: {', '.join(supported)})"
        )


class GenerationFailure(McpForgeError):
    """Raised when a backend produces an inconsistent or invalid file set."""
    pass
