"""Exception hierarchy for staticforge.

Every error raised on purpose by the generator derives from
StaticForgeError so callers (the CLI in particular) can report failures
without catching unrelated exceptions.
"""

from __future__ import annotations

from pathlib import Path


class StaticForgeError(Exception):
    """Base class for all staticforge errors."""


class ConfigError(StaticForgeError):
    """Raised when the site configuration or CLI options are invalid."""


class FrontmatterError(StaticForgeError):
    """Raised when a front matter block cannot be parsed.

    Attributes:
        format: Front matter format that failed ("yaml", "toml" or "json").
    """

    def __init__(self, format: str, message: str):
        self.format = format
        super().__init__(f"Invalid {format.upper()} front matter: {message}")


class MetadataError(StaticForgeError):
    """Raised when a metadata value (such as a date) cannot be interpreted."""


class TemplateError(StaticForgeError):
    """Raised when a layout is missing or fails to render."""


class BuildError(StaticForgeError):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")
