"""Custom exceptions for claude-instructions."""

from typing import Any


class ClaudeInstructionsError(Exception):
    """Base exception for all claude-instructions errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(ClaudeInstructionsError):
    """Raised when destination or config information is missing or invalid."""


class DirectiveError(ClaudeInstructionsError):
    """Raised when a transform directive cannot be expanded."""


class FragmentReadError(DirectiveError):
    """Raised when a file referenced by a directive cannot be read."""


class CategoryError(ClaudeInstructionsError):
    """Raised when a command declares a category outside the known set."""


class MetadataError(ClaudeInstructionsError):
    """Raised when a variant's metadata sidecar is missing or invalid."""


class UserCancelled(ClaudeInstructionsError):
    """Raised when the user aborts an interactive prompt."""
