"""Shared exception types for gen-pr runs."""
from __future__ import annotations


class GenPrError(Exception):
    """Base class for errors that abort a gen-pr run."""


class ConfigurationError(GenPrError):
    """Raised when a required option is missing or invalid."""


class IssueNotFoundError(GenPrError):
    """Raised when the primary issue or pull request cannot be fetched."""


class LLMRequestError(GenPrError):
    """Raised when an LLM provider request fails."""


class CommandError(GenPrError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, command: str, status: int, stderr: str = "") -> None:
        self.command = command
        self.status = status
        self.stderr = stderr
        super().__init__(f"Command '{command}' failed with exit code {status}")


__all__ = [
    "CommandError",
    "ConfigurationError",
    "GenPrError",
    "IssueNotFoundError",
    "LLMRequestError",
]
