"""Error kinds raised by the session engine and its collaborators."""

from __future__ import annotations


class SpelunkError(Exception):
    """Base class for all spelunk errors."""


class InvalidQuery(SpelunkError):
    """Submitted query is empty or whitespace-only."""


class InvalidTransition(SpelunkError):
    """Job operation is not valid in the job's current state."""


class TransportError(SpelunkError):
    """Network or HTTP failure talking to the search service."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidPattern(SpelunkError):
    """Local search pattern is not a valid regular expression."""


class NoMatches(SpelunkError):
    """Match cycling requested with an empty match set."""


class ExternalEditorFailure(SpelunkError):
    """External editor exited non-zero or its temp file was unusable."""


class PersistenceError(SpelunkError):
    """Saved search could not be read or written."""


class ConfigError(SpelunkError):
    """Configuration is missing or malformed."""
