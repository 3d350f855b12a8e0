"""Error taxonomy shared by every component.

Components never let these escape across their boundary; they are wrapped
in a :class:`jobmatch.models.Result` instead.
"""
from __future__ import annotations


class JobSearchError(Exception):
    """Base class; ``str(exc)`` is the user-facing message."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(JobSearchError):
    """Missing credentials or settings. Fatal, never retried."""

    kind = "configuration"


class ValidationError(JobSearchError):
    """Bad or empty input, rejected before any network call."""

    kind = "validation"


class TransportError(JobSearchError):
    """Network failure, non-2xx response or malformed payload."""

    kind = "transport"


class OracleError(JobSearchError):
    """Scoring / tailoring oracle failure. Recoverable per item."""

    kind = "oracle"


class PersistenceError(JobSearchError):
    """Application record could not be written or read."""

    kind = "persistence"


class NetworkError(TransportError):
    """Connection failure or timeout; safe to re-issue the same request."""
