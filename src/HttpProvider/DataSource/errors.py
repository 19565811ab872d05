"""Exception hierarchy shared across configuration binding and request execution.

Every fatal condition raised while reading the HTTP data source is tagged with
an :class:`ErrorKind` so callers can react to high-level categories (a timeout
versus an exhausted retry budget, say) while still receiving the human-readable
``summary``/``detail`` pair surfaced to operators as a diagnostic.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

__all__ = [
    "ErrorKind",
    "HttpDataSourceError",
    "ConfigError",
    "RequestCreationError",
    "RequestTimeoutError",
    "RequestError",
    "BodyReadError",
]


class ErrorKind(str, Enum):
    """Canonical classification for fatal data-source failures."""

    CONFIG = "config"  # Malformed or missing configuration
    REQUEST_CREATION = "request_creation"  # Request could not be built
    TIMEOUT = "timeout"  # Deadline exceeded
    REQUEST = "request"  # Transport failure after retries
    BODY_READ = "body_read"  # Response body could not be drained


class HttpDataSourceError(RuntimeError):
    """Base exception for classified data-source failures."""

    kind: ErrorKind = ErrorKind.REQUEST
    default_summary = "Error reading data source"

    def __init__(self, detail: str, *, summary: Optional[str] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.summary = summary or self.default_summary


class ConfigError(HttpDataSourceError):
    """Raised when configuration attributes are missing or invalid."""

    kind = ErrorKind.CONFIG
    default_summary = "Invalid data source configuration"


class RequestCreationError(HttpDataSourceError):
    """Raised when the outbound GET request cannot be constructed."""

    kind = ErrorKind.REQUEST_CREATION
    default_summary = "Error creating request"


class RequestTimeoutError(HttpDataSourceError):
    """Raised when the configured request deadline elapses."""

    kind = ErrorKind.TIMEOUT
    default_summary = "Error making request"

    def __init__(self, timeout_millis: int) -> None:
        super().__init__(
            f"The request exceeded the specified timeout: {timeout_millis} ms"
        )
        self.timeout_millis = timeout_millis


class RequestError(HttpDataSourceError):
    """Raised when transport failures persist after the retry budget is spent."""

    kind = ErrorKind.REQUEST
    default_summary = "Error making request"

    def __init__(self, detail: str, *, attempts: int) -> None:
        super().__init__(detail)
        self.attempts = attempts


class BodyReadError(HttpDataSourceError):
    """Raised when a response arrived but its body could not be read."""

    kind = ErrorKind.BODY_READ
    default_summary = "Error reading response body"
