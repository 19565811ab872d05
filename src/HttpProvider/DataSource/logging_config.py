"""
Structured Logging Utilities

This module centralizes logging for the HTTP data source. It provides the
narrow :class:`FetchLogger` interface injected into the request executor, an
adapter that forwards those calls to the standard :mod:`logging` package while
swallowing delivery failures, a JSON formatter for machine-readable output, and
masking of sensitive header values.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .settings import LoggingConfiguration

LOGGER_NAME = "HttpProvider.DataSource"

_SENSITIVE_KEYS = {
    "authorization",
    "proxy-authorization",
    "cookie",
    "set-cookie",
    "x-api-key",
    "api_key",
    "apikey",
    "token",
    "secret",
    "password",
}


def mask_sensitive_data(payload: Mapping[str, object]) -> Dict[str, object]:
    """Remove secrets from structured payloads prior to logging.

    Nested mappings (for example request headers) are masked recursively.

    Examples:
        >>> mask_sensitive_data({"token": "secret", "status": "ok"})
        {'token': '***masked***', 'status': 'ok'}
    """
    masked: Dict[str, object] = {}
    for key, value in payload.items():
        lower = str(key).lower()
        if lower in _SENSITIVE_KEYS:
            masked[key] = "***masked***"
        elif isinstance(value, Mapping):
            masked[key] = mask_sensitive_data(value)
        elif isinstance(value, str) and "apikey" in value.lower():
            masked[key] = "***masked***"
        else:
            masked[key] = value
    return masked


def mask_header_values(headers: Mapping[str, str]) -> Dict[str, str]:
    """Return ``headers`` with every value masked, names preserved."""

    return {name: "***masked***" for name in headers}


@runtime_checkable
class FetchLogger(Protocol):
    """Logging capabilities required by the request executor."""

    def error(self, message: str, fields: Optional[Mapping[str, Any]] = None) -> None: ...

    def warn(self, message: str, fields: Optional[Mapping[str, Any]] = None) -> None: ...

    def info(self, message: str, fields: Optional[Mapping[str, Any]] = None) -> None: ...

    def debug(self, message: str, fields: Optional[Mapping[str, Any]] = None) -> None: ...


class StructuredLogger:
    """:class:`FetchLogger` backed by a standard library logger.

    Fields travel on the record as ``extra_fields`` (masked), which
    :class:`JSONFormatter` merges into the emitted object.  Any exception raised
    while emitting is discarded: logging must never fail a read.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(LOGGER_NAME)

    def _emit(self, level: int, message: str, fields: Optional[Mapping[str, Any]]) -> None:
        try:
            if not self._logger.isEnabledFor(level):
                return
            extra_fields = mask_sensitive_data(fields or {})
            self._logger.log(level, message, extra={"extra_fields": extra_fields})
        except Exception:  # logging delivery failures must not abort the read
            pass

    def error(self, message: str, fields: Optional[Mapping[str, Any]] = None) -> None:
        self._emit(logging.ERROR, message, fields)

    def warn(self, message: str, fields: Optional[Mapping[str, Any]] = None) -> None:
        self._emit(logging.WARNING, message, fields)

    def info(self, message: str, fields: Optional[Mapping[str, Any]] = None) -> None:
        self._emit(logging.INFO, message, fields)

    def debug(self, message: str, fields: Optional[Mapping[str, Any]] = None) -> None:
        self._emit(logging.DEBUG, message, fields)


class NullFetchLogger:
    """:class:`FetchLogger` that discards everything."""

    def error(self, message: str, fields: Optional[Mapping[str, Any]] = None) -> None:
        return None

    warn = info = debug = error


class JSONFormatter(logging.Formatter):
    """Formatter emitting JSON structured logs.

    Examples:
        >>> formatter = JSONFormatter()
        >>> isinstance(formatter.format(logging.makeLogRecord({'msg': 'test'})), str)
        True
    """

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        log_obj: Dict[str, object] = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "stage": getattr(record, "stage", None),
        }
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_obj.update(extra_fields)
        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(log_obj), default=str)


class KeyValueFormatter(logging.Formatter):
    """Console formatter appending ``key=value`` pairs from ``extra_fields``."""

    def __init__(self) -> None:
        super().__init__("%(levelname)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict) and extra_fields:
            pairs = " ".join(f"{key}={value}" for key, value in extra_fields.items())
            line = f"{line} {pairs}"
        return line


def setup_logging(config: "LoggingConfiguration", *, stream=None) -> logging.Logger:
    """Configure the data-source logger according to ``config``.

    Handlers installed by previous calls are replaced, so repeated calls (for
    example across CLI invocations in one process) do not duplicate output.

    Examples:
        >>> logger = setup_logging(LoggingConfiguration(level="INFO"))
        >>> logger.name
        'HttpProvider.DataSource'
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_httpdata_managed", False):
            logger.removeHandler(handler)
            handler.close()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter() if config.json_format else KeyValueFormatter())
    handler._httpdata_managed = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = True
    return logger


__all__ = [
    "LOGGER_NAME",
    "FetchLogger",
    "StructuredLogger",
    "NullFetchLogger",
    "JSONFormatter",
    "KeyValueFormatter",
    "setup_logging",
    "mask_sensitive_data",
    "mask_header_values",
]
