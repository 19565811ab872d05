"""Public API for the HTTP data source.

The data source issues one HTTP GET per read, bounded by an optional deadline
and retried on transport failures, and exports the status code, folded
response headers, and body.  Exports are resolved lazily so importing the
package does not pull in the HTTP stack until it is needed.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any, Dict, Tuple

from ._version import __version__

_EXPORTS: Dict[str, Tuple[str, str]] = {
    # errors
    "ErrorKind": (".errors", "ErrorKind"),
    "HttpDataSourceError": (".errors", "HttpDataSourceError"),
    "ConfigError": (".errors", "ConfigError"),
    "RequestCreationError": (".errors", "RequestCreationError"),
    "RequestTimeoutError": (".errors", "RequestTimeoutError"),
    "RequestError": (".errors", "RequestError"),
    "BodyReadError": (".errors", "BodyReadError"),
    # diagnostics
    "Diagnostic": (".diagnostics", "Diagnostic"),
    "Diagnostics": (".diagnostics", "Diagnostics"),
    "Severity": (".diagnostics", "Severity"),
    # execution
    "RequestExecutor": (".network.executor", "RequestExecutor"),
    "RequestSpec": (".network.executor", "RequestSpec"),
    "ResponseResult": (".network.executor", "ResponseResult"),
    "RetryPolicy": (".network.retry", "RetryPolicy"),
    "Deadline": (".deadline", "Deadline"),
    # binding
    "HttpDataSourceConfig": (".datasource", "HttpDataSourceConfig"),
    "HttpDataSourceState": (".datasource", "HttpDataSourceState"),
    "HttpDataSourceStateV0": (".datasource", "HttpDataSourceStateV0"),
    "ReadResult": (".datasource", "ReadResult"),
    "parse_config": (".datasource", "parse_config"),
    "read_data_source": (".datasource", "read_data_source"),
    "read_data_source_v0": (".datasource", "read_data_source_v0"),
    "upgrade_state_v0": (".datasource", "upgrade_state_v0"),
    "get_schema": (".schema", "get_schema"),
    "evaluate_data_sources": (".evaluation", "evaluate_data_sources"),
    # configuration
    "HttpClientConfiguration": (".settings", "HttpClientConfiguration"),
    "load_config": (".settings", "load_config"),
}

__all__ = ["__version__", *_EXPORTS]

if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .datasource import (
        HttpDataSourceConfig,
        HttpDataSourceState,
        HttpDataSourceStateV0,
        ReadResult,
        parse_config,
        read_data_source,
        read_data_source_v0,
        upgrade_state_v0,
    )
    from .deadline import Deadline
    from .diagnostics import Diagnostic, Diagnostics, Severity
    from .errors import (
        BodyReadError,
        ConfigError,
        ErrorKind,
        HttpDataSourceError,
        RequestCreationError,
        RequestError,
        RequestTimeoutError,
    )
    from .evaluation import evaluate_data_sources
    from .network.executor import RequestExecutor, RequestSpec, ResponseResult
    from .network.retry import RetryPolicy
    from .schema import get_schema
    from .settings import HttpClientConfiguration, load_config


def __getattr__(name: str) -> Any:
    """Lazily import public exports."""

    target = _EXPORTS.get(name)
    if target is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
    module = import_module(target[0], __name__)
    value = getattr(module, target[1])
    globals()[name] = value
    return value


def __dir__() -> list:
    return sorted(set(globals()) | set(_EXPORTS))
