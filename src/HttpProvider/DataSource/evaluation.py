"""Evaluate several data-source definitions concurrently.

Each definition is read on a worker thread with its own client, deadline, and
retry state; the shared :class:`RequestExecutor` holds configuration only.  A
failure in one definition is recorded in its own :class:`ReadResult` and never
cancels or alters the others.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, Mapping, Optional

from .datasource import ReadResult, read_data_source, read_data_source_v0
from .diagnostics import Diagnostics
from .logging_config import LOGGER_NAME
from .network.executor import RequestExecutor
from .settings import HttpClientConfiguration

__all__ = ["DEFAULT_MAX_WORKERS", "evaluate_data_sources"]

DEFAULT_MAX_WORKERS = 8

logger = logging.getLogger(f"{LOGGER_NAME}.evaluation")

Reader = Callable[..., ReadResult]


def _unexpected_failure(name: str, exc: BaseException) -> ReadResult:
    logger.error(
        "data source read raised unexpectedly",
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={"extra_fields": {"data_source": name, "error": str(exc)}},
    )
    diagnostics = Diagnostics()
    diagnostics.add_error("Unexpected error reading data source", str(exc), kind="internal")
    return ReadResult(state=None, diagnostics=diagnostics)


def evaluate_data_sources(
    definitions: Mapping[str, Mapping[str, Any]],
    *,
    max_workers: Optional[int] = None,
    config: Optional[HttpClientConfiguration] = None,
    executor: Optional[RequestExecutor] = None,
    legacy: bool = False,
) -> Dict[str, ReadResult]:
    """Read every definition and return results keyed by name.

    Args:
        definitions: Mapping of data-source name to raw attribute values.
        max_workers: Upper bound on concurrent reads.
        config: Transport defaults used when no ``executor`` is supplied.
        executor: Shared request executor.
        legacy: Produce the legacy (schema version 0) output shape.

    Returns:
        Results in the same order as ``definitions``.
    """

    if not definitions:
        return {}
    if max_workers is not None and max_workers < 1:
        raise ValueError("max_workers must be at least 1")

    request_executor = executor or RequestExecutor(config)
    reader: Reader = read_data_source_v0 if legacy else read_data_source
    workers = min(max_workers or DEFAULT_MAX_WORKERS, len(definitions))

    results: Dict[str, ReadResult] = {}
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="httpdata") as pool:
        futures: Dict[Future[ReadResult], str] = {
            pool.submit(reader, definition, executor=request_executor): name
            for name, definition in definitions.items()
        }
        for future in as_completed(futures):
            name = futures[future]
            try:
                results[name] = future.result()
            except Exception as exc:
                results[name] = _unexpected_failure(name, exc)

    failed = sorted(name for name, result in results.items() if not result.ok)
    logger.info(
        "evaluation finished",
        extra={
            "extra_fields": {
                "data_sources": len(results),
                "failed": failed,
                "workers": workers,
            }
        },
    )
    return {name: results[name] for name in definitions}
