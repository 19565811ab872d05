# === NAVMAP v1 ===
# {
#   "module": "HttpProvider.DataSource.network.executor",
#   "purpose": "Execute one deadline-bound, retryable HTTP GET and classify its failures.",
#   "sections": [
#     {
#       "id": "requestspec",
#       "name": "RequestSpec",
#       "anchor": "class-requestspec",
#       "kind": "class"
#     },
#     {
#       "id": "responseresult",
#       "name": "ResponseResult",
#       "anchor": "class-responseresult",
#       "kind": "class"
#     },
#     {
#       "id": "requestexecutor",
#       "name": "RequestExecutor",
#       "anchor": "class-requestexecutor",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Request execution pipeline for the HTTP data source.

:class:`RequestExecutor` turns an immutable :class:`RequestSpec` into a
:class:`ResponseResult`, or raises one of the classified errors from
:mod:`HttpProvider.DataSource.errors`:

* :class:`~HttpProvider.DataSource.errors.RequestCreationError` when the GET
  cannot be built (bad URL syntax, unsupported scheme, unencodable header)
* :class:`~HttpProvider.DataSource.errors.RequestTimeoutError` as soon as the
  configured deadline passes; this wins over retry-exhaustion wording
* :class:`~HttpProvider.DataSource.errors.RequestError` when transport failures
  outlast the retry budget
* :class:`~HttpProvider.DataSource.errors.BodyReadError` when the response body
  cannot be drained

Any HTTP status code is a successful fetch. Non-text content types only add an
advisory warning to the result.

The deadline bounds every httpx phase (connect, write, read, pool) and is
checked between attempts and body chunks. Host name resolution runs inside the
socket connect call, outside httpx's timeouts, so a stalled system resolver
can hold an attempt past the deadline; the expiry is reported as a timeout once
the call returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Tuple

import httpx

from ..deadline import Deadline
from ..diagnostics import Diagnostic, content_type_warning
from ..errors import (
    BodyReadError,
    ConfigError,
    HttpDataSourceError,
    RequestCreationError,
    RequestError,
    RequestTimeoutError,
)
from ..logging_config import FetchLogger, StructuredLogger, mask_header_values
from ..settings import HttpClientConfiguration
from .client import ClientFactory, create_http_client
from .content import is_text_content_type
from .headers import fold_response_headers
from .policy import ALLOWED_SCHEMES, REQUEST_METHOD
from .retry import RetriesExhausted, RetryPolicy, RetryState

__all__ = ["RequestSpec", "ResponseResult", "RequestExecutor"]

_TIMEOUT_PHASES = {
    httpx.ConnectTimeout: "connect",
    httpx.ReadTimeout: "read",
    httpx.WriteTimeout: "write",
    httpx.PoolTimeout: "pool",
}


@dataclass(frozen=True)
class RequestSpec:
    """Immutable description of one GET request.

    ``None`` for ``timeout_millis`` or ``retry_attempts`` means the feature is
    disabled, not that a zero value applies.
    """

    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    timeout_millis: Optional[int] = None
    retry_attempts: Optional[int] = None
    retry_min_delay_ms: Optional[int] = None
    retry_max_delay_ms: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.url, str) or not self.url.strip():
            raise ConfigError("url must be a non-empty string")
        if self.timeout_millis is not None and self.timeout_millis < 1:
            raise ConfigError("request_timeout must be at least 1 millisecond")
        if self.retry_attempts is not None and self.retry_attempts < 0:
            raise ConfigError("retry.attempts must be non-negative")
        for name in ("retry_min_delay_ms", "retry_max_delay_ms"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ConfigError(f"{name} must be non-negative")

        seen: Dict[str, str] = {}
        for name in self.headers:
            lowered = name.lower()
            if lowered in seen:
                raise ConfigError(
                    f"request header {name!r} duplicates {seen[lowered]!r} (names are case-insensitive)"
                )
            seen[lowered] = name
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))


@dataclass(frozen=True)
class ResponseResult:
    """Outcome of a completed fetch (any status code)."""

    status_code: int
    headers: Dict[str, str]
    body: str
    body_encoding_warning: bool = False
    content: bytes = field(default=b"", repr=False)
    warnings: Tuple[Diagnostic, ...] = ()
    attempts: int = 1


class RequestExecutor:
    """Run GET requests with a deadline, bounded retries, and error classification.

    The executor holds configuration only; every :meth:`execute` call builds
    its own client, deadline, and retry state, so one instance can serve
    concurrent reads.

    Args:
        config: Platform transport defaults and retry backoff bounds.
        logger: Narrow logging sink; defaults to :class:`StructuredLogger`.
        transport: Optional HTTPX transport used by the default client factory.
        client_factory: Override for client construction.
        sleep: Override for backoff sleeping (tests pass a no-op).
    """

    def __init__(
        self,
        config: Optional[HttpClientConfiguration] = None,
        *,
        logger: Optional[FetchLogger] = None,
        transport: Optional[httpx.BaseTransport] = None,
        client_factory: Optional[ClientFactory] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self._config = config or HttpClientConfiguration()
        self._logger = logger or StructuredLogger()
        if client_factory is None:

            def client_factory(cfg: HttpClientConfiguration) -> httpx.Client:
                return create_http_client(cfg, transport=transport)

        self._client_factory = client_factory
        self._sleep = sleep

    def _retry_policy(self, spec: RequestSpec) -> RetryPolicy:
        min_delay = spec.retry_min_delay_ms
        max_delay = spec.retry_max_delay_ms
        if min_delay is None:
            min_delay = self._config.retry_min_delay_ms
            if max_delay is not None:
                min_delay = min(min_delay, max_delay)
        if max_delay is None:
            max_delay = max(self._config.retry_max_delay_ms, min_delay)
        return RetryPolicy(
            spec.retry_attempts or 0,
            min_delay_ms=min_delay,
            max_delay_ms=max_delay,
            logger=self._logger,
            sleep=self._sleep,
        )

    def _attempt_timeout(self, deadline: Optional[Deadline]) -> Tuple[httpx.Timeout, frozenset]:
        """Return the per-phase budget and the phases clamped by the deadline."""

        platform = self._config.timeout()
        if deadline is None:
            return platform, frozenset()
        phases = {
            "connect": platform.connect,
            "read": platform.read,
            "write": platform.write,
            "pool": platform.pool,
        }
        remaining = deadline.remaining()
        clamped = frozenset(
            name for name, value in phases.items() if value is None or remaining < value
        )
        bounded = {name: deadline.bound(value) for name, value in phases.items()}
        return httpx.Timeout(**bounded), clamped

    def _build_request(
        self,
        client: httpx.Client,
        spec: RequestSpec,
        timeout: httpx.Timeout,
    ) -> httpx.Request:
        try:
            request = client.build_request(
                REQUEST_METHOD,
                spec.url,
                headers=dict(spec.headers),
                timeout=timeout,
            )
        except (httpx.InvalidURL, httpx.UnsupportedProtocol, ValueError, TypeError) as exc:
            raise RequestCreationError(f"Error creating request: {exc}") from exc

        if request.url.scheme not in ALLOWED_SCHEMES:
            raise RequestCreationError(
                f"Error creating request: unsupported protocol scheme {request.url.scheme!r}"
            )
        if not request.url.host:
            raise RequestCreationError(f"Error creating request: no host in request URL {spec.url!r}")
        return request

    @staticmethod
    def _is_deadline_timeout(
        exc: BaseException,
        deadline: Optional[Deadline],
        clamped: frozenset,
    ) -> bool:
        if deadline is None:
            return False
        if deadline.expired():
            return True
        for exc_type, phase in _TIMEOUT_PHASES.items():
            if isinstance(exc, exc_type):
                return phase in clamped
        return False

    def _send(
        self,
        client: httpx.Client,
        spec: RequestSpec,
        deadline: Optional[Deadline],
        state: RetryState,
    ) -> Tuple[httpx.Response, frozenset]:
        if deadline is not None and deadline.expired():
            raise RequestTimeoutError(spec.timeout_millis)

        timeout, clamped = self._attempt_timeout(deadline)
        request = self._build_request(client, spec, timeout)
        self._logger.debug(
            "sending request",
            {"url": spec.url, "attempt": state.attempts_made, "max_attempts": state.max_attempts},
        )
        try:
            response = client.send(request, stream=True)
        except httpx.TransportError as exc:
            if self._is_deadline_timeout(exc, deadline, clamped):
                raise RequestTimeoutError(spec.timeout_millis) from exc
            raise

        if deadline is not None and deadline.expired():
            response.close()
            raise RequestTimeoutError(spec.timeout_millis)
        return response, clamped

    def _drain(
        self,
        response: httpx.Response,
        spec: RequestSpec,
        deadline: Optional[Deadline],
        clamped: frozenset,
    ) -> bytes:
        chunks: List[bytes] = []
        try:
            for chunk in response.iter_bytes():
                chunks.append(chunk)
                if deadline is not None and deadline.expired():
                    raise RequestTimeoutError(spec.timeout_millis)
        except httpx.TimeoutException as exc:
            if self._is_deadline_timeout(exc, deadline, clamped):
                raise RequestTimeoutError(spec.timeout_millis) from exc
            raise BodyReadError(f"Error reading response body: {exc}") from exc
        except (httpx.HTTPError, httpx.StreamError) as exc:
            if deadline is not None and deadline.expired():
                raise RequestTimeoutError(spec.timeout_millis) from exc
            raise BodyReadError(f"Error reading response body: {exc}") from exc
        return b"".join(chunks)

    def _read_response(
        self,
        response: httpx.Response,
        spec: RequestSpec,
        deadline: Optional[Deadline],
        clamped: frozenset,
        attempts: int,
    ) -> ResponseResult:
        warnings: List[Diagnostic] = []
        content_type = response.headers.get("Content-Type")
        if not is_text_content_type(content_type):
            warnings.append(content_type_warning(content_type or ""))
            self._logger.warn(
                "response content type is not recognized as text",
                {"url": spec.url, "content_type": content_type},
            )

        content = self._drain(response, spec, deadline, clamped)
        try:
            body = content.decode("utf-8")
            encoding_warning = False
        except UnicodeDecodeError:
            body = content.decode("utf-8", errors="replace")
            encoding_warning = True

        return ResponseResult(
            status_code=response.status_code,
            headers=fold_response_headers(response.headers),
            body=body,
            body_encoding_warning=encoding_warning,
            content=content,
            warnings=tuple(warnings),
            attempts=attempts,
        )

    def execute(self, spec: RequestSpec) -> ResponseResult:
        """Execute ``spec`` and return the response, or raise a classified error."""

        deadline = Deadline.after_millis(spec.timeout_millis) if spec.timeout_millis else None
        policy = self._retry_policy(spec)
        state = policy.new_state()
        fields = {
            "url": spec.url,
            "timeout_ms": spec.timeout_millis,
            "max_attempts": policy.max_attempts,
        }
        self._logger.debug(
            "executing request", {**fields, "headers": mask_header_values(spec.headers)}
        )

        try:
            with self._client_factory(self._config) as client:
                try:
                    response, clamped = policy.call(
                        lambda: self._send(client, spec, deadline, state),
                        state=state,
                        deadline=deadline,
                    )
                except RetriesExhausted as exc:
                    raise RequestError(
                        f"Error making request: {REQUEST_METHOD} {spec.url}: {exc}",
                        attempts=exc.attempts,
                    ) from exc.cause
                except httpx.HTTPError as exc:
                    raise RequestError(
                        f"Error making request: {REQUEST_METHOD} {spec.url}: {exc}",
                        attempts=state.attempts_made,
                    ) from exc

                try:
                    result = self._read_response(
                        response, spec, deadline, clamped, state.attempts_made
                    )
                finally:
                    response.close()
        except HttpDataSourceError as exc:
            self._logger.error(
                "request failed",
                {
                    **fields,
                    "kind": exc.kind.value,
                    "attempts": state.attempts_made,
                    "error": exc.detail,
                },
            )
            raise

        self._logger.info(
            "request completed",
            {
                **fields,
                "status_code": result.status_code,
                "attempts": result.attempts,
                "bytes": len(result.content),
                "warnings": len(result.warnings),
            },
        )
        return result
