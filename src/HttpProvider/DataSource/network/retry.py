"""Network retry policy: Tenacity-based backoff for transport failures.

Retries are scoped purely to transport-level failure (connection refused, DNS
failure, broken connections, transport timeouts).  A response that arrives with
*any* status code, 4xx and 5xx included, is a completed fetch and is never
retried.

Design:
- **Bounded attempts**: ``retry_attempts`` retries after the first attempt, so
  at most ``retry_attempts + 1`` attempts in total
- **Exponential backoff**: ``min_delay * 2^(attempt - 1)`` capped at
  ``max_delay``; monotonically non-decreasing
- **Deadline aware**: sleeps are clamped to, and interrupted by, the request
  deadline when one is configured
- **Annotated errors**: every transport failure is wrapped as
  ``retrying as request generated error: <cause>``; exhaustion surfaces
  ``giving up after <n> attempt(s): <annotated cause>``

Example:
    >>> policy = RetryPolicy(retry_attempts=2, min_delay_ms=100, max_delay_ms=1000)
    >>> policy.max_attempts
    3
    >>> [policy.delay_for(n) for n in (1, 2, 3, 4, 5)]
    [0.1, 0.2, 0.4, 0.8, 1.0]
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

import httpx
from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt
from tenacity.wait import wait_base

from ..deadline import Deadline
from ..logging_config import FetchLogger, NullFetchLogger
from .policy import RETRY_MAX_DELAY_MS, RETRY_MIN_DELAY_MS

T = TypeVar("T")

__all__ = [
    "RetryState",
    "TransportAttemptError",
    "RetriesExhausted",
    "RetryPolicy",
    "is_retryable_transport_error",
]


@dataclass
class RetryState:
    """Attempt bookkeeping for one execution; never shared or persisted."""

    max_attempts: int
    attempts_made: int = 0


class TransportAttemptError(Exception):
    """Transport failure from a single attempt, annotated for retry."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"retrying as request generated error: {cause}")
        self.cause = cause


class RetriesExhausted(Exception):
    """Raised once the last permitted attempt has failed."""

    def __init__(self, attempts: int, last_error: TransportAttemptError) -> None:
        super().__init__(f"giving up after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error

    @property
    def cause(self) -> BaseException:
        return self.last_error.cause


def is_retryable_transport_error(exc: BaseException) -> bool:
    """Return ``True`` when ``exc`` is a transport-level failure.

    HTTP status errors are deliberately excluded: a server that answered has
    completed the fetch.
    """

    return isinstance(exc, httpx.TransportError)


class _ExponentialBackoff(wait_base):
    """Doubling backoff with a ceiling, clamped to an optional deadline."""

    def __init__(self, policy: "RetryPolicy", deadline: Optional[Deadline]) -> None:
        self._policy = policy
        self._deadline = deadline

    def __call__(self, retry_state: RetryCallState) -> float:
        delay = self._policy.delay_for(retry_state.attempt_number)
        if self._deadline is not None:
            delay = self._deadline.bound(delay)
        return delay


class RetryPolicy:
    """Bounded retry of transport failures with exponential backoff."""

    def __init__(
        self,
        retry_attempts: int = 0,
        *,
        min_delay_ms: int = RETRY_MIN_DELAY_MS,
        max_delay_ms: int = RETRY_MAX_DELAY_MS,
        logger: Optional[FetchLogger] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        if retry_attempts < 0:
            raise ValueError("retry_attempts must be non-negative")
        if min_delay_ms < 0 or max_delay_ms < 0:
            raise ValueError("retry delays must be non-negative")
        self.retry_attempts = retry_attempts
        self.min_delay = min_delay_ms / 1000.0
        self.max_delay = max(max_delay_ms, min_delay_ms) / 1000.0
        self._logger = logger or NullFetchLogger()
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self.retry_attempts + 1

    def new_state(self) -> RetryState:
        return RetryState(max_attempts=self.max_attempts)

    def delay_for(self, attempt_number: int) -> float:
        """Backoff after the ``attempt_number``-th failed attempt (1-based)."""

        exponent = max(attempt_number, 1) - 1
        # Cap the exponent so huge attempt counts cannot overflow the float.
        delay = self.min_delay * (2 ** min(exponent, 62))
        return round(min(delay, self.max_delay), 6)

    def call(
        self,
        func: Callable[[], T],
        *,
        state: Optional[RetryState] = None,
        deadline: Optional[Deadline] = None,
        retryable: Callable[[BaseException], bool] = is_retryable_transport_error,
    ) -> T:
        """Run ``func`` until it succeeds, fails non-retryably, or attempts run out.

        Raises:
            RetriesExhausted: If every permitted attempt raised a retryable error.
            Exception: Any non-retryable exception from ``func`` propagates
                unchanged on the attempt that raised it.
        """

        state = state or self.new_state()
        state.max_attempts = self.max_attempts

        def _attempt() -> T:
            state.attempts_made += 1
            try:
                return func()
            except Exception as exc:
                if retryable(exc):
                    raise TransportAttemptError(exc) from exc
                raise

        def _before_sleep(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            delay = getattr(retry_state.next_action, "sleep", 0.0) or 0.0
            self._logger.warn(
                "request attempt failed, retrying",
                {
                    "attempt": retry_state.attempt_number,
                    "max_attempts": state.max_attempts,
                    "delay_ms": int(delay * 1000),
                    "error": str(exc) if exc is not None else None,
                },
            )

        def _give_up(retry_state: RetryCallState) -> T:
            exc = retry_state.outcome.exception()
            assert isinstance(exc, TransportAttemptError)
            raise RetriesExhausted(state.attempts_made, exc) from exc.cause

        sleep = self._sleep
        if sleep is None:
            sleep = deadline.sleep if deadline is not None else time.sleep

        controller = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=_ExponentialBackoff(self, deadline),
            retry=retry_if_exception_type(TransportAttemptError),
            sleep=sleep,
            before_sleep=_before_sleep,
            retry_error_callback=_give_up,
        )
        return controller(_attempt)
