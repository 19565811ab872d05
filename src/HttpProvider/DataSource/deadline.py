"""Deadline-bound execution scope for a single data-source read.

A :class:`Deadline` is created when a data source configures
``request_timeout``.  The executor derives every network budget from
:meth:`Deadline.remaining`, checks :meth:`Deadline.expired` between attempts
and body chunks, and sleeps between retries through :meth:`Deadline.sleep` so
backoff never outlives the deadline.  Cancellation is cooperative; no thread
is ever interrupted.

Blocking calls that httpx does not time out, notably DNS resolution through
the system resolver, are not interrupted by expiry.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

__all__ = ["Deadline"]


class Deadline:
    """Thread-safe wall-clock limit for one request execution.

    Examples:
        >>> deadline = Deadline.after_millis(50)
        >>> deadline.expired()
        False
        >>> deadline.cancel()
        >>> deadline.expired()
        True
    """

    def __init__(
        self,
        timeout_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self._clock = clock
        self._expires_at = clock() + timeout_seconds
        self._cancelled = threading.Event()

    @classmethod
    def after_millis(cls, timeout_millis: int, **kwargs) -> "Deadline":
        return cls(timeout_millis / 1000.0, **kwargs)

    def remaining(self) -> float:
        """Seconds left before expiry, never negative."""

        if self._cancelled.is_set():
            return 0.0
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        return self._cancelled.is_set() or self._clock() >= self._expires_at

    def cancel(self) -> None:
        """Expire the deadline immediately, waking any pending :meth:`sleep`."""

        self._cancelled.set()

    def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` or until the deadline passes, whichever is first."""

        budget = min(max(seconds, 0.0), self.remaining())
        if budget > 0:
            self._cancelled.wait(budget)

    def bound(self, seconds: Optional[float]) -> float:
        """Clamp a platform timeout budget to the time remaining."""

        remaining = self.remaining()
        if seconds is None:
            return remaining
        return min(seconds, remaining)
