"""Retry policy behaviour, independent of the executor."""

from __future__ import annotations

import httpx
import pytest

from HttpProvider.DataSource.deadline import Deadline
from HttpProvider.DataSource.network.retry import (
    RetriesExhausted,
    RetryPolicy,
    TransportAttemptError,
    is_retryable_transport_error,
)


class _Flaky:
    def __init__(self, failures: int, exc_factory=lambda: httpx.ConnectError("connection refused")):
        self.failures = failures
        self.calls = 0
        self._exc_factory = exc_factory

    def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self._exc_factory()
        return "ok"


def test_delay_doubles_and_caps():
    policy = RetryPolicy(retry_attempts=5, min_delay_ms=100, max_delay_ms=1000)
    assert [policy.delay_for(n) for n in range(1, 7)] == [0.1, 0.2, 0.4, 0.8, 1.0, 1.0]


def test_delay_for_huge_attempt_numbers_stays_capped():
    policy = RetryPolicy(retry_attempts=1, min_delay_ms=1000, max_delay_ms=30000)
    assert policy.delay_for(10_000) == 30.0


def test_max_attempts_is_retries_plus_one():
    assert RetryPolicy().max_attempts == 1
    assert RetryPolicy(retry_attempts=3).max_attempts == 4


def test_negative_attempts_rejected():
    with pytest.raises(ValueError):
        RetryPolicy(retry_attempts=-1)


def test_succeeds_after_transient_failures():
    sleeps = []
    policy = RetryPolicy(retry_attempts=2, min_delay_ms=10, max_delay_ms=100, sleep=sleeps.append)
    func = _Flaky(failures=2)
    state = policy.new_state()

    assert policy.call(func, state=state) == "ok"
    assert func.calls == 3
    assert state.attempts_made == 3
    assert sleeps == [0.01, 0.02]


def test_exhaustion_reports_attempts_and_annotated_cause():
    policy = RetryPolicy(retry_attempts=1, min_delay_ms=0, max_delay_ms=0, sleep=lambda _: None)
    func = _Flaky(failures=10)

    with pytest.raises(RetriesExhausted) as excinfo:
        policy.call(func)

    exc = excinfo.value
    assert func.calls == 2
    assert exc.attempts == 2
    assert str(exc) == (
        "giving up after 2 attempt(s): retrying as request generated error: connection refused"
    )
    assert isinstance(exc.cause, httpx.ConnectError)
    assert isinstance(exc.last_error, TransportAttemptError)


def test_zero_retries_gives_up_after_one_attempt():
    policy = RetryPolicy(retry_attempts=0, sleep=lambda _: pytest.fail("must not sleep"))
    func = _Flaky(failures=1)

    with pytest.raises(RetriesExhausted, match=r"giving up after 1 attempt\(s\)"):
        policy.call(func)
    assert func.calls == 1


def test_non_retryable_errors_propagate_immediately():
    policy = RetryPolicy(retry_attempts=5, sleep=lambda _: pytest.fail("must not sleep"))
    func = _Flaky(failures=1, exc_factory=lambda: KeyError("boom"))

    with pytest.raises(KeyError):
        policy.call(func)
    assert func.calls == 1


def test_status_errors_are_not_transport_errors():
    request = httpx.Request("GET", "https://example.com")
    response = httpx.Response(503, request=request)
    status_error = httpx.HTTPStatusError("unavailable", request=request, response=response)

    assert not is_retryable_transport_error(status_error)
    assert is_retryable_transport_error(httpx.ReadTimeout("slow", request=request))
    assert is_retryable_transport_error(httpx.ConnectError("refused", request=request))


def test_each_retry_is_logged(recording_logger):
    policy = RetryPolicy(
        retry_attempts=2,
        min_delay_ms=5,
        max_delay_ms=5,
        logger=recording_logger,
        sleep=lambda _: None,
    )

    with pytest.raises(RetriesExhausted):
        policy.call(_Flaky(failures=10))

    warnings = [fields for level, _, fields in recording_logger.records if level == "warn"]
    assert [entry["attempt"] for entry in warnings] == [1, 2]
    assert all(entry["max_attempts"] == 3 for entry in warnings)
    assert all(entry["delay_ms"] == 5 for entry in warnings)


def test_backoff_is_clamped_to_deadline():
    sleeps = []
    deadline = Deadline(60.0)
    policy = RetryPolicy(
        retry_attempts=1, min_delay_ms=120_000, max_delay_ms=120_000, sleep=sleeps.append
    )

    with pytest.raises(RetriesExhausted):
        policy.call(_Flaky(failures=10), deadline=deadline)

    assert len(sleeps) == 1
    assert sleeps[0] <= 60.0
