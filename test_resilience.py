"""
Tests for the retry and circuit breaker wrapper
"""
import asyncio

import pytest

from cheongyak.exceptions import ExternalServiceError, ServiceUnavailableError
from cheongyak.services.resilience import (
    BreakerConfig,
    BreakerRegistry,
    CircuitBreaker,
    CircuitState,
    resilient
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class Flaky:
    """Fails a fixed number of times, then succeeds"""

    def __init__(self, failures: int, error: Exception = None):
        self.failures = failures
        self.error = error or ExternalServiceError("boom")
        self.calls = 0

    async def __call__(self, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return value


def test_breaker_opens_at_threshold_and_recovers():
    clock = FakeClock()
    breaker = CircuitBreaker("dep", BreakerConfig(failure_threshold=3, recovery_timeout=10), clock=clock)

    breaker.record_failure()
    breaker.record_failure()
    assert breaker.state == CircuitState.CLOSED
    breaker.record_failure()
    assert breaker.state == CircuitState.OPEN
    assert not breaker.allow_request()

    clock.now = 9.9
    assert breaker.state == CircuitState.OPEN
    clock.now = 10.0
    assert breaker.state == CircuitState.HALF_OPEN
    assert breaker.allow_request()

    breaker.record_success()
    assert breaker.state == CircuitState.CLOSED
    assert breaker.failure_count == 0


def test_failed_trial_call_reopens_breaker():
    clock = FakeClock()
    breaker = CircuitBreaker("dep", BreakerConfig(failure_threshold=3, recovery_timeout=5), clock=clock)
    for _ in range(3):
        breaker.record_failure()
    clock.now = 5
    assert breaker.state == CircuitState.HALF_OPEN

    breaker.record_failure()
    assert breaker.state == CircuitState.OPEN
    clock.now = 9
    assert breaker.state == CircuitState.OPEN


def test_success_resets_failure_count():
    breaker = CircuitBreaker("dep", BreakerConfig(failure_threshold=3))
    breaker.record_failure()
    breaker.record_failure()
    breaker.record_success()
    breaker.record_failure()
    assert breaker.state == CircuitState.CLOSED
    assert breaker.failure_count == 1


def test_transient_failures_are_retried():
    flaky = Flaky(failures=2)
    call = resilient("flaky", retries=2, backoff=0, registry=BreakerRegistry())(flaky)

    assert asyncio.run(call("ok")) == "ok"
    assert flaky.calls == 3


def test_retries_are_bounded():
    flaky = Flaky(failures=10)
    registry = BreakerRegistry()
    call = resilient("bounded", retries=2, backoff=0, registry=registry)(flaky)

    with pytest.raises(ExternalServiceError):
        asyncio.run(call("never"))
    assert flaky.calls == 3
    assert registry.get("bounded").failure_count == 1


def test_non_retryable_errors_fail_immediately():
    flaky = Flaky(failures=10, error=ExternalServiceError("bad request", retryable=False))
    call = resilient("strict", retries=3, backoff=0, registry=BreakerRegistry())(flaky)

    with pytest.raises(ExternalServiceError):
        asyncio.run(call("never"))
    assert flaky.calls == 1


def test_errors_outside_retry_set_are_not_retried():
    flaky = Flaky(failures=10, error=ValueError("programming error"))
    call = resilient("narrow", retries=3, backoff=0, registry=BreakerRegistry())(flaky)

    with pytest.raises(ValueError):
        asyncio.run(call("never"))
    assert flaky.calls == 1


def test_open_breaker_short_circuits_without_calling():
    registry = BreakerRegistry(BreakerConfig(failure_threshold=2, recovery_timeout=60))
    flaky = Flaky(failures=100)
    call = resilient("fragile", retries=0, backoff=0, registry=registry)(flaky)

    for _ in range(2):
        with pytest.raises(ExternalServiceError):
            asyncio.run(call("x"))
    assert registry.get("fragile").state == CircuitState.OPEN

    with pytest.raises(ServiceUnavailableError) as excinfo:
        asyncio.run(call("x"))
    assert excinfo.value.breaker_name == "fragile"
    assert flaky.calls == 2


def test_breakers_are_shared_by_name():
    registry = BreakerRegistry(BreakerConfig(failure_threshold=1, recovery_timeout=60))
    first = Flaky(failures=1)
    second = Flaky(failures=0)
    call_first = resilient("shared", retries=0, registry=registry)(first)
    call_second = resilient("shared", retries=0, registry=registry)(second)

    with pytest.raises(ExternalServiceError):
        asyncio.run(call_first("x"))
    with pytest.raises(ServiceUnavailableError):
        asyncio.run(call_second("x"))
    assert second.calls == 0


def test_fallback_replaces_failure_and_open_breaker():
    registry = BreakerRegistry(BreakerConfig(failure_threshold=1, recovery_timeout=60))
    seen = []

    def fallback(error, value):
        seen.append(type(error))
        return f"fallback:{value}"

    flaky = Flaky(failures=100)
    call = resilient("with-fallback", retries=1, backoff=0, fallback=fallback, registry=registry)(flaky)

    assert asyncio.run(call("a")) == "fallback:a"
    assert asyncio.run(call("b")) == "fallback:b"
    assert seen == [ExternalServiceError, ServiceUnavailableError]
    assert flaky.calls == 2


def test_async_fallback_is_awaited():
    async def fallback(error, value):
        return "async-fallback"

    call = resilient("async-fallback", retries=0, fallback=fallback, registry=BreakerRegistry())(
        Flaky(failures=1)
    )
    assert asyncio.run(call("x")) == "async-fallback"


def test_timeout_counts_as_retryable_failure():
    calls = []

    async def slow(value):
        calls.append(value)
        await asyncio.sleep(1)
        return value

    call = resilient("slow", timeout=0.01, retries=1, backoff=0, registry=BreakerRegistry())(slow)
    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(call("x"))
    assert len(calls) == 2


def test_snapshot_reports_breaker_states():
    registry = BreakerRegistry(BreakerConfig(failure_threshold=1))
    registry.get("ocr").record_failure()
    registry.get("llm")
    snapshot = registry.snapshot()
    assert snapshot["ocr"] == {"state": "OPEN", "failures": 1}
    assert snapshot["llm"] == {"state": "CLOSED", "failures": 0}


def test_half_open_breaker_admits_one_trial_call():
    clock = FakeClock()
    breaker = CircuitBreaker("dep", BreakerConfig(failure_threshold=1, recovery_timeout=10), clock=clock)
    breaker.record_failure()
    clock.now = 10

    assert breaker.allow_request()
    assert not breaker.allow_request()
    assert not breaker.allow_request()

    breaker.record_success()
    assert breaker.allow_request()
    assert breaker.allow_request()


def test_concurrent_calls_during_half_open_reach_dependency_once():
    clock = FakeClock()
    registry = BreakerRegistry(BreakerConfig(failure_threshold=1, recovery_timeout=10), clock=clock)
    calls = []

    async def recovering(value):
        calls.append(value)
        if len(calls) == 1:
            raise ExternalServiceError("down")
        await asyncio.sleep(0.01)
        return value

    call = resilient("recovering", retries=0, registry=registry)(recovering)

    with pytest.raises(ExternalServiceError):
        asyncio.run(call("first"))
    clock.now = 10

    async def burst():
        return await asyncio.gather(*(call(i) for i in range(5)), return_exceptions=True)

    results = asyncio.run(burst())

    assert len(calls) == 2
    assert [r for r in results if not isinstance(r, Exception)] == [0]
    assert sum(isinstance(r, ServiceUnavailableError) for r in results) == 4
    assert registry.get("recovering").state == CircuitState.CLOSED


def test_cancelled_trial_call_frees_the_half_open_slot():
    clock = FakeClock()
    registry = BreakerRegistry(BreakerConfig(failure_threshold=1, recovery_timeout=10), clock=clock)
    registry.get("hanging").record_failure()
    clock.now = 10

    async def hang(value):
        await asyncio.sleep(10)
        return value

    call = resilient("hanging", retries=0, registry=registry)(hang)

    async def scenario():
        task = asyncio.create_task(call("x"))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert registry.get("hanging").allow_request()
