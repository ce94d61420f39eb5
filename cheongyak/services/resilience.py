"""
Retry and circuit breaker wrapper for calls to external capabilities

Provides:
- Per-attempt timeout
- Bounded retries with exponential backoff
- Named circuit breakers shared process-wide through a registry
- Optional fallback when retries are exhausted or the breaker is open
"""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Optional, Tuple, Type

import httpx

from ..config import settings
from ..exceptions import ExternalServiceError, ServiceUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_RETRY_ON: Tuple[Type[BaseException], ...] = (
    ExternalServiceError,
    httpx.HTTPError,
    asyncio.TimeoutError,
    OSError,
)


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass
class BreakerConfig:
    """Circuit breaker configuration"""
    failure_threshold: int = 5
    recovery_timeout: float = 30.0  # seconds


class CircuitBreaker:
    """
    Counts consecutive failures of one dependency.

    Opens after ``failure_threshold`` failures, lets a single trial call
    through after ``recovery_timeout`` seconds, and closes again on success.
    """

    def __init__(
        self,
        name: str,
        config: Optional[BreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.name = name
        self.config = config or BreakerConfig()
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at = 0.0
        self._trial_in_flight = False

    @property
    def state(self) -> CircuitState:
        if (self._state == CircuitState.OPEN
                and self._clock() - self._opened_at >= self.config.recovery_timeout):
            self._state = CircuitState.HALF_OPEN
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failures

    def allow_request(self) -> bool:
        """Closed lets everything through; half-open admits one caller until it reports back"""
        state = self.state
        if state == CircuitState.CLOSED:
            return True
        if state == CircuitState.HALF_OPEN and not self._trial_in_flight:
            self._trial_in_flight = True
            return True
        return False

    def release_trial(self) -> None:
        """Give up the half-open slot without a verdict, e.g. when the trial call is cancelled"""
        self._trial_in_flight = False

    def record_success(self) -> None:
        self._trial_in_flight = False
        if self._state != CircuitState.CLOSED:
            logger.info(f"Circuit breaker '{self.name}' closed")
        self._failures = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._trial_in_flight = False
        self._failures += 1
        if self.state == CircuitState.HALF_OPEN or self._failures >= self.config.failure_threshold:
            if self._state != CircuitState.OPEN:
                logger.warning(
                    f"Circuit breaker '{self.name}' opened after {self._failures} failures"
                )
            self._state = CircuitState.OPEN
            self._opened_at = self._clock()


class BreakerRegistry:
    """Process-wide set of named circuit breakers"""

    def __init__(
        self,
        config: Optional[BreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.config = config or BreakerConfig()
        self._clock = clock
        self._breakers: Dict[str, CircuitBreaker] = {}

    def configure(self, failure_threshold: int, recovery_timeout: float) -> None:
        """Apply new thresholds; existing breakers are discarded"""
        self.config = BreakerConfig(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout
        )
        self.reset()

    def get(self, name: str) -> CircuitBreaker:
        if name not in self._breakers:
            self._breakers[name] = CircuitBreaker(name, self.config, clock=self._clock)
        return self._breakers[name]

    def reset(self) -> None:
        self._breakers.clear()

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        return {
            name: {"state": breaker.state.value, "failures": breaker.failure_count}
            for name, breaker in self._breakers.items()
        }


# Global breaker registry, configured from settings in the application lifespan
breaker_registry = BreakerRegistry(
    BreakerConfig(
        failure_threshold=settings.breaker_failure_threshold,
        recovery_timeout=settings.breaker_recovery_timeout
    )
)


def _is_retryable(error: BaseException, retry_on: Tuple[Type[BaseException], ...]) -> bool:
    if isinstance(error, ExternalServiceError) and not error.retryable:
        return False
    return isinstance(error, retry_on)


async def _call_fallback(fallback: Callable, error: BaseException, args, kwargs) -> Any:
    result = fallback(error, *args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def resilient(
    name: str,
    *,
    timeout: Optional[float] = None,
    retries: Optional[int] = None,
    backoff: Optional[float] = None,
    fallback: Optional[Callable] = None,
    retry_on: Tuple[Type[BaseException], ...] = DEFAULT_RETRY_ON,
    registry: Optional[BreakerRegistry] = None
):
    """
    Decorate an async call to an external capability.

    Args:
        name: Breaker name shared by every call to the same dependency
        timeout: Per-attempt timeout in seconds (None disables it)
        retries: Extra attempts after the first (defaults to settings)
        backoff: Base delay for exponential backoff (defaults to settings)
        fallback: Called as ``fallback(error, *args, **kwargs)`` when the
            breaker is open or the call ultimately fails; its return value
            replaces the call result. Without it the error is raised.
        retry_on: Exception types worth retrying
        registry: Breaker registry (defaults to the process-wide one)

    Usage:
        @resilient("llm", timeout=60.0)
        async def generate(prompt):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            breaker = (registry or breaker_registry).get(name)

            if not breaker.allow_request():
                logger.warning(f"Circuit breaker '{name}' is open, short-circuiting {func.__name__}")
                error = ServiceUnavailableError(name)
                if fallback is not None:
                    return await _call_fallback(fallback, error, args, kwargs)
                raise error

            max_attempts = 1 + (settings.retry_attempts if retries is None else retries)
            delay_base = settings.retry_backoff_base if backoff is None else backoff

            last_error: Optional[BaseException] = None
            try:
                for attempt in range(max_attempts):
                    try:
                        if timeout is not None:
                            result = await asyncio.wait_for(func(*args, **kwargs), timeout=timeout)
                        else:
                            result = await func(*args, **kwargs)
                    except Exception as e:
                        last_error = e
                        if not _is_retryable(e, retry_on) or attempt + 1 >= max_attempts:
                            break
                        delay = min(delay_base * (2 ** attempt), settings.retry_backoff_max)
                        logger.warning(
                            f"{name} call failed (attempt {attempt + 1}/{max_attempts}): {e!r}; "
                            f"retrying in {delay:.1f}s"
                        )
                        if delay > 0:
                            await asyncio.sleep(delay)
                    else:
                        breaker.record_success()
                        return result
            except asyncio.CancelledError:
                # A cancelled call says nothing about the dependency
                breaker.release_trial()
                raise

            breaker.record_failure()
            logger.error(f"{name} call failed after {attempt + 1} attempt(s): {last_error!r}")
            if fallback is not None:
                return await _call_fallback(fallback, last_error, args, kwargs)
            raise last_error

        return wrapper
    return decorator
