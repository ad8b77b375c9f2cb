"""Circuit breaker and retry with exponential backoff for embedding calls."""

import asyncio
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Tuple, Type
import structlog

logger = structlog.get_logger("contact_search.resilience")


class CircuitBreakerState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Failing, reject calls
    HALF_OPEN = "half_open"  # Testing if the provider recovered


class CircuitBreakerError(Exception):
    """Circuit breaker is open."""
    pass


class CircuitBreaker:
    """Circuit breaker for embedding provider calls."""

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        expected_exception: Type[BaseException] = Exception,
        name: str = "embedding_provider"
    ):
        """Configure a circuit breaker.

        Parameters
        - failure_threshold: Consecutive failures before opening the breaker
        - recovery_timeout: Seconds to wait before a HALF_OPEN probe
        - expected_exception: Exception type(s) treated as failures
        - name: Identifier for logs
        """
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception
        self.name = name

        self.failure_count = 0
        self.last_failure_time: Optional[float] = None
        self.state = CircuitBreakerState.CLOSED
        self._lock = asyncio.Lock()

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Await ``func`` with circuit breaker protection."""
        async with self._lock:
            if self.state == CircuitBreakerState.OPEN:
                if self._should_attempt_reset():
                    self.state = CircuitBreakerState.HALF_OPEN
                    logger.info("Circuit breaker transitioning to HALF_OPEN", name=self.name)
                else:
                    logger.warning("Circuit breaker is OPEN, rejecting call", name=self.name)
                    raise CircuitBreakerError(f"Circuit breaker {self.name} is open")

        try:
            result = await func(*args, **kwargs)
        except self.expected_exception:
            await self._on_failure()
            raise

        await self._on_success()
        return result

    def _should_attempt_reset(self) -> bool:
        if self.last_failure_time is None:
            return True
        return (time.monotonic() - self.last_failure_time) >= self.recovery_timeout

    async def _on_success(self):
        async with self._lock:
            if self.state == CircuitBreakerState.HALF_OPEN:
                self.state = CircuitBreakerState.CLOSED
                logger.info("Circuit breaker reset to CLOSED", name=self.name)
            self.failure_count = 0

    async def _on_failure(self):
        async with self._lock:
            self.failure_count += 1
            self.last_failure_time = time.monotonic()

            if self.state == CircuitBreakerState.HALF_OPEN or self.failure_count >= self.failure_threshold:
                self.state = CircuitBreakerState.OPEN
                logger.warning(
                    "Circuit breaker opened due to failures",
                    name=self.name,
                    failure_count=self.failure_count,
                    threshold=self.failure_threshold
                )

    def get_stats(self) -> dict:
        """Get circuit breaker statistics."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout
        }


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry behaviour."""
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 8.0
    exponential_base: float = 2.0
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        """Delay after the ``attempt``-th failure (1-based)."""
        delay = min(self.base_delay * (self.exponential_base ** (attempt - 1)), self.max_delay)
        if self.jitter and delay > 0:
            jitter_range = delay * 0.1
            delay += random.uniform(-jitter_range, jitter_range)
        return max(delay, 0.0)


async def call_with_retry(
    func: Callable[[], Awaitable[Any]],
    policy: RetryPolicy,
    operation_name: str,
    is_retryable: Callable[[BaseException], bool] = lambda exc: True,
    non_retryable: Tuple[Type[BaseException], ...] = (CircuitBreakerError,)
) -> Any:
    """Await ``func()`` with retry and exponential backoff.

    ``non_retryable`` exceptions and exceptions rejected by ``is_retryable``
    propagate immediately.
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await func()
        except non_retryable as exc:
            logger.error("Operation not retryable, aborting", operation=operation_name, error=str(exc))
            raise
        except Exception as exc:
            if attempt == policy.max_attempts or not is_retryable(exc):
                logger.error(
                    "Operation failed",
                    operation=operation_name,
                    attempts=attempt,
                    error=str(exc)
                )
                raise

            delay = policy.delay_for(attempt)
            logger.warning(
                "Operation failed, retrying",
                operation=operation_name,
                attempt=attempt,
                max_attempts=policy.max_attempts,
                delay_seconds=round(delay, 3),
                error=str(exc)
            )
            await asyncio.sleep(delay)

    raise RuntimeError(f"Retry logic failed for {operation_name}")
