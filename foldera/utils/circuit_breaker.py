"""
Circuit Breaker for the LLM Provider

When consecutive completion failures exceed the threshold the circuit opens
and completion calls fail fast with CircuitOpenError instead of waiting on a
provider that is down. The conflict solver treats that like any other
service failure and serves the deterministic result.
"""

import asyncio
from enum import Enum
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Optional, Callable, TypeVar, Awaitable
from foldera.config import get_settings
from foldera.utils.observability import logger

T = TypeVar("T")


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation, requests flow through
    OPEN = "open"          # Failing, reject requests immediately
    HALF_OPEN = "half_open"  # Testing if service recovered


@dataclass
class CircuitStats:
    """Circuit breaker statistics."""
    consecutive_failures: int = 0
    total_failures: int = 0
    total_successes: int = 0
    rejected_calls: int = 0
    last_failure_time: Optional[datetime] = None
    last_success_time: Optional[datetime] = None
    opened_at: Optional[datetime] = None
    state_changes: int = 0


class CircuitOpenError(Exception):
    """Raised when the circuit rejects a call and no fallback was given."""
    pass


class CircuitBreaker:
    """
    Circuit breaker guarding calls to an unreliable async dependency.

    States:
    - CLOSED: Normal operation. Failures are counted.
    - OPEN: Provider is down. Calls are rejected without being attempted.
    - HALF_OPEN: Testing recovery. A limited number of probe calls pass.

    Usage:
        breaker = CircuitBreaker(name="llm")

        try:
            text = await breaker.call(lambda: client.complete(prompt))
        except CircuitOpenError:
            ...  # provider considered down, skip the LLM path
    """

    def __init__(
        self,
        name: str,
        failure_threshold: Optional[int] = None,
        recovery_timeout: Optional[float] = None,
        half_open_max_calls: Optional[int] = None,
    ):
        """
        Args:
            name: Identifier for this circuit (for logging)
            failure_threshold: Consecutive failures before opening
            recovery_timeout: Seconds before trying recovery
            half_open_max_calls: Max calls allowed in half-open state
        """
        settings = get_settings()
        self.name = name
        self._failure_threshold = failure_threshold or settings.circuit_breaker_failure_threshold
        self._recovery_timeout = recovery_timeout or settings.circuit_breaker_recovery_timeout
        self._half_open_max_calls = half_open_max_calls or settings.circuit_breaker_half_open_max_calls

        self._state = CircuitState.CLOSED
        self._stats = CircuitStats()
        self._half_open_calls = 0
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        """Current circuit state."""
        return self._state

    @property
    def stats(self) -> CircuitStats:
        """Circuit statistics."""
        return self._stats

    async def call(
        self,
        func: Callable[[], Awaitable[T]],
        fallback: Optional[Callable[[], T]] = None,
    ) -> T:
        """
        Execute function through circuit breaker.

        Args:
            func: Async function to execute
            fallback: Value factory used when the call is rejected

        Returns:
            Result from func, or from fallback when rejected

        Raises:
            CircuitOpenError: When the call is rejected and no fallback was given
            Exception: Whatever func raised (after it is counted as a failure)
        """
        async with self._lock:
            self._check_state_transition()

            rejected = False
            if self._state == CircuitState.OPEN:
                logger.warning(f"Circuit '{self.name}' is OPEN, rejecting call")
                rejected = True
            elif self._state == CircuitState.HALF_OPEN:
                if self._half_open_calls >= self._half_open_max_calls:
                    logger.warning(f"Circuit '{self.name}' HALF_OPEN limit reached, rejecting call")
                    rejected = True
                else:
                    self._half_open_calls += 1

            if rejected:
                self._stats.rejected_calls += 1

        if rejected:
            if fallback is None:
                raise CircuitOpenError(f"Circuit '{self.name}' is {self._state.value}")
            return fallback()

        # Execute outside lock to allow concurrency
        try:
            result = await func()
        except Exception as e:
            await self._record_failure(e)
            raise

        await self._record_success()
        return result

    def _check_state_transition(self) -> None:
        """Move OPEN -> HALF_OPEN once the recovery timeout has elapsed."""
        if self._state != CircuitState.OPEN or not self._stats.opened_at:
            return

        elapsed = (datetime.now(timezone.utc) - self._stats.opened_at).total_seconds()
        if elapsed >= self._recovery_timeout:
            self._transition_to(CircuitState.HALF_OPEN)
            self._half_open_calls = 0

    async def _record_success(self) -> None:
        async with self._lock:
            self._stats.consecutive_failures = 0
            self._stats.total_successes += 1
            self._stats.last_success_time = datetime.now(timezone.utc)

            if self._state == CircuitState.HALF_OPEN:
                logger.info(f"Circuit '{self.name}' recovered, closing")
                self._transition_to(CircuitState.CLOSED)

    async def _record_failure(self, error: Exception) -> None:
        async with self._lock:
            self._stats.consecutive_failures += 1
            self._stats.total_failures += 1
            self._stats.last_failure_time = datetime.now(timezone.utc)

            logger.warning(
                f"Circuit '{self.name}' failure {self._stats.consecutive_failures}/{self._failure_threshold}: {error}"
            )

            if self._state == CircuitState.HALF_OPEN:
                logger.warning(f"Circuit '{self.name}' probe failed, reopening")
                self._transition_to(CircuitState.OPEN)
            elif self._stats.consecutive_failures >= self._failure_threshold:
                logger.error(f"Circuit '{self.name}' threshold reached, opening")
                self._transition_to(CircuitState.OPEN)

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        self._stats.state_changes += 1

        if new_state == CircuitState.OPEN:
            self._stats.opened_at = datetime.now(timezone.utc)

        logger.info(f"Circuit '{self.name}' state: {old_state.value} -> {new_state.value}")

    async def reset(self) -> None:
        """Manually reset circuit to closed state."""
        async with self._lock:
            self._transition_to(CircuitState.CLOSED)
            self._stats.consecutive_failures = 0
            self._half_open_calls = 0

    async def force_open(self) -> None:
        """Manually open circuit (for testing/maintenance)."""
        async with self._lock:
            self._transition_to(CircuitState.OPEN)

    def get_status(self) -> dict:
        """Get circuit status for monitoring."""
        return {
            "name": self.name,
            "state": self._state.value,
            "consecutive_failures": self._stats.consecutive_failures,
            "total_failures": self._stats.total_failures,
            "total_successes": self._stats.total_successes,
            "rejected_calls": self._stats.rejected_calls,
            "failure_threshold": self._failure_threshold,
            "recovery_timeout_seconds": self._recovery_timeout,
            "last_failure": self._stats.last_failure_time.isoformat() if self._stats.last_failure_time else None,
            "last_success": self._stats.last_success_time.isoformat() if self._stats.last_success_time else None,
            "opened_at": self._stats.opened_at.isoformat() if self._stats.opened_at else None,
        }


# Global circuit breaker instance for the LLM provider
_llm_circuit: Optional[CircuitBreaker] = None


def get_llm_circuit() -> CircuitBreaker:
    """Get or create the LLM circuit breaker singleton."""
    global _llm_circuit
    if _llm_circuit is None:
        _llm_circuit = CircuitBreaker(name="llm")
    return _llm_circuit
