"""
Circuit Breaker for outbound payment-gateway calls.

The breaker prevents cascading failures when Mercado Pago is slow or down:
1. CLOSED: Normal operation, requests pass through
2. OPEN: After failures exceed threshold, requests fail fast
3. HALF-OPEN: After timeout, allow a few probe requests to check recovery

Usage:
    breaker = create_gateway_breaker()

    async with breaker.call():
        response = await client.post(...)
"""

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, asdict
from enum import Enum
from typing import AsyncGenerator, Any

from shared.config.logging import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Failing fast, rejecting requests
    HALF_OPEN = "half_open"  # Testing if service recovered


@dataclass(frozen=True)
class CircuitBreakerConfig:
    """Configuration for a circuit breaker instance."""
    name: str
    failure_threshold: int = 5       # Consecutive failures before opening
    success_threshold: int = 2       # Successes in half-open before closing
    timeout_seconds: float = 30.0    # Time in open state before probing
    half_open_max_calls: int = 2     # Max concurrent probes in half-open


@dataclass
class CircuitBreakerStats:
    """Counters exposed on the detailed health endpoint."""
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    state_changes: int = 0


class CircuitBreakerError(Exception):
    """Raised when circuit is open and request is rejected."""
    def __init__(self, breaker_name: str, retry_after: float):
        self.breaker_name = breaker_name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker '{breaker_name}' is open. Retry after {retry_after:.1f}s")


class CircuitBreaker:
    """
    Circuit breaker for a single external dependency.

    State is guarded by an asyncio lock; the breaker is shared by every
    request served from the same event loop.
    """

    def __init__(self, config: CircuitBreakerConfig):
        self.config = config
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._opened_at: float | None = None
        self._half_open_calls = 0
        self._lock = asyncio.Lock()
        self._stats = CircuitBreakerStats()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def stats(self) -> CircuitBreakerStats:
        return self._stats

    def _transition_to(self, new_state: CircuitState) -> None:
        """Change state and reset the counters of the state being entered. Lock must be held."""
        old_state = self._state
        self._state = new_state
        self._stats.state_changes += 1

        logger.info(
            "Circuit breaker state change",
            breaker=self.config.name,
            old_state=old_state.value,
            new_state=new_state.value,
            failure_count=self._failure_count,
        )

        if new_state == CircuitState.CLOSED:
            self._failure_count = 0
            self._success_count = 0
            self._opened_at = None
        elif new_state == CircuitState.OPEN:
            self._opened_at = time.monotonic()
            self._success_count = 0
        elif new_state == CircuitState.HALF_OPEN:
            self._success_count = 0
            self._half_open_calls = 0

    async def _acquire(self) -> float | None:
        """
        Decide whether a call may proceed.

        Returns:
            None when the call is allowed, otherwise seconds until retry.
        """
        async with self._lock:
            if self._state == CircuitState.OPEN:
                elapsed = time.monotonic() - (self._opened_at or 0.0)
                if elapsed < self.config.timeout_seconds:
                    return self.config.timeout_seconds - elapsed
                self._transition_to(CircuitState.HALF_OPEN)

            if self._state == CircuitState.HALF_OPEN:
                if self._half_open_calls >= self.config.half_open_max_calls:
                    return 1.0
                self._half_open_calls += 1

            return None

    async def record_success(self) -> None:
        """Record a successful call."""
        async with self._lock:
            self._stats.total_calls += 1
            self._stats.successful_calls += 1

            if self._state == CircuitState.HALF_OPEN:
                self._half_open_calls = max(0, self._half_open_calls - 1)
                self._success_count += 1
                if self._success_count >= self.config.success_threshold:
                    self._transition_to(CircuitState.CLOSED)
            else:
                self._failure_count = 0

    async def record_failure(self, error: Exception | None = None) -> None:
        """Record a failed call."""
        async with self._lock:
            self._stats.total_calls += 1
            self._stats.failed_calls += 1
            self._failure_count += 1

            logger.warning(
                "Circuit breaker recorded failure",
                breaker=self.config.name,
                error=str(error) if error else None,
                failure_count=self._failure_count,
                threshold=self.config.failure_threshold,
            )

            if self._state == CircuitState.HALF_OPEN:
                # Any failure while probing reopens the circuit
                self._half_open_calls = max(0, self._half_open_calls - 1)
                self._transition_to(CircuitState.OPEN)
            elif (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self.config.failure_threshold
            ):
                self._transition_to(CircuitState.OPEN)

    @asynccontextmanager
    async def call(self) -> AsyncGenerator[None, None]:
        """
        Context manager for making a protected call.

        Raises:
            CircuitBreakerError: If circuit is open
        """
        retry_after = await self._acquire()
        if retry_after is not None:
            self._stats.rejected_calls += 1
            raise CircuitBreakerError(self.config.name, retry_after)

        try:
            yield
        except Exception as e:
            await self.record_failure(e)
            raise
        await self.record_success()

    async def reset(self) -> None:
        """Manually reset the circuit breaker to closed state."""
        async with self._lock:
            self._transition_to(CircuitState.CLOSED)
            self._half_open_calls = 0

    def snapshot(self) -> dict[str, Any]:
        """State and counters as a JSON-friendly dict."""
        return {"state": self._state.value, **asdict(self._stats)}


# =============================================================================
# Registry (read by the detailed health endpoint)
# =============================================================================

_breakers: dict[str, CircuitBreaker] = {}


def create_gateway_breaker(name: str = "mercadopago") -> CircuitBreaker:
    """
    Build the breaker used by the Mercado Pago client and register it.
    Opens after 5 failures, closes after 2 successes in half-open.
    """
    breaker = CircuitBreaker(
        CircuitBreakerConfig(
            name=name,
            failure_threshold=5,
            success_threshold=2,
            timeout_seconds=30.0,
            half_open_max_calls=2,
        )
    )
    _breakers[name] = breaker
    return breaker


def get_all_breaker_stats() -> dict[str, dict[str, Any]]:
    """Statistics for every registered circuit breaker."""
    return {name: breaker.snapshot() for name, breaker in _breakers.items()}
