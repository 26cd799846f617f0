"""
Circuit breaker pattern implementation for provider resilience.

This module implements the circuit breaker pattern to prevent
cascading failures and provide fast failure detection.
"""

from enum import Enum
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional, Any, TypeVar
import asyncio
import logging
import time

from .error_classifier import parse_ai_error
from .errors import AIError, ErrorKind

logger = logging.getLogger(__name__)

T = TypeVar('T')

SIGNIFICANT_KINDS = frozenset({
    ErrorKind.RATE_LIMIT,
    ErrorKind.QUOTA,
    ErrorKind.TIMEOUT,
    ErrorKind.NETWORK,
    ErrorKind.UNKNOWN,
})


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing recovery


@dataclass
class CircuitBreakerConfig:
    """Circuit breaker configuration."""
    failure_threshold: int = 5          # Consecutive failures before opening
    cooldown: float = 60.0              # Seconds before attempting recovery
    cooldown_multiplier: float = 2.0    # Growth after a failed trial
    max_cooldown: float = 600.0

    # Optional callbacks
    on_open: Optional[Callable] = None
    on_close: Optional[Callable] = None
    on_half_open: Optional[Callable] = None


@dataclass
class CircuitStats:
    """Circuit breaker statistics."""
    consecutive_failures: int = 0
    total_requests: int = 0
    total_failures: int = 0
    total_successes: int = 0
    rejected_requests: int = 0
    opened_at: Optional[float] = None
    last_failure_time: Optional[datetime] = None
    last_success_time: Optional[datetime] = None
    last_state_change: Optional[datetime] = None

    def record_success(self):
        """Record a successful call."""
        self.total_successes += 1
        self.total_requests += 1
        self.last_success_time = datetime.now()

    def record_failure(self):
        """Record a significant failed call."""
        self.total_failures += 1
        self.total_requests += 1
        self.consecutive_failures += 1
        self.last_failure_time = datetime.now()

    def get_failure_rate(self) -> float:
        """Calculate failure rate."""
        if self.total_requests == 0:
            return 0.0
        return self.total_failures / self.total_requests


class CircuitBreaker:
    """
    Circuit breaker for a provider dependency.

    Fails fast while OPEN. After the cool-down exactly one trial call is
    admitted; its outcome decides between CLOSED and a longer OPEN period.
    State is only read and written between suspension points, so one
    instance can be shared by concurrent tasks on the same event loop.
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self.state = CircuitState.CLOSED
        self.stats = CircuitStats()
        self._clock = clock
        self._current_cooldown = self.config.cooldown
        self._trial_in_flight = False
        # Incremented on every transition to OPEN
        self._generation = 0

    async def execute(self, operation: Callable[[], Awaitable[T]], label: str = "operation") -> T:
        """
        Execute ``operation`` through the circuit breaker.

        Raises:
            AIError: kind CIRCUIT_OPEN when the call is rejected
            Original exception: if the operation fails
        """
        is_trial = await self._admit(label)
        generation = self._generation

        try:
            result = await operation()
        except asyncio.CancelledError:
            if is_trial:
                self._trial_in_flight = False
            raise
        except Exception as error:
            await self._on_failure(error, is_trial, generation, label)
            raise

        await self._on_success(is_trial, generation, label)
        return result

    async def _admit(self, label: str) -> bool:
        """Admit or reject a call. Returns True when the call is the half-open trial."""
        if self.state == CircuitState.OPEN and self._cooldown_expired():
            await self._transition_to_half_open()

        if self.state == CircuitState.CLOSED:
            return False

        if self.state == CircuitState.HALF_OPEN and not self._trial_in_flight:
            self._trial_in_flight = True
            return True

        self.stats.rejected_requests += 1
        raise AIError(
            ErrorKind.CIRCUIT_OPEN,
            f"Circuit breaker {self.name} is {self.state.value.upper()} for {label}",
            retry_after=self.get_remaining_cooldown() or None,
        )

    async def _on_success(self, is_trial: bool, generation: int, label: str):
        self.stats.record_success()
        if is_trial:
            self._trial_in_flight = False
            logger.info(
                f"Circuit breaker {self.name} trial succeeded for {label}",
                extra={"circuit_breaker": self.name, "operation": label}
            )
            await self._transition_to_closed()
        elif self.state == CircuitState.CLOSED and generation == self._generation:
            self.stats.consecutive_failures = 0

    async def _on_failure(self, error: Exception, is_trial: bool, generation: int, label: str):
        kind = parse_ai_error(error).kind
        significant = kind in SIGNIFICANT_KINDS

        if is_trial:
            self._trial_in_flight = False
            if significant:
                self.stats.record_failure()
                self._current_cooldown = min(
                    self._current_cooldown * self.config.cooldown_multiplier,
                    self.config.max_cooldown
                )
                logger.warning(
                    f"Circuit breaker {self.name} trial failed for {label}",
                    extra={"circuit_breaker": self.name, "error_kind": kind.value}
                )
                await self._transition_to_open()
            return

        if not significant:
            return

        # Calls admitted before the breaker opened do not extend the open period
        if self.state != CircuitState.CLOSED or generation != self._generation:
            return

        self.stats.record_failure()
        logger.warning(
            f"Circuit breaker {self.name} recorded failure",
            extra={
                "circuit_breaker": self.name,
                "state": self.state.value,
                "consecutive_failures": self.stats.consecutive_failures,
                "error_kind": kind.value,
            }
        )
        if self.stats.consecutive_failures >= self.config.failure_threshold:
            await self._transition_to_open()

    def _cooldown_expired(self) -> bool:
        """Check if cool-down has expired since opening."""
        if self.stats.opened_at is None:
            return True
        return self._clock() - self.stats.opened_at >= self._current_cooldown

    def get_remaining_cooldown(self) -> float:
        if self.state != CircuitState.OPEN or self.stats.opened_at is None:
            return 0.0
        return max(0.0, self._current_cooldown - (self._clock() - self.stats.opened_at))

    async def _transition_to_open(self):
        """Transition to OPEN state."""
        previous_state = self.state
        self.state = CircuitState.OPEN
        self._generation += 1
        self.stats.opened_at = self._clock()
        self.stats.last_state_change = datetime.now()

        logger.error(
            f"Circuit breaker {self.name} opened",
            extra={
                "circuit_breaker": self.name,
                "previous_state": previous_state.value,
                "consecutive_failures": self.stats.consecutive_failures,
                "cooldown": self._current_cooldown,
            }
        )
        await self._call_callback(self.config.on_open, "on_open")

    async def _transition_to_closed(self):
        """Transition to CLOSED state."""
        previous_state = self.state
        self.state = CircuitState.CLOSED
        self.stats.opened_at = None
        self.stats.consecutive_failures = 0
        self.stats.last_state_change = datetime.now()
        self._current_cooldown = self.config.cooldown

        logger.info(
            f"Circuit breaker {self.name} closed",
            extra={
                "circuit_breaker": self.name,
                "previous_state": previous_state.value,
            }
        )
        await self._call_callback(self.config.on_close, "on_close")

    async def _transition_to_half_open(self):
        """Transition to HALF_OPEN state."""
        previous_state = self.state
        self.state = CircuitState.HALF_OPEN
        self._trial_in_flight = False
        self.stats.last_state_change = datetime.now()

        logger.info(
            f"Circuit breaker {self.name} half-open",
            extra={
                "circuit_breaker": self.name,
                "previous_state": previous_state.value,
            }
        )
        await self._call_callback(self.config.on_half_open, "on_half_open")

    async def _call_callback(self, callback: Optional[Callable], name: str):
        """Call callback, handling both sync and async."""
        if callback is None:
            return
        try:
            if asyncio.iscoroutinefunction(callback):
                await callback(self)
            else:
                callback(self)
        except Exception as e:
            logger.error(f"Error in {name} callback: {e}")

    def get_state(self) -> CircuitState:
        """Get current circuit state."""
        return self.state

    def get_stats(self) -> CircuitStats:
        """Get circuit statistics."""
        return self.stats

    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    def is_closed(self) -> bool:
        return self.state == CircuitState.CLOSED

    def is_half_open(self) -> bool:
        return self.state == CircuitState.HALF_OPEN

    def reset(self):
        """Reset circuit breaker to closed state."""
        self.state = CircuitState.CLOSED
        self.stats = CircuitStats()
        self._trial_in_flight = False
        self._current_cooldown = self.config.cooldown
        logger.info(f"Circuit breaker {self.name} reset")


class CircuitBreakerManager:
    """Manages multiple circuit breakers."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.circuit_breakers: Dict[str, CircuitBreaker] = {}
        self._clock = clock

    def get_or_create(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None
    ) -> CircuitBreaker:
        """Get existing or create new circuit breaker."""
        if name not in self.circuit_breakers:
            self.circuit_breakers[name] = CircuitBreaker(name, config, clock=self._clock)
        return self.circuit_breakers[name]

    def get(self, name: str) -> Optional[CircuitBreaker]:
        """Get circuit breaker by name."""
        return self.circuit_breakers.get(name)

    def get_all_stats(self) -> Dict[str, Dict[str, Any]]:
        """Get stats for all circuit breakers."""
        return {
            name: {
                "state": cb.get_state().value,
                "failure_rate": cb.stats.get_failure_rate(),
                "consecutive_failures": cb.stats.consecutive_failures,
                "rejected_requests": cb.stats.rejected_requests,
                "total_requests": cb.stats.total_requests
            }
            for name, cb in self.circuit_breakers.items()
        }

    def reset_all(self):
        """Reset all circuit breakers."""
        for cb in self.circuit_breakers.values():
            cb.reset()
