"""
Retry policy with exponential backoff.

This module handles:
- Classifier-gated retry decisions
- Exponential backoff with additive jitter
- Respect for Retry-After hints
- Maximum delay caps
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, TypeVar

from .error_classifier import parse_ai_error
from .errors import ErrorKind

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class RetryPolicy:
    """Retry configuration. Delays are in seconds."""
    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 10.0
    jitter_ratio: float = 0.3
    respect_retry_after: bool = True

    def backoff_delay(self, attempt: int, rng: Callable[[], float] = random.random) -> float:
        """Delay before the retry that follows failed ``attempt`` (1-based)."""
        delay = self.base_delay * (2 ** (attempt - 1))
        jitter = rng() * self.jitter_ratio * delay
        return min(delay + jitter, self.max_delay)


@dataclass
class RetryState:
    """Tracks retry state for one logical call."""
    attempts: int = 0
    total_delay: float = 0.0
    error_kinds: List[ErrorKind] = field(default_factory=list)
    start_time: float = field(default_factory=time.time)

    def add_attempt(self, kind: ErrorKind, delay: float):
        """Record a failed attempt that will be retried."""
        self.error_kinds.append(kind)
        self.total_delay += delay

    def get_duration(self) -> float:
        return time.time() - self.start_time


class RetryManager:
    """
    Runs an async operation under a ``RetryPolicy``.

    Sleep and the random source are injectable so tests can run without
    real delays.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ):
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._rng = rng

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        label: str,
        policy: Optional[RetryPolicy] = None,
        state: Optional[RetryState] = None,
    ) -> T:
        """
        Execute ``operation`` with retries.

        Pass ``state`` to observe the attempt count after the call returns or raises.

        Raises:
            The original exception when it is not retryable or attempts are exhausted
        """
        policy = policy or self.policy
        state = state if state is not None else RetryState()

        while True:
            state.attempts += 1
            try:
                result = await operation()
            except asyncio.CancelledError:
                raise
            except Exception as error:
                classified = parse_ai_error(error)

                if not classified.is_retryable or state.attempts >= policy.max_attempts:
                    if state.attempts > 1:
                        logger.error(
                            f"{label}: giving up after {state.attempts} attempt(s)",
                            extra={
                                "operation": label,
                                "attempts": state.attempts,
                                "error_code": classified.code,
                                "retryable": classified.is_retryable,
                            }
                        )
                    raise

                delay = self._calculate_delay(state.attempts, classified.retry_after, policy)
                state.add_attempt(classified.kind, delay)
                logger.warning(
                    f"{label}: attempt {state.attempts}/{policy.max_attempts} failed, retrying in {delay:.2f}s",
                    extra={
                        "operation": label,
                        "attempt": state.attempts,
                        "error_code": classified.code,
                        "error_message": classified.message[:200],
                        "delay": delay,
                        "total_delay": state.total_delay,
                    }
                )
                await self._sleep(delay)
                continue

            if state.attempts > 1:
                logger.info(
                    f"{label}: succeeded after {state.attempts} attempts",
                    extra={
                        "operation": label,
                        "attempts": state.attempts,
                        "total_delay": state.total_delay,
                    }
                )
            return result

    def _calculate_delay(self, attempt: int, retry_after: Optional[float], policy: RetryPolicy) -> float:
        """Calculate retry delay, respecting Retry-After if present."""
        if retry_after is not None and policy.respect_retry_after:
            return min(max(retry_after, 0.0), policy.max_delay)
        return policy.backoff_delay(attempt, self._rng)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    label: str,
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` with the default backoff policy."""
    policy = RetryPolicy(max_attempts=max_attempts, base_delay=base_delay, max_delay=max_delay)
    return await RetryManager(policy, sleep=sleep).execute(operation, label)
