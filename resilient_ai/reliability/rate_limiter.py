"""Client-side rolling-window rate limiter."""

import logging
import time
from collections import deque
from typing import Callable, Deque, Dict, Any

from .errors import AIError, ErrorKind

logger = logging.getLogger(__name__)


class ClientRateLimiter:
    """
    Rejects requests once more than ``max_requests`` fall inside the last
    ``window_seconds``. Runs before any network work; rejected requests are
    not counted.
    """

    def __init__(
        self,
        max_requests: int = 30,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._timestamps: Deque[float] = deque()
        self.rejected = 0

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def enforce(self) -> None:
        """
        Admit one request or raise.

        Raises:
            AIError: kind RATE_LIMIT with ``retry_after`` until a slot frees up
        """
        now = self._clock()
        self._prune(now)

        if len(self._timestamps) >= self.max_requests:
            self.rejected += 1
            retry_after = max(0.0, self._timestamps[0] + self.window_seconds - now)
            logger.warning(
                "Client AI rate limit exceeded",
                extra={
                    "max_requests": self.max_requests,
                    "window_seconds": self.window_seconds,
                    "retry_after": retry_after,
                }
            )
            raise AIError(
                ErrorKind.RATE_LIMIT,
                f"Client rate limit exceeded: {self.max_requests} requests per "
                f"{self.window_seconds:g}s. Retry in {retry_after:.1f}s.",
                retry_after=retry_after,
            )

        self._timestamps.append(now)

    def remaining(self) -> int:
        """Requests still admissible in the current window."""
        self._prune(self._clock())
        return max(0, self.max_requests - len(self._timestamps))

    def reset(self) -> None:
        self._timestamps.clear()
        self.rejected = 0

    def get_stats(self) -> Dict[str, Any]:
        return {
            "max_requests": self.max_requests,
            "window_seconds": self.window_seconds,
            "in_window": len(self._timestamps),
            "rejected": self.rejected,
        }
