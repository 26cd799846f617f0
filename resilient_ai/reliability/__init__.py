"""Reliability layer for error handling, retries, and admission control.

This layer handles:
- Typed error definitions and classification
- Retry logic with exponential backoff
- Timeouts for provider calls
- Circuit breaker pattern
- Client-side rate limiting
- Daily cost ledger and budget enforcement
"""

from .errors import AIError, ErrorKind, ERROR_CODES, RETRYABLE_KINDS
from .error_classifier import ErrorClassifier, parse_ai_error
from .timeout import with_timeout
from .retry import RetryManager, RetryPolicy, RetryState, with_retry
from .circuit_breaker import (
    CircuitBreaker, CircuitBreakerConfig, CircuitState,
    CircuitStats, CircuitBreakerManager
)
from .rate_limiter import ClientRateLimiter
from .cost_ledger import CostTracker

__all__ = [
    "AIError",
    "ErrorKind",
    "ERROR_CODES",
    "RETRYABLE_KINDS",
    "ErrorClassifier",
    "parse_ai_error",
    "with_timeout",
    "RetryManager",
    "RetryPolicy",
    "RetryState",
    "with_retry",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    "CircuitStats",
    "CircuitBreakerManager",
    "ClientRateLimiter",
    "CostTracker",
]
