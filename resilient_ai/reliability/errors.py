"""
Typed error taxonomy for AI provider calls.

Every failure that leaves the resilience layer is an ``AIError`` carrying a
closed ``ErrorKind``. Retryability is derived from the kind, never set ad hoc.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Closed set of failure kinds."""
    RATE_LIMIT = "rate_limit"
    QUOTA = "quota"
    TIMEOUT = "timeout"
    NETWORK = "network"
    VALIDATION = "validation"
    BUDGET_EXCEEDED = "budget_exceeded"
    CIRCUIT_OPEN = "circuit_open"
    UNKNOWN = "unknown"


# Stable codes exposed to callers and monitoring tags
ERROR_CODES: Dict[ErrorKind, str] = {
    ErrorKind.RATE_LIMIT: "RATE_LIMIT_EXCEEDED",
    ErrorKind.QUOTA: "QUOTA_EXCEEDED",
    ErrorKind.TIMEOUT: "TIMEOUT",
    ErrorKind.NETWORK: "NETWORK_ERROR",
    ErrorKind.VALIDATION: "VALIDATION_ERROR",
    ErrorKind.BUDGET_EXCEEDED: "BUDGET_EXCEEDED",
    ErrorKind.CIRCUIT_OPEN: "CIRCUIT_BREAKER_OPEN",
    ErrorKind.UNKNOWN: "UNKNOWN",
}

RETRYABLE_KINDS = frozenset({
    ErrorKind.RATE_LIMIT,
    ErrorKind.TIMEOUT,
    ErrorKind.NETWORK,
})


class AIError(Exception):
    """
    Classified failure of an AI operation.

    Attributes:
        kind: The error kind
        message: Human readable message
        raw: The original exception (or value) this error was built from
        retry_after: Seconds to wait before retrying, when the provider said so
        status_code: HTTP status code if one was observed
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        raw: Any = None,
        retry_after: Optional[float] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.raw = raw
        self.retry_after = retry_after
        self.status_code = status_code

    @property
    def code(self) -> str:
        return ERROR_CODES[self.kind]

    @property
    def is_retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view for logs and alert payloads."""
        return {
            "code": self.code,
            "kind": self.kind.value,
            "message": self.message,
            "is_retryable": self.is_retryable,
            "retry_after": self.retry_after,
            "status_code": self.status_code,
        }

    def __repr__(self) -> str:
        return f"AIError(code={self.code!r}, message={self.message!r})"
