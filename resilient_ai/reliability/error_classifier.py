"""
Error classification for provider failures.

Maps whatever a provider client raised (SDK exceptions, httpx transport
errors, asyncio timeouts, plain exceptions with a status code) onto the
closed ``ErrorKind`` taxonomy. Classification never raises.
"""

import asyncio
from typing import Any, Optional, Set, Tuple

import httpx
import openai
from pydantic import ValidationError

from .errors import AIError, ErrorKind


class ErrorClassifier:
    """Maps raw provider failures to ``AIError``."""

    TIMEOUT_TYPES: Tuple[type, ...] = (
        asyncio.TimeoutError,
        TimeoutError,
        httpx.TimeoutException,
        openai.APITimeoutError,
    )
    # APITimeoutError subclasses APIConnectionError, so timeouts are checked first
    NETWORK_TYPES: Tuple[type, ...] = (
        httpx.TransportError,
        openai.APIConnectionError,
        ConnectionError,
    )

    QUOTA_STATUS_CODES: Set[int] = {402}
    GATEWAY_STATUS_CODES: Set[int] = {502, 503, 504}

    # Message patterns, checked in priority order when no status code is present
    QUOTA_PATTERNS = ('insufficient_quota', 'quota exceeded', 'exceeded your current quota',
                      'quota', 'billing', 'payment required', 'credits')
    RATE_LIMIT_PATTERNS = ('rate limit', 'rate_limit', 'too many requests',
                           'too_many_requests', 'throttled')
    TIMEOUT_PATTERNS = ('timeout', 'timed out', 'etimedout')
    NETWORK_PATTERNS = ('connection error', 'connection refused', 'connection reset',
                        'network error', 'econnreset', 'econnrefused', 'enotfound',
                        'dns resolution', 'service unavailable')

    @classmethod
    def classify(cls, raw: Any) -> AIError:
        """Classify ``raw`` into an ``AIError``; never raises."""
        try:
            return cls._classify(raw)
        except Exception as e:  # noqa: BLE001
            return AIError(ErrorKind.UNKNOWN, f"Unclassifiable error: {type(e).__name__}", raw=raw)

    @classmethod
    def _classify(cls, raw: Any) -> AIError:
        if isinstance(raw, AIError):
            return raw

        from ..providers.base import ProviderError
        if isinstance(raw, ProviderError) and raw.status_code is None:
            return AIError(ErrorKind.VALIDATION, str(raw), raw=raw)

        if isinstance(raw, ValidationError):
            details = "; ".join(e.get("msg", "") for e in raw.errors())
            return AIError(ErrorKind.VALIDATION, details or "Invalid request", raw=raw)

        message = cls._get_message(raw)
        lowered = message.lower()
        status_code = cls._get_status_code(raw)
        retry_after = cls._get_retry_after(raw)

        if isinstance(raw, cls.TIMEOUT_TYPES):
            return AIError(ErrorKind.TIMEOUT, message or "Request timed out", raw=raw,
                           status_code=status_code)
        if isinstance(raw, cls.NETWORK_TYPES):
            return AIError(ErrorKind.NETWORK, message or "Network connection error", raw=raw,
                           status_code=status_code)

        if status_code is not None:
            kind = cls._kind_for_status(status_code, lowered)
            return AIError(kind, message, raw=raw, status_code=status_code,
                           retry_after=retry_after if kind == ErrorKind.RATE_LIMIT else None)

        if cls._matches(lowered, cls.RATE_LIMIT_PATTERNS):
            return AIError(ErrorKind.RATE_LIMIT, message, raw=raw, retry_after=retry_after)
        if cls._matches(lowered, cls.QUOTA_PATTERNS):
            return AIError(ErrorKind.QUOTA, message, raw=raw)
        if cls._matches(lowered, cls.TIMEOUT_PATTERNS):
            return AIError(ErrorKind.TIMEOUT, message, raw=raw)
        if cls._matches(lowered, cls.NETWORK_PATTERNS):
            return AIError(ErrorKind.NETWORK, message, raw=raw)

        return AIError(ErrorKind.UNKNOWN, message or "An unknown error occurred", raw=raw)

    @classmethod
    def _kind_for_status(cls, status_code: int, lowered_message: str) -> ErrorKind:
        """Categorize error based on HTTP status code."""
        if status_code == 429:
            return ErrorKind.RATE_LIMIT
        if status_code in cls.QUOTA_STATUS_CODES:
            return ErrorKind.QUOTA
        if status_code == 403 and cls._matches(lowered_message, cls.QUOTA_PATTERNS):
            return ErrorKind.QUOTA
        if status_code == 408:
            return ErrorKind.TIMEOUT
        if status_code in cls.GATEWAY_STATUS_CODES:
            return ErrorKind.NETWORK
        if 400 <= status_code < 500:
            return ErrorKind.VALIDATION
        return ErrorKind.UNKNOWN

    @staticmethod
    def _matches(text: str, patterns: Tuple[str, ...]) -> bool:
        return any(pattern in text for pattern in patterns)

    @staticmethod
    def _get_message(raw: Any) -> str:
        try:
            if isinstance(raw, BaseException):
                text = str(raw)
                if not text and getattr(raw, 'message', None):
                    text = str(raw.message)
                return text or type(raw).__name__
            return str(raw)
        except Exception:
            return type(raw).__name__

    @staticmethod
    def _get_status_code(raw: Any) -> Optional[int]:
        status_code = getattr(raw, 'status_code', None)
        if status_code is None:
            response = getattr(raw, 'response', None)
            status_code = getattr(response, 'status_code', None)
        if status_code is None:
            return None
        try:
            return int(status_code)
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _get_retry_after(raw: Any) -> Optional[float]:
        """Extract retry delay from error if available."""
        retry_after = getattr(raw, 'retry_after', None)
        if retry_after is not None:
            try:
                return float(retry_after)
            except (TypeError, ValueError):
                pass

        response = getattr(raw, 'response', None)
        headers = getattr(response, 'headers', None)
        if headers:
            try:
                value = headers.get('Retry-After') or headers.get('retry-after')
            except Exception:
                value = None
            if value:
                try:
                    return float(value)
                except (TypeError, ValueError):
                    pass
        return None


def parse_ai_error(raw: Any) -> AIError:
    """Classify a raw provider failure into an ``AIError``."""
    return ErrorClassifier.classify(raw)
