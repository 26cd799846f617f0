"""
Structured logging utility for the resilience layer.

Renders a consistent ``[component=... key=value] message`` prefix so log lines
from the service, providers and failover path can be filtered together.
"""

import logging
import time
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Optional


class StructuredLogger:
    """Structured logger for one component (service, provider name, ...)."""

    def __init__(self, component: str):
        """
        Initialize logger for a specific component.

        Args:
            component: Component name (e.g., "service", "groq", "openrouter")
        """
        self.component = component
        self.logger = logging.getLogger(f"resilient_ai.{component}")

    def _format_message(self, message: str, **kwargs) -> str:
        """Prefix ``message`` with the component and every non-None field."""
        fields = [f"component={self.component}"]
        for key, value in kwargs.items():
            if value is not None:
                fields.append(f"{key}={value}")
        return f"[{' '.join(fields)}] {message}"

    def debug(self, message: str, model: Optional[str] = None,
              request_id: Optional[str] = None, **kwargs):
        """Log at DEBUG with structured fields."""
        self.logger.debug(
            self._format_message(message, model=model, request_id=request_id, **kwargs)
        )

    def info(self, message: str, model: Optional[str] = None,
             request_id: Optional[str] = None, **kwargs):
        """Log at INFO with structured fields."""
        self.logger.info(
            self._format_message(message, model=model, request_id=request_id, **kwargs)
        )

    def warning(self, message: str, model: Optional[str] = None,
                request_id: Optional[str] = None, **kwargs):
        """Log at WARNING with structured fields."""
        self.logger.warning(
            self._format_message(message, model=model, request_id=request_id, **kwargs)
        )

    def error(self, message: str, model: Optional[str] = None,
              request_id: Optional[str] = None, error: Optional[BaseException] = None, **kwargs):
        """
        Log at ERROR with structured fields.

        Args:
            message: Log message
            model: Model id, if the line concerns one
            request_id: Request correlation id
            error: Exception to describe; adds error_type, error_msg and,
                for ``AIError``, the stable error_code
        """
        if error is not None:
            kwargs['error_type'] = type(error).__name__
            kwargs['error_code'] = getattr(error, 'code', None)
            kwargs['error_msg'] = str(error)

        self.logger.error(
            self._format_message(message, model=model, request_id=request_id, **kwargs)
        )

    @contextmanager
    def track_request(self, method: str, model: str, request_id: Optional[str] = None, **fields):
        """
        Time one provider request and log its start, completion or failure.

        Args:
            method: Provider method ("generate" or "stream")
            model: Model id sent to the provider
            request_id: Correlation id; a short random id is generated if omitted
            **fields: Extra fields repeated on every line (e.g. max_tokens)

        Yields:
            Dict with request_id, model, method and start_time

        Failures are logged with their duration and re-raised unchanged.
        """
        if request_id is None:
            request_id = str(uuid.uuid4())[:8]

        start_time = time.perf_counter()
        context = dict(model=model, request_id=request_id, method=method, **fields)
        self.debug(f"Starting {method} request", **context)

        metadata: Dict[str, Any] = {
            'request_id': request_id,
            'model': model,
            'method': method,
            'start_time': start_time,
        }

        try:
            yield metadata
        except Exception as e:
            self.error(
                f"Failed {method} request",
                duration_ms=self._elapsed_ms(start_time),
                error=e,
                **context,
            )
            raise

        self.info(
            f"Completed {method} request",
            duration_ms=self._elapsed_ms(start_time),
            **context,
        )

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.perf_counter() - start_time) * 1000)

    def log_usage(self, usage: Dict[str, Any], model: str, request_id: str, cost: Optional[float] = None):
        """
        Log token usage of one call.

        Args:
            usage: Normalized usage dict (prompt_tokens, completion_tokens, total_tokens)
            model: Model id
            request_id: Correlation id from ``track_request``
            cost: USD cost, rendered with six decimals when given
        """
        self.info(
            "Token usage",
            model=model,
            request_id=request_id,
            prompt_tokens=usage.get('prompt_tokens', 0),
            completion_tokens=usage.get('completion_tokens', 0),
            total_tokens=usage.get('total_tokens', 0),
            cost=f"{cost:.6f}" if cost is not None else None,
        )
