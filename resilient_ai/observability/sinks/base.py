"""Base interface for observability sinks."""

from typing import Any, Dict, Optional, Protocol


class ObservabilitySink(Protocol):
    """Protocol for metric, alert and error reporting backends."""

    def distribution(self, name: str, value: float, tags: Optional[Dict[str, str]] = None) -> None:
        """Record one sample of a distribution metric."""
        ...

    def gauge(self, name: str, value: float, tags: Optional[Dict[str, str]] = None) -> None:
        """Set the current value of a gauge metric."""
        ...

    def capture_message(
        self,
        message: str,
        level: str = "info",
        tags: Optional[Dict[str, str]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Report a message-level event (alerts, notable state changes)."""
        ...

    def capture_exception(
        self,
        error: BaseException,
        tags: Optional[Dict[str, str]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Report an exception."""
        ...

    async def flush(self) -> None:
        """Flush any buffered data."""
        ...
