"""
In-memory observability sink for testing and debugging.

Stores every metric sample, message and exception it receives and offers
simple query helpers, useful for tests and local development.
"""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional


@dataclass
class MetricSample:
    """One recorded metric value."""
    kind: str  # "distribution" or "gauge"
    name: str
    value: float
    tags: Dict[str, str] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


@dataclass
class CapturedMessage:
    message: str
    level: str
    tags: Dict[str, str] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CapturedException:
    error: BaseException
    tags: Dict[str, str] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)


class InMemoryObservabilitySink:
    """
    Observability sink that keeps everything in memory.

    Features:
    - Distribution and gauge samples with tags
    - Captured messages and exceptions
    - Query helpers by metric name and tag
    """

    def __init__(self) -> None:
        self.samples: List[MetricSample] = []
        self.messages: List[CapturedMessage] = []
        self.exceptions: List[CapturedException] = []
        self.flush_count = 0
        self._by_name: Dict[str, List[MetricSample]] = defaultdict(list)

    def _add(self, kind: str, name: str, value: float, tags: Optional[Dict[str, str]]) -> None:
        sample = MetricSample(kind=kind, name=name, value=value, tags=dict(tags or {}))
        self.samples.append(sample)
        self._by_name[name].append(sample)

    def distribution(self, name: str, value: float, tags: Optional[Dict[str, str]] = None) -> None:
        self._add("distribution", name, value, tags)

    def gauge(self, name: str, value: float, tags: Optional[Dict[str, str]] = None) -> None:
        self._add("gauge", name, value, tags)

    def capture_message(
        self,
        message: str,
        level: str = "info",
        tags: Optional[Dict[str, str]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.messages.append(
            CapturedMessage(message=message, level=level, tags=dict(tags or {}), extra=dict(extra or {}))
        )

    def capture_exception(
        self,
        error: BaseException,
        tags: Optional[Dict[str, str]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.exceptions.append(
            CapturedException(error=error, tags=dict(tags or {}), extra=dict(extra or {}))
        )

    async def flush(self) -> None:
        """Nothing is buffered; only counts calls."""
        self.flush_count += 1

    # Query helpers

    def get_samples(self, name: str, tags: Optional[Dict[str, str]] = None) -> List[MetricSample]:
        """Samples recorded under ``name``, optionally filtered by a tag subset."""
        samples = self._by_name.get(name, [])
        if not tags:
            return list(samples)
        return [
            s for s in samples
            if all(s.tags.get(k) == v for k, v in tags.items())
        ]

    def get_values(self, name: str, tags: Optional[Dict[str, str]] = None) -> List[float]:
        return [s.value for s in self.get_samples(name, tags)]

    def last_value(self, name: str, tags: Optional[Dict[str, str]] = None) -> Optional[float]:
        values = self.get_values(name, tags)
        return values[-1] if values else None

    @property
    def io_count(self) -> int:
        """Total number of sink writes, excluding flushes."""
        return len(self.samples) + len(self.messages) + len(self.exceptions)

    def clear(self) -> None:
        self.samples.clear()
        self.messages.clear()
        self.exceptions.clear()
        self._by_name.clear()
        self.flush_count = 0
