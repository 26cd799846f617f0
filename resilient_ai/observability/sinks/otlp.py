from __future__ import annotations

from typing import Optional, Dict, Any
import logging

from opentelemetry import metrics

logger = logging.getLogger(__name__)


class OTelObservabilitySink:
    """OpenTelemetry metrics sink.

    Distributions map to histograms and gauges to synchronous gauges (or
    up-down counters on older API releases). Messages and exceptions have no
    OTel metrics counterpart, so they are logged and counted.
    """

    def __init__(self, service_name: str = "resilient_ai", version: str = "1.0.0") -> None:
        """
        Initialize OTel metrics sink.

        Args:
            service_name: Meter name
            version: Meter version
        """
        self.service_name = service_name
        self._meter = metrics.get_meter(name=service_name, version=version)
        self._histograms: Dict[str, Any] = {}
        self._gauges: Dict[str, Any] = {}
        self._last_gauge_values: Dict[Any, float] = {}

        self._messages_total = self._meter.create_counter(
            name="ai.events.messages",
            unit="1",
            description="Captured messages by level",
        )
        self._exceptions_total = self._meter.create_counter(
            name="ai.events.exceptions",
            unit="1",
            description="Captured exceptions by type",
        )

        logger.info(f"Initialized OTel observability sink for {service_name}")

    def _histogram(self, name: str):
        instrument = self._histograms.get(name)
        if instrument is None:
            instrument = self._meter.create_histogram(name=name)
            self._histograms[name] = instrument
        return instrument

    def _gauge(self, name: str):
        instrument = self._gauges.get(name)
        if instrument is None:
            if hasattr(self._meter, "create_gauge"):
                instrument = self._meter.create_gauge(name=name)
            else:
                instrument = self._meter.create_up_down_counter(name=name)
            self._gauges[name] = instrument
        return instrument

    def distribution(self, name: str, value: float, tags: Optional[Dict[str, str]] = None) -> None:
        try:
            self._histogram(name).record(value, dict(tags or {}))
        except Exception as e:
            logger.debug(f"Failed to record OTel distribution {name}: {e}")

    def gauge(self, name: str, value: float, tags: Optional[Dict[str, str]] = None) -> None:
        attrs = dict(tags or {})
        try:
            instrument = self._gauge(name)
            if hasattr(instrument, "set"):
                instrument.set(value, attrs)
            else:
                # Up-down counter: add the delta from the previous value
                key = (name, tuple(sorted(attrs.items())))
                previous = self._last_gauge_values.get(key, 0.0)
                instrument.add(value - previous, attrs)
                self._last_gauge_values[key] = value
        except Exception as e:
            logger.debug(f"Failed to record OTel gauge {name}: {e}")

    def capture_message(
        self,
        message: str,
        level: str = "info",
        tags: Optional[Dict[str, str]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        log_level = logging.getLevelName(level.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO
        logger.log(log_level, message, extra={"tags": tags or {}, "context": extra or {}})
        try:
            self._messages_total.add(1, {"level": level, **(tags or {})})
        except Exception as e:
            logger.debug(f"Failed to count OTel message: {e}")

    def capture_exception(
        self,
        error: BaseException,
        tags: Optional[Dict[str, str]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        logger.error(
            f"Captured exception: {type(error).__name__}: {error}",
            extra={"tags": tags or {}, "context": extra or {}},
        )
        try:
            self._exceptions_total.add(1, {"error_type": type(error).__name__, **(tags or {})})
        except Exception as e:
            logger.debug(f"Failed to count OTel exception: {e}")

    async def flush(self) -> None:
        # No-op; rely on OTel exporters
        return
