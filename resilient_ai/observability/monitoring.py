"""
Monitoring aggregator for AI operations.

Records every AI call as a ``PerformanceRecord``, keeps running metrics per
(operation, model), and periodically drains the record buffer to an
observability sink together with derived insights and critical alerts.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from .models import (
    PerformanceRecord, AggregatedMetrics, Insights,
    ErrorCount, OperationTiming, ModelCost,
)
from .scheduler import Scheduler
from .sinks.base import ObservabilitySink
from ..reliability.cost_ledger import CostTracker


logger = logging.getLogger(__name__)

MetricsKey = Tuple[str, str]

QUOTA_ERROR_CODE = "QUOTA_EXCEEDED"
ALERT_TAGS = {"category": "ai_monitoring", "alert_type": "critical"}


@dataclass
class MonitoringConfig:
    """Configuration for the monitoring aggregator."""
    buffer_size: int = 100
    flush_interval_seconds: float = 30.0
    slow_operation_ms: float = 10_000.0
    health_alert_threshold: float = 50.0
    top_n: int = 5


class MonitoringAggregator:
    """
    Buffers performance records and reports them to a sink.

    Features:
    - O(1) running metrics per (operation, model), kept across flushes
    - Bounded record buffer flushed on size or on the scheduler's interval
    - Insights (top errors, slowest operations, cost breakdown, health score)
    - Critical alerts on poor health, quota exhaustion or a near-limit budget
    """

    def __init__(
        self,
        sink: ObservabilitySink,
        cost_tracker: Optional[CostTracker] = None,
        scheduler: Optional[Scheduler] = None,
        config: Optional[MonitoringConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the aggregator and register its periodic and final flush.

        Args:
            sink: Destination for metrics, alerts and exceptions
            cost_tracker: Ledger reported on every flush (optional)
            scheduler: Scheduler for the periodic flush and shutdown hook
            config: Buffer size, flush interval and thresholds
            clock: Time source for ``last_updated`` stamps
        """
        self.sink = sink
        self.cost_tracker = cost_tracker
        self.config = config or MonitoringConfig()
        self._clock = clock
        self._metrics: Dict[MetricsKey, AggregatedMetrics] = {}
        self._buffer: List[PerformanceRecord] = []
        self._stopped = False
        self._flush_handle = None

        if scheduler is not None:
            self._flush_handle = scheduler.schedule(self.config.flush_interval_seconds, self.flush)
            scheduler.on_shutdown(self.flush)

    async def record_operation(self, record: PerformanceRecord) -> None:
        """
        Record one AI operation.

        Args:
            record: Outcome of the operation
        """
        key = (record.operation, record.model)
        metrics = self._metrics.get(key)
        if metrics is None:
            metrics = AggregatedMetrics(last_updated=self._clock())
            self._metrics[key] = metrics
        metrics.update(record, now=self._clock())

        self._buffer.append(record)

        if not record.success:
            logger.error(
                "AI operation failed",
                extra={
                    "operation": record.operation,
                    "model": record.model,
                    "error": record.error,
                    "error_code": record.error_code,
                    "duration_ms": record.duration,
                }
            )
        elif record.duration > self.config.slow_operation_ms:
            logger.warning(
                "Slow AI operation",
                extra={
                    "operation": record.operation,
                    "model": record.model,
                    "duration_ms": record.duration,
                }
            )

        if len(self._buffer) >= self.config.buffer_size:
            await self.flush()

    def get_metrics(
        self,
        operation: Optional[str] = None,
        model: Optional[str] = None,
    ) -> Union[Dict[MetricsKey, AggregatedMetrics], Optional[AggregatedMetrics]]:
        """All metrics by (operation, model), or the metrics of one pair."""
        if operation is not None and model is not None:
            return self._metrics.get((operation, model))
        return dict(self._metrics)

    def get_buffered_records(self) -> List[PerformanceRecord]:
        return list(self._buffer)

    def get_insights(self, records: Optional[Iterable[PerformanceRecord]] = None) -> Insights:
        """
        Derive insights from records and aggregated metrics.

        Args:
            records: Records to mine for top errors; defaults to the current buffer
        """
        records = self._buffer if records is None else records

        error_counts = Counter(
            r.error for r in records if not r.success and r.error
        )
        top_errors = [
            ErrorCount(error=error, count=count)
            for error, count in sorted(error_counts.items(), key=lambda item: -item[1])[:self.config.top_n]
        ]

        # operation -> (total duration, request count)
        operation_times: Dict[str, List[float]] = {}
        cost_by_model: Dict[str, float] = {}
        failed = 0
        total = 0
        for (operation, model), metrics in self._metrics.items():
            acc = operation_times.setdefault(operation, [0.0, 0])
            acc[0] += metrics.avg_response_time * metrics.total_requests
            acc[1] += metrics.total_requests
            cost_by_model[model] = cost_by_model.get(model, 0.0) + metrics.total_cost
            failed += metrics.failed_requests
            total += metrics.total_requests

        slowest_operations = sorted(
            (
                OperationTiming(operation=op, avg_time=duration / count)
                for op, (duration, count) in operation_times.items()
                if count
            ),
            key=lambda t: -t.avg_time,
        )[:self.config.top_n]

        cost_breakdown = sorted(
            (ModelCost(model=m, total_cost=c) for m, c in cost_by_model.items()),
            key=lambda c: -c.total_cost,
        )

        overall_error_rate = (failed / total) * 100 if total else 0.0
        health_score = max(0.0, 100.0 - overall_error_rate * 2)

        return Insights(
            top_errors=top_errors,
            slowest_operations=slowest_operations,
            cost_breakdown=cost_breakdown,
            health_score=health_score,
        )

    async def flush(self) -> None:
        """Drain the buffer to the sink. No-op when the buffer is empty."""
        if not self._buffer:
            return

        # Swap before any await so concurrent records land in the new buffer
        drained = self._buffer
        self._buffer = []

        try:
            self._emit_records(drained)
            self._emit_aggregates()

            insights = self.get_insights(drained)
            logger.info("AI performance insights", extra={"insights": insights.to_dict()})
            self.sink.gauge("ai.health.score", insights.health_score)

            if insights.health_score < self.config.health_alert_threshold:
                self._send_critical_alert(
                    "AI Health Score Critical",
                    {"health_score": insights.health_score, "insights": insights.to_dict()},
                )

            quota_records = [r for r in drained if r.error_code == QUOTA_ERROR_CODE]
            if quota_records:
                self._send_critical_alert(
                    "AI Quota Exceeded",
                    {
                        "count": len(quota_records),
                        "operations": sorted({r.operation for r in quota_records}),
                        "models": sorted({r.model for r in quota_records}),
                    },
                )

            if self.cost_tracker is not None:
                daily_cost = self.cost_tracker.get_today_cost()
                percentage = self.cost_tracker.get_cost_percentage()
                self.sink.gauge("ai.cost.daily", daily_cost)
                self.sink.gauge("ai.cost.percentage", percentage)

                if self.cost_tracker.is_near_limit():
                    self._send_critical_alert(
                        "AI Daily Cost Near Limit",
                        {
                            "daily_cost": daily_cost,
                            "daily_limit": self.cost_tracker.get_daily_limit(),
                            "percentage": percentage,
                        },
                    )

            await self.sink.flush()
        except Exception as e:
            logger.error(f"Failed to flush AI monitoring data: {e}")

    def _emit_records(self, records: List[PerformanceRecord]) -> None:
        for record in records:
            self.sink.distribution(
                "ai.operation.duration",
                record.duration,
                {
                    "operation": record.operation,
                    "model": record.model,
                    "success": str(record.success).lower(),
                    "cache_hit": str(record.cache_hit).lower(),
                },
            )
            tags = {"operation": record.operation, "model": record.model}
            if record.cost:
                self.sink.distribution("ai.operation.cost", record.cost, tags)
            total_tokens = record.total_tokens
            if total_tokens:
                self.sink.distribution("ai.tokens.total", total_tokens, tags)

    def _emit_aggregates(self) -> None:
        for (operation, model), metrics in self._metrics.items():
            tags = {"operation": operation, "model": model}
            self.sink.gauge("ai.metrics.error_rate", metrics.error_rate, tags)
            self.sink.gauge("ai.metrics.avg_response_time", metrics.avg_response_time, tags)
            self.sink.gauge("ai.metrics.total_cost", metrics.total_cost, tags)

    def _send_critical_alert(self, message: str, data: Dict) -> None:
        self.sink.capture_message(message, level="error", tags=dict(ALERT_TAGS), extra=data)
        logger.error(f"CRITICAL ALERT: {message}", extra={"alert": data})

    async def stop(self) -> None:
        """Cancel the periodic flush and perform a final flush."""
        if self._stopped:
            return
        self._stopped = True
        if self._flush_handle is not None and hasattr(self._flush_handle, "cancel"):
            self._flush_handle.cancel()
        await self.flush()
