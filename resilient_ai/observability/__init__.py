"""
Observability for AI operations.

Performance records, running metrics, insights and alerts, reported through
pluggable sinks on a schedule.
"""

from .models import (
    PerformanceRecord,
    AggregatedMetrics,
    Insights,
    ErrorCount,
    OperationTiming,
    ModelCost,
)
from .monitoring import MonitoringAggregator, MonitoringConfig
from .scheduler import Scheduler, AsyncioScheduler
from .logging import StructuredLogger
from .usage import UsageRecorder, NullUsageRecorder
from .sinks import ObservabilitySink, InMemoryObservabilitySink, OTelObservabilitySink

__all__ = [
    "PerformanceRecord",
    "AggregatedMetrics",
    "Insights",
    "ErrorCount",
    "OperationTiming",
    "ModelCost",
    "MonitoringAggregator",
    "MonitoringConfig",
    "Scheduler",
    "AsyncioScheduler",
    "StructuredLogger",
    "UsageRecorder",
    "NullUsageRecorder",
    "ObservabilitySink",
    "InMemoryObservabilitySink",
    "OTelObservabilitySink",
]
