"""
Metrics models for AI call observability.

Performance records are immutable snapshots of one call. Aggregated metrics
are running totals per (operation, model) that survive buffer flushes.
Insights are derived on demand and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any
import time


@dataclass(frozen=True)
class PerformanceRecord:
    """Outcome of a single AI operation."""
    operation: str
    model: str
    duration: float  # milliseconds
    success: bool
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    cost: Optional[float] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    retry_count: Optional[int] = None
    cache_hit: bool = False
    timestamp: float = field(default_factory=time.time)

    @property
    def total_tokens(self) -> Optional[int]:
        if self.input_tokens is None or self.output_tokens is None:
            return None
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class AggregatedMetrics:
    """Running metrics for one (operation, model) pair."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    avg_response_time: float = 0.0
    avg_tokens_used: float = 0.0
    total_cost: float = 0.0
    error_rate: float = 0.0
    last_updated: float = field(default_factory=time.time)
    # Number of records that reported token usage; denominator of avg_tokens_used
    token_samples: int = 0

    def update(self, record: PerformanceRecord, now: Optional[float] = None) -> None:
        """Fold ``record`` into the running values in O(1)."""
        self.total_requests += 1
        if record.success:
            self.successful_requests += 1
        else:
            self.failed_requests += 1

        self.avg_response_time += (record.duration - self.avg_response_time) / self.total_requests

        total_tokens = record.total_tokens
        if total_tokens is not None:
            self.token_samples += 1
            self.avg_tokens_used += (total_tokens - self.avg_tokens_used) / self.token_samples

        if record.cost:
            self.total_cost += record.cost

        self.error_rate = (self.failed_requests / self.total_requests) * 100
        self.last_updated = now if now is not None else time.time()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ErrorCount:
    error: str
    count: int


@dataclass
class OperationTiming:
    operation: str
    avg_time: float


@dataclass
class ModelCost:
    model: str
    total_cost: float


@dataclass
class Insights:
    """Derived view over recent records and aggregated metrics."""
    top_errors: List[ErrorCount] = field(default_factory=list)
    slowest_operations: List[OperationTiming] = field(default_factory=list)
    cost_breakdown: List[ModelCost] = field(default_factory=list)
    health_score: float = 100.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
