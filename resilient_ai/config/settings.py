"""
Runtime settings for the resilience layer.

Defaults suit a single small deployment; every value can be overridden with a
``RESILIENT_AI_<FIELD>`` environment variable (``.env`` files are honoured).
"""

import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

ENV_PREFIX = "RESILIENT_AI_"


class ResilienceSettings(BaseModel):
    """Validated settings for every resilience component."""

    # Cost ledger
    daily_cost_limit: float = Field(default=1.0, gt=0, description="Daily spend limit in USD")
    near_limit_ratio: float = Field(default=0.8, gt=0, le=1.0)
    cost_ledger_path: Optional[str] = Field(
        default=None, description="JSON file for the ledger; in-memory when unset"
    )

    # Client rate limiter
    rate_limit_requests: int = Field(default=30, ge=1)
    rate_limit_window_seconds: float = Field(default=60.0, gt=0)

    # Response cache
    cache_max_size: int = Field(default=100, ge=1)
    cache_ttl_seconds: float = Field(default=300.0, gt=0)

    # Circuit breaker
    breaker_failure_threshold: int = Field(default=5, ge=1)
    breaker_cooldown_seconds: float = Field(default=60.0, gt=0)
    breaker_cooldown_multiplier: float = Field(default=2.0, ge=1.0)
    breaker_max_cooldown_seconds: float = Field(default=600.0, gt=0)

    # Retry
    retry_max_attempts: int = Field(default=3, ge=1)
    retry_base_delay_seconds: float = Field(default=0.5, ge=0)
    retry_max_delay_seconds: float = Field(default=10.0, ge=0)

    # Timeouts and generation
    primary_timeout_seconds: float = Field(default=30.0, gt=0)
    failover_timeout_seconds: float = Field(default=15.0, gt=0)
    max_tokens: int = Field(default=4000, ge=1)
    failover_max_tokens: int = Field(default=2000, ge=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    # Monitoring
    monitoring_buffer_size: int = Field(default=100, ge=1)
    monitoring_flush_interval_seconds: float = Field(default=30.0, gt=0)
    slow_operation_threshold_ms: float = Field(default=10_000.0, gt=0)

    @model_validator(mode="after")
    def _check_relations(self) -> "ResilienceSettings":
        if self.breaker_max_cooldown_seconds < self.breaker_cooldown_seconds:
            raise ValueError("breaker_max_cooldown_seconds must be >= breaker_cooldown_seconds")
        if self.failover_timeout_seconds > self.primary_timeout_seconds:
            raise ValueError("failover_timeout_seconds must not exceed primary_timeout_seconds")
        return self

    @classmethod
    def from_env(cls, env: Optional[Dict[str, str]] = None, **overrides: Any) -> "ResilienceSettings":
        """
        Build settings from ``RESILIENT_AI_*`` variables.

        Args:
            env: Mapping to read instead of ``os.environ`` (skips ``.env`` loading)
            **overrides: Explicit values taking precedence over the environment
        """
        if env is None:
            load_dotenv()
            env = dict(os.environ)

        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            raw = env.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        values.update(overrides)
        return cls(**values)
