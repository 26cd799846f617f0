"""Composition root: wires one instance of every component into an AIService."""

from typing import Optional

from .cache.response_cache import ResponseCache
from .config.settings import ResilienceSettings
from .observability.monitoring import MonitoringAggregator, MonitoringConfig
from .observability.scheduler import AsyncioScheduler, Scheduler
from .observability.sinks.base import ObservabilitySink
from .observability.sinks.in_memory import InMemoryObservabilitySink
from .observability.usage import UsageRecorder
from .orchestration.service import AIService
from .providers.base import ProviderAdapter
from .providers.openai_compatible import create_provider
from .reliability.circuit_breaker import CircuitBreakerManager
from .reliability.cost_ledger import CostTracker
from .reliability.rate_limiter import ClientRateLimiter
from .reliability.retry import RetryManager, RetryPolicy
from .storage.kv_store import KeyValueStore, InMemoryKeyValueStore, JsonFileKeyValueStore


def build_ai_service(
    settings: Optional[ResilienceSettings] = None,
    *,
    primary_provider: Optional[ProviderAdapter] = None,
    failover_provider: Optional[ProviderAdapter] = None,
    sink: Optional[ObservabilitySink] = None,
    store: Optional[KeyValueStore] = None,
    scheduler: Optional[Scheduler] = None,
    usage_recorder: Optional[UsageRecorder] = None,
    cost_tracker: Optional[CostTracker] = None,
    rate_limiter: Optional[ClientRateLimiter] = None,
    cache: Optional[ResponseCache] = None,
    breakers: Optional[CircuitBreakerManager] = None,
    retry_manager: Optional[RetryManager] = None,
) -> AIService:
    """
    Build an AIService from settings.

    Every collaborator can be replaced, which is how tests inject fake
    providers, clocks and a manual scheduler.

    Args:
        settings: Settings; read from the environment when omitted
        primary_provider: Defaults to the Groq adapter
        failover_provider: Defaults to the OpenRouter adapter
        sink: Defaults to an in-memory sink
        store: Ledger storage; a JSON file when ``cost_ledger_path`` is set
    """
    settings = settings if settings is not None else ResilienceSettings.from_env()

    if store is None:
        if settings.cost_ledger_path:
            store = JsonFileKeyValueStore(settings.cost_ledger_path)
        else:
            store = InMemoryKeyValueStore()

    if cost_tracker is None:
        cost_tracker = CostTracker(
            store=store,
            daily_limit=settings.daily_cost_limit,
            near_limit_ratio=settings.near_limit_ratio,
        )
    if sink is None:
        sink = InMemoryObservabilitySink()
    if scheduler is None:
        scheduler = AsyncioScheduler()

    monitor = MonitoringAggregator(
        sink=sink,
        cost_tracker=cost_tracker,
        scheduler=scheduler,
        config=MonitoringConfig(
            buffer_size=settings.monitoring_buffer_size,
            flush_interval_seconds=settings.monitoring_flush_interval_seconds,
            slow_operation_ms=settings.slow_operation_threshold_ms,
        ),
    )

    if primary_provider is None:
        primary_provider = create_provider("groq")
    if failover_provider is None:
        failover_provider = create_provider("openrouter")
    if rate_limiter is None:
        rate_limiter = ClientRateLimiter(
            max_requests=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    if cache is None:
        cache = ResponseCache(
            max_size=settings.cache_max_size,
            ttl_seconds=settings.cache_ttl_seconds,
        )
    if breakers is None:
        breakers = CircuitBreakerManager()
    if retry_manager is None:
        retry_manager = RetryManager(RetryPolicy(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay_seconds,
            max_delay=settings.retry_max_delay_seconds,
        ))

    return AIService(
        primary_provider=primary_provider,
        failover_provider=failover_provider,
        rate_limiter=rate_limiter,
        cache=cache,
        cost_tracker=cost_tracker,
        breakers=breakers,
        retry_manager=retry_manager,
        monitor=monitor,
        sink=sink,
        usage_recorder=usage_recorder,
        settings=settings,
        scheduler=scheduler,
    )
