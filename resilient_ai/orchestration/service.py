"""
AI service: the resilient entry point for text generation.

Every call goes through admission control (client rate limit, daily budget),
the response cache for plain generation, and then
``breaker(retry(timeout(provider call)))`` on the requested route. When that
path fails, exactly one failover call is made to the secondary provider. If
the failover fails too, the caller sees the original error.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Set

from pydantic import ValidationError

from ..cache.response_cache import ResponseCache
from ..config.settings import ResilienceSettings
from ..core.pricing import calculate_cost, estimate_cost, estimate_tokens
from ..models.generation import (
    GenerationRequest, GenerationResponse, ModelConfig, Route, StreamHandle,
)
from ..observability.logging import StructuredLogger
from ..observability.models import PerformanceRecord
from ..observability.monitoring import MonitoringAggregator
from ..observability.sinks.base import ObservabilitySink
from ..observability.usage import UsageRecorder, NullUsageRecorder
from ..providers.base import ProviderAdapter
from ..providers.selector import get_config, get_failover_config, select_route
from ..reliability.circuit_breaker import CircuitBreakerConfig, CircuitBreakerManager
from ..reliability.cost_ledger import CostTracker
from ..reliability.error_classifier import parse_ai_error
from ..reliability.errors import AIError
from ..reliability.rate_limiter import ClientRateLimiter
from ..reliability.retry import RetryManager, RetryState
from ..reliability.timeout import with_timeout

logger = logging.getLogger(__name__)
slog = StructuredLogger("service")

GENERATE_OPERATION = "generate"
STREAM_OPERATION = "stream"
FAILOVER_SUFFIX = "_failover"


@dataclass
class CallOutcome:
    """Result of one provider leg, before it is turned into text or a handle."""
    value: Any
    model: ModelConfig
    cost: float
    input_tokens: int
    output_tokens: int
    retry_count: int = 0


class AIService:
    """
    Resilient text generation over a primary and a failover provider.

    Collaborators are injected; ``build_ai_service`` wires the defaults.
    Use as an async context manager to start the background flush and to
    flush and release everything on exit.
    """

    def __init__(
        self,
        primary_provider: ProviderAdapter,
        failover_provider: ProviderAdapter,
        rate_limiter: ClientRateLimiter,
        cache: ResponseCache,
        cost_tracker: CostTracker,
        breakers: CircuitBreakerManager,
        retry_manager: RetryManager,
        monitor: MonitoringAggregator,
        sink: ObservabilitySink,
        usage_recorder: Optional[UsageRecorder] = None,
        settings: Optional[ResilienceSettings] = None,
        scheduler: Optional[Any] = None,
        timer: Callable[[], float] = time.perf_counter,
    ):
        self.providers: Dict[Route, ProviderAdapter] = {
            Route.PRIMARY: primary_provider,
            Route.FAILOVER: failover_provider,
        }
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.cost_tracker = cost_tracker
        self.breakers = breakers
        self.retry_manager = retry_manager
        self.monitor = monitor
        self.sink = sink
        self.usage_recorder = usage_recorder if usage_recorder is not None else NullUsageRecorder()
        self.settings = settings if settings is not None else ResilienceSettings()
        self.scheduler = scheduler
        self._timer = timer
        self._background_tasks: Set[asyncio.Task] = set()
        self._closed = False

        self._breaker_config = CircuitBreakerConfig(
            failure_threshold=self.settings.breaker_failure_threshold,
            cooldown=self.settings.breaker_cooldown_seconds,
            cooldown_multiplier=self.settings.breaker_cooldown_multiplier,
            max_cooldown=self.settings.breaker_max_cooldown_seconds,
        )

    # Public API

    async def generate_ai_response(
        self,
        prompt: str,
        skip_cache: bool = False,
        model_id: Optional[str] = None,
    ) -> str:
        """
        Generate a completion for ``prompt``.

        Args:
            prompt: User prompt
            skip_cache: Bypass the response cache for both lookup and store
            model_id: Model id or display name; defaults to the primary model

        Raises:
            AIError: The classified primary failure when both routes fail,
                a RATE_LIMIT / BUDGET_EXCEEDED admission rejection, or
                VALIDATION for a blank prompt
        """
        config = get_config(model_id)
        started = self._timer()

        await self._admit(GENERATE_OPERATION, config, started)

        cache_key = None
        if not skip_cache:
            cache_key = self.cache.generate_key(prompt, self._cache_options(config))
            cached = self.cache.get(cache_key)
            if cached is not None:
                await self.monitor.record_operation(PerformanceRecord(
                    operation=GENERATE_OPERATION,
                    model=config.llm_model_id,
                    duration=0.0,
                    success=True,
                    cost=0.0,
                    cache_hit=True,
                ))
                return cached

        outcome = await self._run_with_failover(GENERATE_OPERATION, prompt, config, started)
        response: GenerationResponse = outcome.value

        if cache_key is not None and outcome.model.llm_model_id == config.llm_model_id:
            self.cache.set(cache_key, response.text)
        return response.text

    async def stream_ai_response(
        self,
        prompt: str,
        skip_cache: bool = False,
        model_id: Optional[str] = None,
    ) -> StreamHandle:
        """
        Open a streaming completion for ``prompt``.

        The resilience policy covers obtaining the handle only; chunks are
        passed through untouched. Streaming responses are never cached, so
        ``skip_cache`` is accepted for signature parity and ignored.
        """
        config = get_config(model_id)
        started = self._timer()

        await self._admit(STREAM_OPERATION, config, started)

        outcome = await self._run_with_failover(STREAM_OPERATION, prompt, config, started)
        return outcome.value

    # Admission

    async def _admit(self, operation: str, config: ModelConfig, started: float) -> None:
        try:
            self.rate_limiter.enforce()
        except AIError as error:
            await self._report_terminal(operation, config, started, error)
            raise

    def _cache_options(self, config: ModelConfig) -> Dict[str, Any]:
        return {
            "model": config.llm_model_id,
            "max_tokens": self.settings.max_tokens,
            "temperature": self.settings.temperature,
        }

    # Call path

    async def _run_with_failover(
        self,
        operation: str,
        prompt: str,
        config: ModelConfig,
        started: float,
    ) -> CallOutcome:
        route = select_route(config.llm_model_id)
        max_tokens = min(self.settings.max_tokens, config.max_tokens)

        try:
            request = GenerationRequest(
                prompt=prompt,
                model=config.llm_model_id,
                max_tokens=max_tokens,
                temperature=self.settings.temperature,
            )
        except ValidationError as raw_error:
            error = parse_ai_error(raw_error)
            await self._report_terminal(operation, config, started, error)
            raise error from raw_error

        try:
            self.cost_tracker.check_cost_limit(estimate_cost(prompt, config, max_tokens))
        except AIError as error:
            await self._report_terminal(operation, config, started, error)
            raise

        retry_state = RetryState()
        try:
            outcome = await self._call_primary(operation, request, config, route, retry_state)
        except asyncio.CancelledError:
            raise
        except Exception as raw_error:
            primary_error = parse_ai_error(raw_error)
            await self._record_failure(
                operation, config, started, primary_error,
                retry_count=max(retry_state.attempts - 1, 0),
            )
            slog.warning(
                "Primary AI call failed",
                model=config.llm_model_id,
                operation=operation,
                error_code=primary_error.code,
                attempts=retry_state.attempts,
            )

            if route == Route.FAILOVER:
                # Requested model already lives on the failover route
                self._capture(primary_error, operation, config, stage="primary")
                self._raise(primary_error, raw_error)

            failover_started = self._timer()
            failover_config = get_failover_config()
            try:
                outcome = await self._call_failover(operation, request, failover_config)
            except asyncio.CancelledError:
                raise
            except Exception as failover_raw:
                failover_error = parse_ai_error(failover_raw)
                await self._record_failure(
                    operation + FAILOVER_SUFFIX, failover_config, failover_started, failover_error,
                )
                self._capture(failover_error, operation + FAILOVER_SUFFIX, failover_config, stage="failover")
                self._capture(primary_error, operation, config, stage="primary")
                slog.error(
                    "Failover AI call failed, surfacing original error",
                    model=failover_config.llm_model_id,
                    operation=operation,
                    error=failover_error,
                    original_code=primary_error.code,
                )
                self._raise(primary_error, raw_error)

            slog.info(
                "Failover AI call succeeded",
                model=failover_config.llm_model_id,
                operation=operation,
            )
            await self._record_success(operation + FAILOVER_SUFFIX, outcome, failover_started)
            return outcome

        await self._record_success(operation, outcome, started)
        return outcome

    async def _call_primary(
        self,
        operation: str,
        request: GenerationRequest,
        config: ModelConfig,
        route: Route,
        retry_state: RetryState,
    ) -> CallOutcome:
        provider = self.providers[route]
        breaker = self.breakers.get_or_create(provider.name, self._breaker_config)
        timeout = self.settings.primary_timeout_seconds
        label = f"{operation}:{provider.name}"

        async def attempt():
            return await with_timeout(self._invoke(provider, operation, request), timeout, label)

        async def guarded():
            return await self.retry_manager.execute(attempt, label, state=retry_state)

        value = await breaker.execute(guarded, label)
        outcome = self._settle(operation, request.prompt, value, config, request.max_tokens)
        outcome.retry_count = max(retry_state.attempts - 1, 0)
        return outcome

    async def _call_failover(
        self,
        operation: str,
        primary_request: GenerationRequest,
        config: ModelConfig,
    ) -> CallOutcome:
        provider = self.providers[Route.FAILOVER]
        prompt = primary_request.prompt
        max_tokens = min(self.settings.failover_max_tokens, config.max_tokens)
        self.cost_tracker.check_cost_limit(estimate_cost(prompt, config, max_tokens))

        request = primary_request.model_copy(
            update={"model": config.llm_model_id, "max_tokens": max_tokens}
        )
        label = f"{operation}{FAILOVER_SUFFIX}:{provider.name}"
        value = await with_timeout(
            self._invoke(provider, operation, request),
            self.settings.failover_timeout_seconds,
            label,
        )
        return self._settle(operation, prompt, value, config, max_tokens)

    @staticmethod
    async def _invoke(provider: ProviderAdapter, operation: str, request: GenerationRequest):
        if operation == STREAM_OPERATION:
            return await provider.stream(request)
        return await provider.generate(request)

    def _settle(
        self,
        operation: str,
        prompt: str,
        value: Any,
        config: ModelConfig,
        max_tokens: int,
    ) -> CallOutcome:
        """Reconcile the ledger for a successful call and schedule usage recording."""
        usage = getattr(value, "usage", None) if operation == GENERATE_OPERATION else None
        if usage and usage.get("total_tokens"):
            input_tokens = usage.get("prompt_tokens", 0)
            output_tokens = usage.get("completion_tokens", 0)
            cost = calculate_cost(usage, config)
        else:
            # No measured usage (streams, or providers that omit it): settle at the estimate
            input_tokens = estimate_tokens(prompt)
            output_tokens = max_tokens
            cost = estimate_cost(prompt, config, max_tokens)

        self.cost_tracker.add_today_cost(cost)
        self._spawn(self._record_usage(config.llm_model_id, input_tokens, output_tokens, cost))

        return CallOutcome(
            value=value,
            model=config,
            cost=cost,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )

    # Recording

    async def _record_success(self, operation: str, outcome: CallOutcome, started: float) -> None:
        await self.monitor.record_operation(PerformanceRecord(
            operation=operation,
            model=outcome.model.llm_model_id,
            duration=self._elapsed_ms(started),
            success=True,
            input_tokens=outcome.input_tokens,
            output_tokens=outcome.output_tokens,
            cost=outcome.cost,
            retry_count=outcome.retry_count,
        ))

    async def _record_failure(
        self,
        operation: str,
        config: ModelConfig,
        started: float,
        error: AIError,
        retry_count: Optional[int] = None,
    ) -> None:
        await self.monitor.record_operation(PerformanceRecord(
            operation=operation,
            model=config.llm_model_id,
            duration=self._elapsed_ms(started),
            success=False,
            error=error.message,
            error_code=error.code,
            retry_count=retry_count,
        ))

    async def _report_terminal(
        self,
        operation: str,
        config: ModelConfig,
        started: float,
        error: AIError,
    ) -> None:
        await self._record_failure(operation, config, started, error)
        self._capture(error, operation, config, stage="admission")

    def _capture(self, error: AIError, operation: str, config: ModelConfig, stage: str) -> None:
        try:
            self.sink.capture_exception(
                error,
                tags={
                    "ai_operation": operation,
                    "model": config.llm_model_id,
                    "error_code": error.code,
                    "stage": stage,
                },
                extra=error.to_dict(),
            )
        except Exception as e:
            logger.error(f"Failed to capture AI error: {e}")

    @staticmethod
    def _raise(error: AIError, raw: BaseException):
        if error is raw:
            raise error
        raise error from raw

    async def _record_usage(self, model: str, input_tokens: int, output_tokens: int, cost: float) -> None:
        try:
            await self.usage_recorder.record_ai_conversation(
                model=model,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                cost=cost,
            )
        except Exception as e:
            logger.error(f"Failed to record AI usage: {e}", extra={"model": model})

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    def _elapsed_ms(self, started: float) -> float:
        return (self._timer() - started) * 1000

    # Lifecycle

    def start(self) -> None:
        """Start periodic background work on the running loop."""
        if self.scheduler is not None and hasattr(self.scheduler, "start"):
            self.scheduler.start()

    async def drain(self) -> None:
        """Wait for pending usage recordings."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Flush monitoring, stop the scheduler and close providers."""
        if self._closed:
            return
        self._closed = True
        await self.drain()
        if self.scheduler is not None and hasattr(self.scheduler, "shutdown"):
            await self.scheduler.shutdown()
        await self.monitor.stop()
        for provider in {id(p): p for p in self.providers.values()}.values():
            try:
                await provider.aclose()
            except Exception as e:
                logger.error(f"Failed to close provider {provider.name}: {e}")

    async def __aenter__(self) -> "AIService":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def get_status(self) -> Dict[str, Any]:
        """Snapshot of breaker, limiter, cache and budget state."""
        return {
            "circuit_breakers": self.breakers.get_all_stats(),
            "rate_limiter": self.rate_limiter.get_stats(),
            "cache": self.cache.get_stats(),
            "cost": self.cost_tracker.get_summary(),
        }
