"""End-to-end tests of the AI service over fake providers."""

import asyncio

import pytest

from pydantic import ValidationError

from resilient_ai.cache.response_cache import ResponseCache
from resilient_ai.config.models import DEFAULT_MODEL, FAILOVER_MODEL
from resilient_ai.config.settings import ResilienceSettings
from resilient_ai.core.pricing import estimate_cost
from resilient_ai.providers.selector import get_config
from resilient_ai.reliability.errors import AIError, ErrorKind
from resilient_ai.reliability.rate_limiter import ClientRateLimiter
from tests.helpers.fakes import FakeProvider, RecordingUsageRecorder
from tests.helpers.mock_exceptions import MockQuotaError, MockServerError

pytestmark = pytest.mark.integration


def records_of(service):
    return [(r.operation, r.model, r.success, r.error_code) for r in service.monitor.get_buffered_records()]


class TestGenerateSuccess:

    @pytest.mark.asyncio
    async def test_primary_success_reconciles_cost_and_usage(self, service, cost_tracker,
                                                            usage_recorder, primary_provider):
        text = await service.generate_ai_response("Hello there")

        assert text == "primary answer"
        assert primary_provider.call_count == 1
        request = primary_provider.requests[0]
        assert request.model == DEFAULT_MODEL
        assert request.max_tokens == 4000

        # 100 prompt tokens at 0.001/1k plus 50 completion tokens at 0.003/1k
        assert cost_tracker.get_today_cost() == pytest.approx(0.00025)

        await service.drain()
        assert usage_recorder.calls == [{
            "model": DEFAULT_MODEL,
            "input_tokens": 100,
            "output_tokens": 50,
            "cost": pytest.approx(0.00025),
        }]

        record = service.monitor.get_buffered_records()[0]
        assert record.operation == "generate"
        assert record.success
        assert record.retry_count == 0
        assert record.cost == pytest.approx(0.00025)

    @pytest.mark.asyncio
    async def test_cache_hit_skips_provider(self, service, primary_provider, cost_tracker):
        first = await service.generate_ai_response("Cache me")
        spent = cost_tracker.get_today_cost()
        second = await service.generate_ai_response("Cache me")

        assert first == second == "primary answer"
        assert primary_provider.call_count == 1
        assert cost_tracker.get_today_cost() == spent

        hit = service.monitor.get_buffered_records()[-1]
        assert hit.cache_hit
        assert hit.cost == 0.0
        assert hit.duration == 0.0

    @pytest.mark.asyncio
    async def test_injected_cache_is_used_even_when_empty(self, make_service, clock, primary_provider):
        cache = ResponseCache(ttl_seconds=60, clock=clock)
        service = make_service(cache=cache)

        assert service.cache is cache

        await service.generate_ai_response("Expire me")
        assert len(cache) == 1
        await service.generate_ai_response("Expire me")
        assert primary_provider.call_count == 1

        clock.advance(61.0)
        await service.generate_ai_response("Expire me")
        assert primary_provider.call_count == 2

    @pytest.mark.asyncio
    async def test_skip_cache_calls_provider(self, service, primary_provider):
        await service.generate_ai_response("Fresh")
        await service.generate_ai_response("Fresh", skip_cache=True)

        assert primary_provider.call_count == 2

    @pytest.mark.asyncio
    async def test_model_selection_by_display_name(self, service, primary_provider):
        await service.generate_ai_response("Hi", model_id="Llama 3.3 70B")

        assert primary_provider.requests[0].model == "llama-3.3-70b-versatile"

    @pytest.mark.asyncio
    async def test_transient_failures_are_retried(self, make_service, sleeper):
        primary = FakeProvider("groq", outcomes=[ConnectionError("reset"), ConnectionError("reset")],
                               default_text="third time lucky")
        service = make_service(primary_provider=primary)

        text = await service.generate_ai_response("Retry me")

        assert text == "third time lucky"
        assert primary.call_count == 3
        assert sleeper.delays == [0.5, 1.0]
        assert service.monitor.get_buffered_records()[0].retry_count == 2

    @pytest.mark.asyncio
    async def test_missing_usage_settles_at_estimate(self, make_service, cost_tracker):
        service = make_service(primary_provider=FakeProvider("groq", usage={}))

        await service.generate_ai_response("No usage reported")

        expected = estimate_cost("No usage reported", get_config(DEFAULT_MODEL), 4000)
        assert cost_tracker.get_today_cost() == pytest.approx(expected)

    @pytest.mark.asyncio
    async def test_usage_recorder_failure_is_logged(self, make_service, caplog):
        service = make_service(usage_recorder=RecordingUsageRecorder(fail=True))

        with caplog.at_level("ERROR"):
            text = await service.generate_ai_response("Hello")
            await service.drain()

        assert text == "primary answer"
        assert "Failed to record AI usage" in caplog.text


class TestFailover:

    @pytest.mark.asyncio
    async def test_failover_success_after_quota_error(self, make_service, failover_provider):
        primary = FakeProvider("groq", outcomes=[MockQuotaError()])
        service = make_service(primary_provider=primary)

        text = await service.generate_ai_response("Help")

        assert text == "failover answer"
        assert primary.call_count == 1
        request = failover_provider.requests[0]
        assert request.model == FAILOVER_MODEL
        assert request.max_tokens == 2000
        assert records_of(service) == [
            ("generate", DEFAULT_MODEL, False, "QUOTA_EXCEEDED"),
            ("generate_failover", FAILOVER_MODEL, True, None),
        ]

    @pytest.mark.asyncio
    async def test_failover_result_is_not_cached(self, make_service):
        primary = FakeProvider("groq", outcomes=[MockQuotaError()], default_text="primary answer")
        service = make_service(primary_provider=primary)

        assert await service.generate_ai_response("Help") == "failover answer"
        assert await service.generate_ai_response("Help") == "primary answer"
        assert primary.call_count == 2

    @pytest.mark.asyncio
    async def test_both_routes_fail_surfaces_original_error(self, make_service, sink):
        quota = MockQuotaError()
        primary = FakeProvider("groq", outcomes=[quota])
        failover = FakeProvider("openrouter", outcomes=[MockServerError("upstream exploded")])
        service = make_service(primary_provider=primary, failover_provider=failover)

        with pytest.raises(AIError) as exc_info:
            await service.generate_ai_response("Help")

        assert exc_info.value.kind == ErrorKind.QUOTA
        assert exc_info.value.__cause__ is quota
        assert records_of(service) == [
            ("generate", DEFAULT_MODEL, False, "QUOTA_EXCEEDED"),
            ("generate_failover", FAILOVER_MODEL, False, "UNKNOWN"),
        ]
        assert [e.tags["stage"] for e in sink.exceptions] == ["failover", "primary"]
        assert sink.exceptions[1].tags["error_code"] == "QUOTA_EXCEEDED"

    @pytest.mark.asyncio
    async def test_failover_route_model_does_not_fail_over_twice(self, make_service,
                                                                 primary_provider):
        failover = FakeProvider("openrouter", outcomes=[MockServerError()])
        service = make_service(failover_provider=failover)

        with pytest.raises(AIError) as exc_info:
            await service.generate_ai_response("Help", model_id=FAILOVER_MODEL)

        assert exc_info.value.kind == ErrorKind.UNKNOWN
        assert failover.call_count == 1
        assert primary_provider.call_count == 0

    @pytest.mark.asyncio
    async def test_primary_timeout_fails_over(self, make_service):
        async def hang(request):
            await asyncio.sleep(1)

        settings = ResilienceSettings.from_env(
            env={}, primary_timeout_seconds=0.05, failover_timeout_seconds=0.05,
        )
        primary = FakeProvider("groq", before_call=hang)
        service = make_service(settings=settings, primary_provider=primary)

        text = await service.generate_ai_response("Slow")

        assert text == "failover answer"
        assert primary.call_count == 3
        failure = service.monitor.get_buffered_records()[0]
        assert failure.error_code == "TIMEOUT"
        assert failure.retry_count == 2


class TestAdmission:

    @pytest.mark.asyncio
    async def test_rate_limit_rejection_is_terminal(self, make_service, clock, sink,
                                                    primary_provider, failover_provider):
        service = make_service(rate_limiter=ClientRateLimiter(max_requests=1, clock=clock))
        await service.generate_ai_response("One")

        with pytest.raises(AIError) as exc_info:
            await service.generate_ai_response("Two")

        assert exc_info.value.kind == ErrorKind.RATE_LIMIT
        assert exc_info.value.retry_after == pytest.approx(60.0)
        assert primary_provider.call_count == 1
        assert failover_provider.call_count == 0
        assert records_of(service)[-1] == ("generate", DEFAULT_MODEL, False, "RATE_LIMIT_EXCEEDED")
        assert sink.exceptions[-1].tags["stage"] == "admission"

        clock.advance(60.0)
        assert await service.generate_ai_response("Three") == "primary answer"

    @pytest.mark.asyncio
    async def test_budget_rejection_is_terminal(self, service, cost_tracker,
                                                primary_provider, failover_provider):
        cost_tracker.add_today_cost(0.995)

        with pytest.raises(AIError) as exc_info:
            await service.generate_ai_response("Too expensive")

        assert exc_info.value.kind == ErrorKind.BUDGET_EXCEEDED
        assert primary_provider.call_count == 0
        assert failover_provider.call_count == 0
        assert records_of(service) == [("generate", DEFAULT_MODEL, False, "BUDGET_EXCEEDED")]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["generate", "stream"])
    async def test_blank_prompt_is_terminal_validation_error(self, service, sink, operation,
                                                             primary_provider, failover_provider):
        call = service.generate_ai_response if operation == "generate" else service.stream_ai_response

        with pytest.raises(AIError) as exc_info:
            await call("   ")

        assert exc_info.value.kind == ErrorKind.VALIDATION
        assert not exc_info.value.is_retryable
        assert isinstance(exc_info.value.__cause__, ValidationError)
        assert primary_provider.call_count == 0
        assert failover_provider.call_count == 0
        assert records_of(service) == [(operation, DEFAULT_MODEL, False, "VALIDATION_ERROR")]
        assert sink.exceptions[-1].tags["stage"] == "admission"

    @pytest.mark.asyncio
    async def test_cache_hit_still_counts_against_rate_limit(self, make_service, clock):
        service = make_service(rate_limiter=ClientRateLimiter(max_requests=2, clock=clock))
        await service.generate_ai_response("Same")
        await service.generate_ai_response("Same")

        with pytest.raises(AIError):
            await service.generate_ai_response("Same")


class TestCircuitBreaker:

    @pytest.mark.asyncio
    async def test_open_breaker_routes_to_failover(self, make_service, failover_provider):
        settings = ResilienceSettings.from_env(env={}, breaker_failure_threshold=2)
        primary = FakeProvider("groq", outcomes=[MockServerError(), MockServerError()])
        service = make_service(settings=settings, primary_provider=primary)

        for prompt in ("one", "two", "three"):
            assert await service.generate_ai_response(prompt) == "failover answer"

        assert primary.call_count == 2
        assert failover_provider.call_count == 3
        assert service.breakers.get("groq").is_open()
        assert records_of(service)[-2] == ("generate", DEFAULT_MODEL, False, "CIRCUIT_BREAKER_OPEN")
        assert service.get_status()["circuit_breakers"]["groq"]["state"] == "open"

    @pytest.mark.asyncio
    async def test_in_flight_call_unaffected_by_breaker_opening(self, make_service):
        release = asyncio.Event()

        async def gate(request):
            if request.prompt == "B":
                await release.wait()

        settings = ResilienceSettings.from_env(env={}, breaker_failure_threshold=1)
        primary = FakeProvider("groq", outcomes=[MockServerError()], default_text="primary answer",
                               before_call=gate)
        service = make_service(settings=settings, primary_provider=primary)

        call_b = asyncio.ensure_future(service.generate_ai_response("B"))
        for _ in range(5):
            await asyncio.sleep(0)

        assert await service.generate_ai_response("A") == "failover answer"
        breaker = service.breakers.get("groq")
        assert breaker.is_open()

        release.set()
        assert await call_b == "primary answer"
        assert breaker.is_open()


class TestStreaming:

    @pytest.mark.asyncio
    async def test_stream_passes_chunks_through(self, service, cost_tracker):
        handle = await service.stream_ai_response("Stream please")
        chunks = [chunk async for chunk in handle]

        assert chunks == ["Hello", ", ", "world"]
        assert handle.get_text() == "Hello, world"
        assert handle.provider == "groq"

        expected = estimate_cost("Stream please", get_config(DEFAULT_MODEL), 4000)
        assert cost_tracker.get_today_cost() == pytest.approx(expected)
        assert records_of(service) == [("stream", DEFAULT_MODEL, True, None)]

    @pytest.mark.asyncio
    async def test_stream_is_never_cached(self, service, primary_provider):
        await service.stream_ai_response("Again")
        await service.stream_ai_response("Again")

        assert primary_provider.call_count == 2

    @pytest.mark.asyncio
    async def test_stream_fails_over(self, make_service):
        primary = FakeProvider("groq", outcomes=[MockQuotaError()])
        service = make_service(primary_provider=primary)

        handle = await service.stream_ai_response("Stream please")

        assert handle.provider == "openrouter"
        assert handle.model == FAILOVER_MODEL
        assert records_of(service)[-1] == ("stream_failover", FAILOVER_MODEL, True, None)


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_context_manager_flushes_and_closes(self, make_service, sink, scheduler,
                                                      primary_provider, failover_provider):
        async with make_service() as service:
            await service.generate_ai_response("Hello")
            assert scheduler.started

        assert scheduler.stopped
        assert sink.flush_count == 1
        assert len(sink.get_values("ai.operation.duration")) == 1
        assert service.monitor.get_buffered_records() == []
        assert primary_provider.closed
        assert failover_provider.closed

    @pytest.mark.asyncio
    async def test_periodic_flush_reports_cost(self, service, sink, scheduler):
        await service.generate_ai_response("Hello")
        await scheduler.tick()

        assert sink.last_value("ai.cost.daily") == pytest.approx(0.00025)
        assert sink.last_value("ai.health.score") == 100.0

    def test_status_snapshot(self, service):
        status = service.get_status()

        assert set(status) == {"circuit_breakers", "rate_limiter", "cache", "cost"}
        assert status["cost"]["daily_limit"] == 1.0
