"""Shared pytest fixtures for Resilient AI SDK tests."""

import pytest

from resilient_ai.cache.response_cache import ResponseCache
from resilient_ai.config.settings import ResilienceSettings
from resilient_ai.main import build_ai_service
from resilient_ai.observability.sinks.in_memory import InMemoryObservabilitySink
from resilient_ai.reliability.circuit_breaker import CircuitBreakerManager
from resilient_ai.reliability.cost_ledger import CostTracker
from resilient_ai.reliability.rate_limiter import ClientRateLimiter
from resilient_ai.reliability.retry import RetryManager, RetryPolicy
from resilient_ai.storage.kv_store import InMemoryKeyValueStore
from tests.helpers.fakes import (
    FakeClock, FakeToday, FakeProvider, ManualScheduler, RecordingUsageRecorder, SleepRecorder,
)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line("markers", "integration: service-level tests over fake providers")
    config.addinivalue_line("markers", "slow: tests that take noticeable wall time")


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Mock provider keys for testing."""
    env_vars = {
        "GROQ_API_KEY": "test-groq-key",
        "OPENROUTER_API_KEY": "test-openrouter-key",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def settings():
    """Default settings, isolated from the process environment."""
    return ResilienceSettings.from_env(env={})


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def today():
    return FakeToday()


@pytest.fixture
def sink():
    return InMemoryObservabilitySink()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def usage_recorder():
    return RecordingUsageRecorder()


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def cost_tracker(store, today):
    return CostTracker(store=store, daily_limit=1.0, today=today)


@pytest.fixture
def primary_provider():
    return FakeProvider("groq", default_text="primary answer")


@pytest.fixture
def failover_provider():
    return FakeProvider("openrouter", default_text="failover answer")


@pytest.fixture
def make_service(settings, sink, scheduler, sleeper, usage_recorder, cost_tracker, clock,
                 primary_provider, failover_provider):
    """Factory building a fully faked AIService; keyword arguments override parts."""

    def _make(**overrides):
        parts = dict(
            primary_provider=primary_provider,
            failover_provider=failover_provider,
            sink=sink,
            scheduler=scheduler,
            usage_recorder=usage_recorder,
            cost_tracker=cost_tracker,
            rate_limiter=ClientRateLimiter(clock=clock),
            cache=ResponseCache(clock=clock),
            breakers=CircuitBreakerManager(clock=clock),
            retry_manager=RetryManager(
                RetryPolicy(max_attempts=settings.retry_max_attempts),
                sleep=sleeper,
                rng=lambda: 0.0,
            ),
        )
        service_settings = overrides.pop("settings", settings)
        parts.update(overrides)
        return build_ai_service(service_settings, **parts)

    return _make


@pytest.fixture
def service(make_service):
    return make_service()
