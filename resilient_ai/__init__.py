"""
Resilient AI SDK - fault-tolerant, budgeted and monitored AI text generation.

Wraps OpenAI-compatible providers (Groq primary, OpenRouter failover) with:
- Circuit breaking, retries with backoff, and timeouts
- Daily cost budget with pre-flight admission control
- Response caching and client-side rate limiting
- Buffered performance monitoring with insights and alerts
"""

__version__ = "0.1.0"

from .main import build_ai_service
from .orchestration.service import AIService
from .config.settings import ResilienceSettings
from .models.generation import (
    GenerationRequest,
    GenerationResponse,
    ModelConfig,
    ProviderType,
    Route,
    StreamHandle,
)
from .reliability import (
    AIError,
    ErrorKind,
    parse_ai_error,
    with_retry,
    with_timeout,
    CircuitBreaker,
    CircuitState,
    ClientRateLimiter,
    CostTracker,
)
from .cache import ResponseCache
from .providers import ProviderAdapter, ProviderError, select_route

__all__ = [
    "build_ai_service",
    "AIService",
    "ResilienceSettings",
    "GenerationRequest",
    "GenerationResponse",
    "ModelConfig",
    "ProviderType",
    "Route",
    "StreamHandle",
    "AIError",
    "ErrorKind",
    "parse_ai_error",
    "with_retry",
    "with_timeout",
    "CircuitBreaker",
    "CircuitState",
    "ClientRateLimiter",
    "CostTracker",
    "ResponseCache",
    "ProviderAdapter",
    "ProviderError",
    "select_route",
]
