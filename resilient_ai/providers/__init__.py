from .base import ProviderAdapter, ProviderError
from .openai_compatible import OpenAICompatibleProvider, create_provider
from .selector import MODEL_CONFIGS, get_config, get_failover_config, select_route, get_available_models

__all__ = [
    "ProviderAdapter",
    "ProviderError",
    "OpenAICompatibleProvider",
    "create_provider",
    "MODEL_CONFIGS",
    "get_config",
    "get_failover_config",
    "select_route",
    "get_available_models",
]
