from .settings import ResilienceSettings, ENV_PREFIX
from .models import MODEL_CONFIGS, DEFAULT_MODEL, FAILOVER_MODEL, PROVIDER_ENDPOINTS

__all__ = [
    "ResilienceSettings",
    "ENV_PREFIX",
    "MODEL_CONFIGS",
    "DEFAULT_MODEL",
    "FAILOVER_MODEL",
    "PROVIDER_ENDPOINTS",
]
