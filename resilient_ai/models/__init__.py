from .generation import (
    ProviderType,
    Route,
    ModelConfig,
    GenerationRequest,
    GenerationResponse,
    StreamHandle,
)

__all__ = [
    "ProviderType",
    "Route",
    "ModelConfig",
    "GenerationRequest",
    "GenerationResponse",
    "StreamHandle",
]
