"""
Base Provider Adapter Interface

All provider adapters implement this interface so the orchestration layer can
treat the primary and failover routes the same way.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..models.generation import GenerationRequest, GenerationResponse, StreamHandle


class ProviderAdapter(ABC):
    """
    Abstract base class for provider adapters.

    The adapter is responsible for:
    - Translating a GenerationRequest into the provider's API call
    - Normalizing responses and usage to SDK format

    Adapters should NOT contain retry, timeout, breaker or budget logic; the
    orchestration layer wraps them with those policies.
    """

    name: str = "provider"

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        """
        Generate a completion.

        Returns:
            GenerationResponse whose usage has prompt_tokens, completion_tokens
            and total_tokens

        Raises:
            ProviderError: For provider configuration problems
            Exception: SDK/transport errors are left for the classifier
        """
        pass

    @abstractmethod
    async def stream(self, request: GenerationRequest) -> StreamHandle:
        """
        Open a streaming completion.

        Returns once the provider has accepted the request; chunks are
        consumed by iterating the returned handle.
        """
        pass

    async def aclose(self) -> None:
        """Release any network resources held by the adapter."""
        return None


class ProviderError(Exception):
    """
    Exception for provider-level configuration problems.

    Raised for missing API keys or unknown models. Transport and API errors
    from the SDK are not wrapped.

    Attributes:
        message: Error message
        provider: Provider name
        status_code: HTTP status code if applicable
    """

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
