from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, Any, List, AsyncIterator, Callable, Awaitable
from enum import Enum


class ProviderType(str, Enum):
    """Supported OpenAI-compatible providers."""
    GROQ = "groq"
    OPENROUTER = "openrouter"


class Route(str, Enum):
    """Which leg of the call path a model is served on."""
    PRIMARY = "primary"
    FAILOVER = "failover"


class ModelConfig(BaseModel):
    """Model configuration schema."""
    name: str
    display_name: str
    provider: ProviderType
    route: Route = Route.PRIMARY
    llm_model_id: str
    description: str = ""
    max_tokens: int = 4000
    enabled: bool = True
    input_cost_per_1k_tokens: float = 0.0
    output_cost_per_1k_tokens: float = 0.0


class GenerationRequest(BaseModel):
    """Request handed to a provider adapter."""
    prompt: str
    model: str
    max_tokens: int = Field(default=4000, ge=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    timeout: Optional[float] = Field(default=None, gt=0)

    @field_validator('prompt')
    def validate_prompt(cls, v):
        if not v or not v.strip():
            raise ValueError("prompt must not be empty")
        return v

    def to_messages(self) -> List[Dict[str, str]]:
        return [{"role": "user", "content": self.prompt}]


class GenerationResponse(BaseModel):
    """Response model for generation."""
    text: str
    model: str
    usage: Dict[str, Any] = Field(default_factory=dict)
    provider: str
    finish_reason: Optional[str] = None


class StreamHandle:
    """
    Handle to an in-progress streaming generation.

    Iterating yields text chunks straight from the provider. Usage, when the
    provider reports it, is available after iteration completes.
    """

    def __init__(
        self,
        chunks: AsyncIterator[str],
        model: str,
        provider: str,
        close: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self._chunks = chunks
        self.model = model
        self.provider = provider
        self.usage: Optional[Dict[str, Any]] = None
        self.finish_reason: Optional[str] = None
        self._close = close
        self._collected: List[str] = []

    def set_usage(self, usage: Dict[str, Any], finish_reason: Optional[str] = None):
        """Set the usage data after streaming completes."""
        self.usage = usage
        self.finish_reason = finish_reason

    def get_text(self) -> str:
        """Text received so far."""
        return ''.join(self._collected)

    async def __aiter__(self):
        async for chunk in self._chunks:
            self._collected.append(chunk)
            yield chunk

    async def aclose(self) -> None:
        if self._close is not None:
            await self._close()
