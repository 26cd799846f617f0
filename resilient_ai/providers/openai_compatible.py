import os
from typing import Any, Optional

from dotenv import load_dotenv
from openai import AsyncOpenAI

from .base import ProviderAdapter, ProviderError
from ..config.models import PROVIDER_ENDPOINTS
from ..core.usage import normalize_usage
from ..models.generation import GenerationRequest, GenerationResponse, StreamHandle
from ..observability.logging import StructuredLogger

# Load environment variables
load_dotenv()


class OpenAICompatibleProvider(ProviderAdapter):
    """Provider reached through an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        name: str,
        base_url: str,
        api_key: Optional[str] = None,
        api_key_env: Optional[str] = None,
        client: Optional[Any] = None,
        default_headers: Optional[dict] = None,
    ):
        self.name = name
        self.base_url = base_url
        self._api_key = api_key or (os.getenv(api_key_env) if api_key_env else None)
        self._api_key_env = api_key_env
        self._client = client
        self._default_headers = default_headers
        self.logger = StructuredLogger(name)

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy initialization of the SDK client."""
        if self._client is None:
            if not self._api_key:
                raise ProviderError(
                    f"{self.name} API key not found (set {self._api_key_env})",
                    provider=self.name,
                )
            # Retries and timeouts are applied by the resilience layer
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self.base_url,
                max_retries=0,
                default_headers=self._default_headers,
            )
        return self._client

    def _build_payload(self, request: GenerationRequest, stream: bool = False) -> dict:
        payload = {
            "model": request.model,
            "messages": request.to_messages(),
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        if request.timeout is not None:
            payload["timeout"] = request.timeout
        if stream:
            payload["stream"] = True
            payload["stream_options"] = {"include_usage": True}
        return payload

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        with self.logger.track_request("generate", request.model,
                                       max_tokens=request.max_tokens) as request_info:
            response = await self.client.chat.completions.create(**self._build_payload(request))

            text = ""
            finish_reason = None
            if response.choices:
                choice = response.choices[0]
                text = choice.message.content or ""
                finish_reason = choice.finish_reason

            usage = normalize_usage(getattr(response, "usage", None))
            self.logger.log_usage(usage, request.model, request_info["request_id"])

            return GenerationResponse(
                text=text,
                model=getattr(response, "model", None) or request.model,
                usage=usage,
                provider=self.name,
                finish_reason=finish_reason,
            )

    async def stream(self, request: GenerationRequest) -> StreamHandle:
        with self.logger.track_request("stream", request.model, max_tokens=request.max_tokens):
            raw_stream = await self.client.chat.completions.create(
                **self._build_payload(request, stream=True)
            )

        handle: StreamHandle

        async def chunks():
            finish_reason = None
            async for event in raw_stream:
                piece = None
                if event.choices:
                    choice = event.choices[0]
                    if choice.finish_reason:
                        finish_reason = choice.finish_reason
                    piece = getattr(choice.delta, "content", None)
                # Usage arrives on the final event when include_usage is set
                usage = getattr(event, "usage", None)
                if usage is not None:
                    handle.set_usage(normalize_usage(usage), finish_reason)
                if piece:
                    yield piece

        async def close():
            if hasattr(raw_stream, "close"):
                await raw_stream.close()

        handle = StreamHandle(chunks(), model=request.model, provider=self.name, close=close)
        return handle

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()


def create_provider(name: str, client: Optional[Any] = None) -> OpenAICompatibleProvider:
    """Build the adapter for a provider listed in ``PROVIDER_ENDPOINTS``."""
    endpoint = PROVIDER_ENDPOINTS.get(name)
    if endpoint is None:
        raise ProviderError(f"Unknown provider: {name}", provider=name)
    return OpenAICompatibleProvider(
        name=name,
        base_url=endpoint["base_url"],
        api_key_env=endpoint["api_key_env"],
        client=client,
    )
