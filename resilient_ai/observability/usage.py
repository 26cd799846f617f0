"""Usage recording interface for per-conversation accounting."""

from typing import Protocol
import logging

logger = logging.getLogger(__name__)


class UsageRecorder(Protocol):
    """Persists token usage and cost for one AI conversation."""

    async def record_ai_conversation(
        self,
        model: str,
        input_tokens: int,
        output_tokens: int,
        cost: float,
    ) -> None:
        ...


class NullUsageRecorder:
    """Recorder that only logs usage at debug level."""

    async def record_ai_conversation(
        self,
        model: str,
        input_tokens: int,
        output_tokens: int,
        cost: float,
    ) -> None:
        logger.debug(
            f"AI conversation usage: model={model} input_tokens={input_tokens} "
            f"output_tokens={output_tokens} cost={cost:.6f}"
        )
