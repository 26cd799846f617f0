"""Test doubles: clocks, a manual scheduler, scripted providers and recorders."""

import inspect
from datetime import date
from typing import Any, Awaitable, Callable, List, Optional

from resilient_ai.models.generation import GenerationRequest, GenerationResponse, StreamHandle
from resilient_ai.providers.base import ProviderAdapter


class FakeClock:
    """Manually advanced clock usable wherever a ``() -> float`` is expected."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeToday:
    """Date source that can be moved to another day."""

    def __init__(self, today: date = date(2025, 1, 15)):
        self.today = today

    def __call__(self) -> date:
        return self.today


class ManualScheduler:
    """Scheduler that only runs jobs when told to."""

    def __init__(self):
        self.jobs: List[Any] = []
        self.shutdown_hooks: List[Callable] = []
        self.started = False
        self.stopped = False

    def schedule(self, interval: float, fn: Callable) -> "ManualJob":
        job = ManualJob(interval, fn)
        self.jobs.append(job)
        return job

    def on_shutdown(self, fn: Callable) -> None:
        self.shutdown_hooks.append(fn)

    def start(self) -> None:
        self.started = True

    async def tick(self) -> None:
        """Run every live periodic job once."""
        for job in self.jobs:
            if not job.cancelled:
                await _maybe_await(job.fn())

    async def shutdown(self) -> None:
        self.stopped = True
        for hook in self.shutdown_hooks:
            await _maybe_await(hook())


class ManualJob:
    def __init__(self, interval: float, fn: Callable):
        self.interval = interval
        self.fn = fn
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


async def _maybe_await(result):
    if inspect.isawaitable(result):
        await result


class SleepRecorder:
    """Replacement for ``asyncio.sleep`` that records delays and returns at once."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeProvider(ProviderAdapter):
    """
    Provider with scripted outcomes.

    Each call pops the next outcome: an exception instance is raised, a string
    becomes the response text. Once the script is empty ``default_text`` is
    returned. ``before_call`` is awaited at the start of every call.
    """

    def __init__(
        self,
        name: str,
        outcomes: Optional[List[Any]] = None,
        default_text: str = "ok",
        usage: Optional[dict] = None,
        chunks: Optional[List[str]] = None,
        before_call: Optional[Callable[[GenerationRequest], Awaitable[None]]] = None,
    ):
        self.name = name
        self.outcomes = list(outcomes or [])
        self.default_text = default_text
        self.usage = usage if usage is not None else {
            "prompt_tokens": 100, "completion_tokens": 50, "total_tokens": 150,
        }
        self.chunks = chunks or ["Hello", ", ", "world"]
        self.before_call = before_call
        self.requests: List[GenerationRequest] = []
        self.closed = False

    @property
    def call_count(self) -> int:
        return len(self.requests)

    async def _next(self, request: GenerationRequest) -> str:
        self.requests.append(request)
        if self.before_call is not None:
            await self.before_call(request)
        outcome = self.outcomes.pop(0) if self.outcomes else self.default_text
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        text = await self._next(request)
        return GenerationResponse(
            text=text,
            model=request.model,
            usage=dict(self.usage),
            provider=self.name,
            finish_reason="stop",
        )

    async def stream(self, request: GenerationRequest) -> StreamHandle:
        await self._next(request)
        chunks = list(self.chunks)

        async def gen():
            for chunk in chunks:
                yield chunk

        return StreamHandle(gen(), model=request.model, provider=self.name)

    async def aclose(self) -> None:
        self.closed = True


class RecordingUsageRecorder:
    """Usage recorder that keeps every call; optionally fails."""

    def __init__(self, fail: bool = False):
        self.calls: List[dict] = []
        self.fail = fail

    async def record_ai_conversation(self, model: str, input_tokens: int,
                                     output_tokens: int, cost: float) -> None:
        self.calls.append({
            "model": model,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "cost": cost,
        })
        if self.fail:
            raise RuntimeError("usage store unavailable")
