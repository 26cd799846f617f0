"""Timeout guard for provider calls."""

import asyncio
import logging
from typing import Awaitable, Set, TypeVar

from .errors import AIError, ErrorKind

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Strong references to close tasks for late results until they finish
_closing: Set["asyncio.Future"] = set()


def _discard_late_result(task: "asyncio.Future") -> None:
    """Retrieve the outcome of an abandoned task and release a late handle."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug(
            "Discarded late failure after timeout",
            extra={"error_type": type(error).__name__}
        )
    else:
        close = getattr(task.result(), "aclose", None)
        if callable(close):
            closing = asyncio.ensure_future(close())
            _closing.add(closing)
            closing.add_done_callback(_finish_close)
        logger.debug("Discarded late result after timeout")


def _finish_close(closing: "asyncio.Future") -> None:
    _closing.discard(closing)
    if closing.cancelled():
        return
    error = closing.exception()
    if error is not None:
        logger.warning(
            "Failed to close late result after timeout",
            extra={"error_type": type(error).__name__}
        )


async def with_timeout(awaitable: Awaitable[T], seconds: float, label: str = "operation") -> T:
    """
    Await ``awaitable`` for at most ``seconds``.

    On expiry the underlying task is cancelled best-effort. If it resolves
    anyway, the result is dropped; results with an ``aclose`` coroutine
    (stream handles) are closed so their connection is released.

    Raises:
        AIError: kind TIMEOUT when the deadline passes first
    """
    task = asyncio.ensure_future(awaitable)
    try:
        done, _ = await asyncio.wait({task}, timeout=seconds)
    except asyncio.CancelledError:
        task.cancel()
        raise

    if task in done:
        return task.result()

    task.cancel()
    task.add_done_callback(_discard_late_result)
    logger.warning(
        f"{label} timed out after {seconds}s",
        extra={"operation": label, "timeout": seconds}
    )
    raise AIError(ErrorKind.TIMEOUT, f"{label} timed out after {seconds}s")
