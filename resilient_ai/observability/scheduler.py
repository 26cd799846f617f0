"""
Periodic task scheduling for background flushes.

Components register work with a ``Scheduler`` instead of starting their own
event-loop tasks, so tests can drive time by hand.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Union

logger = logging.getLogger(__name__)

Job = Callable[[], Union[None, Awaitable[None]]]


class Scheduler(Protocol):
    """Protocol for registering periodic work and shutdown hooks."""

    def schedule(self, interval: float, fn: Job) -> Any:
        """Run ``fn`` every ``interval`` seconds; returns a cancellable handle."""
        ...

    def on_shutdown(self, fn: Job) -> None:
        """Run ``fn`` once when the scheduler shuts down."""
        ...


async def _run_job(fn: Job) -> None:
    result = fn()
    if inspect.isawaitable(result):
        await result


@dataclass
class ScheduledJob:
    interval: float
    fn: Job
    task: Optional[asyncio.Task] = None
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True
        if self.task is not None:
            self.task.cancel()


@dataclass
class AsyncioScheduler:
    """
    Scheduler backed by asyncio tasks.

    Jobs registered before an event loop is running are started by
    ``start()``; jobs registered afterwards start immediately. Failures in a
    job are logged and the job keeps running.
    """
    jobs: List[ScheduledJob] = field(default_factory=list)
    shutdown_hooks: List[Job] = field(default_factory=list)
    started: bool = False
    stopped: bool = False

    def schedule(self, interval: float, fn: Job) -> ScheduledJob:
        if interval <= 0:
            raise ValueError("interval must be positive")
        job = ScheduledJob(interval=interval, fn=fn)
        self.jobs.append(job)
        if self.started:
            self._start_job(job)
        return job

    def on_shutdown(self, fn: Job) -> None:
        self.shutdown_hooks.append(fn)

    def start(self) -> None:
        """Start all registered jobs on the running event loop."""
        if self.started or self.stopped:
            return
        self.started = True
        for job in self.jobs:
            self._start_job(job)

    def _start_job(self, job: ScheduledJob) -> None:
        if job.cancelled or job.task is not None:
            return
        job.task = asyncio.get_running_loop().create_task(self._loop(job))

    async def _loop(self, job: ScheduledJob) -> None:
        while not job.cancelled:
            await asyncio.sleep(job.interval)
            try:
                await _run_job(job.fn)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error in scheduled job: {e}")

    async def shutdown(self) -> None:
        """Cancel periodic jobs, then run shutdown hooks in registration order."""
        if self.stopped:
            return
        self.stopped = True

        for job in self.jobs:
            job.cancel()
        for job in self.jobs:
            if job.task is not None:
                try:
                    await job.task
                except asyncio.CancelledError:
                    pass

        for hook in self.shutdown_hooks:
            try:
                await _run_job(hook)
            except Exception as e:
                logger.error(f"Error in shutdown hook: {e}")
