"""
Deferred-task scheduling for auto-expiring notices.

The executor only needs ``schedule_after(delay, task)``: run ``task`` once,
later, and never let its failure reach the caller. `AsyncioTaskScheduler`
does that with one sleeping task per job; tests substitute a manual clock.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Protocol, Set

from modsentry.util.logger import get_logger

logger = get_logger("notice_scheduler")

DeferredTask = Callable[[], Awaitable[None]]


class DeferredTaskScheduler(Protocol):
    def schedule_after(self, delay_seconds: float, task: DeferredTask) -> None: ...


class AsyncioTaskScheduler:
    """
    Fire-and-forget scheduler built on the running event loop.

    Attributes:
        tasks (set): Jobs that have not finished yet; kept so they are not
            garbage collected mid-sleep and so shutdown can cancel them.
    """

    def __init__(self) -> None:
        self.tasks: Set[asyncio.Task[None]] = set()

    def schedule_after(self, delay_seconds: float, task: DeferredTask) -> None:
        """Run ``task`` after ``delay_seconds``; must be called inside the event loop."""
        loop = asyncio.get_running_loop()
        job = loop.create_task(self.run_later(delay_seconds, task), name="modsentry-deferred-task")
        self.tasks.add(job)
        job.add_done_callback(self.tasks.discard)

    async def run_later(self, delay_seconds: float, task: DeferredTask) -> None:
        try:
            await asyncio.sleep(max(0.0, delay_seconds))
            await task()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.debug("[SCHEDULER] Deferred task failed: %s", exc)

    @property
    def pending_count(self) -> int:
        return len(self.tasks)

    async def shutdown(self) -> None:
        """Cancel every pending job and wait for them to unwind."""
        pending = list(self.tasks)
        for job in pending:
            job.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self.tasks.clear()
        logger.info("[SCHEDULER] Cancelled %d pending deferred task(s)", len(pending))
