"""
Periodic housekeeping.

A PeriodicSweeper schedules cleanup callbacks (expired sessions, idle rate
limit entries) as APScheduler interval jobs for the lifetime of the bot. It is
an async context manager so the bot can hand it to its AsyncExitStack:
entering starts the scheduler, exiting shuts it down.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler

logger = logging.getLogger(__name__)

SweepCallback = Callable[[], Any | Awaitable[Any]]


class PeriodicSweeper:
    """
    Runs named cleanup jobs on their own intervals until shut down.

    A callback may be a plain function or a coroutine function. A failing
    callback is logged and does not stop the other jobs or later runs.
    """

    def __init__(self, timezone: str = "UTC"):
        self.scheduler = AsyncIOScheduler(timezone=timezone)
        self._callbacks: dict[str, SweepCallback] = {}

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def add(self, name: str, interval: float, callback: SweepCallback) -> None:
        """Register ``callback`` to run every ``interval`` seconds under job id ``name``."""
        self._callbacks[name] = callback
        self.scheduler.add_job(
            self._run_job,
            "interval",
            seconds=interval,
            args=[name, callback],
            id=name,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        logger.debug(f"Sweep job '{name}' registered (every {interval:g}s)")

    async def _run_job(self, name: str, callback: SweepCallback) -> None:
        try:
            result = callback()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f"Sweep job '{name}' failed")

    async def run_once(self) -> None:
        """Run every registered callback now, in registration order."""
        for name, callback in self._callbacks.items():
            await self._run_job(name, callback)

    def start(self) -> None:
        if self.running:
            return
        self.scheduler.start()
        logger.info(f"Sweeper started ({', '.join(self._callbacks) or 'no jobs'})")

    def stop(self) -> None:
        if not self.running:
            return
        self.scheduler.shutdown(wait=False)
        logger.info("Sweeper stopped")

    async def __aenter__(self) -> PeriodicSweeper:
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.stop()
        return False
