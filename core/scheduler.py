"""Periodic background recomputation on the running event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from config.settings import DEFAULT_BACKGROUND_INTERVAL_SECONDS

__all__ = ["BackgroundScheduler"]

logger = logging.getLogger(__name__)


class BackgroundScheduler:
    """Run ``job`` every ``interval`` seconds without overlapping passes.

    Each tick launches the job as its own task so a slow pass never delays
    the tick cadence; a tick that arrives while a pass is still in flight is
    skipped.
    """

    def __init__(
        self,
        job: Callable[[], Awaitable[object]],
        interval: float = DEFAULT_BACKGROUND_INTERVAL_SECONDS,
        *,
        name: str = "analytics-background",
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._job = job
        self.interval = float(interval)
        self.name = name
        self._loop_task: Optional[asyncio.Task[None]] = None
        self._pass_task: Optional[asyncio.Task[bool]] = None
        self._in_flight = False
        self.completed_passes = 0
        self.skipped_ticks = 0

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def start(self) -> None:
        if self.running:
            return
        logger.info("Starting %s every %.0fs", self.name, self.interval)
        self._loop_task = asyncio.get_running_loop().create_task(self._loop(), name=self.name)

    async def stop(self) -> None:
        tasks = [t for t in (self._loop_task, self._pass_task) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._loop_task = None
        self._pass_task = None
        if tasks:
            logger.info("Stopped %s", self.name)

    async def run_once(self) -> bool:
        """Run one pass now; returns ``False`` if a pass was already running."""

        if self._in_flight:
            self.skipped_ticks += 1
            logger.info("%s pass still running; skipping tick", self.name)
            return False

        self._in_flight = True
        try:
            await self._job()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s pass failed", self.name)
            return False
        finally:
            self._in_flight = False
        self.completed_passes += 1
        return True

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            pending = self._pass_task is not None and not self._pass_task.done()
            if self._in_flight or pending:
                self.skipped_ticks += 1
                logger.info("%s pass still running; skipping tick", self.name)
                continue
            self._pass_task = asyncio.get_running_loop().create_task(self.run_once())
