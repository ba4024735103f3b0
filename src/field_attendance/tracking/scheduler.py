from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class TickScheduler:
    """One timer driving one tick coroutine.

    Ticks run strictly one after another inside the scheduler task. ``poke()``
    wakes the timer early (used when the device comes back to the foreground);
    it never starts a second, independent tick.
    """

    def __init__(self, tick: Callable[[], Awaitable[None]], *, period: float, name: str = "tick-scheduler"):
        if period <= 0:
            raise ValueError("period must be positive")
        self._tick = tick
        self._period = float(period)
        self._name = name
        self._wake = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self._name)

    def poke(self) -> None:
        self._wake.set()

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            try:
                await self._tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("%s: tick failed", self._name)

            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self._period)
            except asyncio.TimeoutError:
                pass
            self._wake.clear()
