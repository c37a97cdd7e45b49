"""Periodic and one-shot timers with a single cancellation point"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Set, Union

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Union[None, Awaitable[Any]]]
Guard = Callable[[], bool]


class TimerRegistry:
    """Tracks every timer task so they can all be cancelled at once

    A timer whose guard returns False when it fires does nothing for that
    tick. Callback errors are logged and never propagate.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    @property
    def active(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    def every(
        self,
        interval: float,
        callback: TimerCallback,
        guard: Optional[Guard] = None,
        name: str = "interval",
    ) -> asyncio.Task:
        """Run ``callback`` every ``interval`` seconds until cancelled"""
        return self._spawn(self._repeat(interval, callback, guard, name), name)

    def later(
        self,
        delay: float,
        callback: TimerCallback,
        guard: Optional[Guard] = None,
        name: str = "timeout",
    ) -> asyncio.Task:
        """Run ``callback`` once after ``delay`` seconds"""
        return self._spawn(self._once(delay, callback, guard, name), name)

    def cancel_all(self) -> int:
        """Cancel every pending timer; returns how many were still pending"""
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        self._tasks.clear()
        if pending:
            logger.debug(f"Cancelled {len(pending)} timer(s)")
        return len(pending)

    def _spawn(self, coro, name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=f"timer:{name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _repeat(self, interval: float, callback: TimerCallback, guard: Optional[Guard], name: str) -> None:
        while True:
            await asyncio.sleep(interval)
            await self._fire(callback, guard, name)

    async def _once(self, delay: float, callback: TimerCallback, guard: Optional[Guard], name: str) -> None:
        await asyncio.sleep(delay)
        await self._fire(callback, guard, name)

    async def _fire(self, callback: TimerCallback, guard: Optional[Guard], name: str) -> None:
        if guard is not None and not guard():
            logger.debug(f"Timer {name} skipped: guard is off")
            return
        try:
            result = callback()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Timer {name} failed: {e}")
