from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, Tuple


class Debouncer:
    """Coalesce bursts of calls into one delayed callback.

    Each `call()` restarts the timer with the latest arguments; the callback
    runs once `delay` seconds pass without another call. Must be used from a
    running event loop.
    """

    def __init__(self, delay: float, callback: Callable[..., Awaitable[Any]]):
        self.delay = delay
        self.callback = callback
        self._task: Optional[asyncio.Task] = None
        self._args: Tuple[Any, ...] = ()

    @property
    def pending(self) -> bool:
        return self._task is not None

    def call(self, *args: Any) -> None:
        self.cancel()
        self._args = args
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        # Past the timer: cancel() no longer reaches the callback.
        self._task = None
        await self.callback(*self._args)

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def flush(self) -> bool:
        """Run a pending callback now; False when nothing was pending."""

        if self._task is None:
            return False
        self.cancel()
        await self.callback(*self._args)
        return True

    async def wait(self) -> None:
        task = self._task
        if task is not None:
            await asyncio.wait({task})
