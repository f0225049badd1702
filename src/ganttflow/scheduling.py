"""
Cooperative timers for the event-driven engine.

Everything runs on one asyncio event loop. Debounce and throttle timers are
``loop.call_later`` handles; callbacks that return a coroutine are spawned
as background tasks, which are tracked so callers (and tests) can wait for
in-flight mutations to settle.
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Callable, Optional, Set

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def monotonic_clock() -> float:
    return time.monotonic()


class BackgroundTasks:
    """Keeps references to spawned coroutines until they finish."""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def __len__(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until every spawned task, including ones spawned meanwhile, is done."""
        while self._tasks:
            results = await asyncio.gather(*list(self._tasks), return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error("Background task failed: %s", result)


class Timer:
    """
    Restartable one-shot timer.

    ``schedule()`` (re)arms the timer, cancelling a pending run, which gives
    debounce semantics. ``fire_now()`` runs the callback immediately if the
    timer is armed.

    Args:
        delay: Seconds until the callback runs.
        callback: Plain callable or coroutine function.
        background: Where coroutine results are spawned.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], Any],
        background: Optional[BackgroundTasks] = None,
    ):
        self.delay = delay
        self.callback = callback
        self.background = background or BackgroundTasks()
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def fire_now(self) -> Optional[asyncio.Task]:
        if self._handle is None:
            return None
        self.cancel()
        return self._run()

    def _fire(self) -> None:
        self._handle = None
        self._run()

    def _run(self) -> Optional[asyncio.Task]:
        result = self.callback()
        if inspect.isawaitable(result):
            return self.background.spawn(result)
        return None
