"""Timer scheduling backends for the watchdog.

All watchdog transitions run as callbacks scheduled here. The asyncio backend
keeps them on the event loop thread of the hosting service; the virtual
backend replaces wall-clock time with an explicit ``advance`` so timelines can
be replayed deterministically.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from typing import Any, Callable, Coroutine, Optional, Protocol

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Capabilities the watchdog needs from its host environment."""

    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callback) -> TimerHandle: ...

    def call_repeating(self, interval: float, callback: Callback) -> TimerHandle: ...

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> None: ...


class AsyncioScheduler:
    """Schedule callbacks on an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._tasks: set[asyncio.Task[Any]] = set()

    def now(self) -> float:
        return self._loop.time()

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        return self._loop.call_later(max(0.0, delay), callback)

    def call_repeating(self, interval: float, callback: Callback) -> TimerHandle:
        handle = _RepeatingHandle(self, interval, callback)
        handle.arm()
        return handle

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task failed.", exc_info=exc)


class _RepeatingHandle:
    """Re-arms a one-shot timer after every firing until cancelled."""

    def __init__(self, scheduler: Scheduler, interval: float, callback: Callback) -> None:
        self._scheduler = scheduler
        self._interval = interval
        self._callback = callback
        self._handle: Optional[TimerHandle] = None
        self._cancelled = False

    def arm(self) -> None:
        if not self._cancelled:
            self._handle = self._scheduler.call_later(self._interval, self._fire)

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()
        # The callback may have cancelled us.
        self.arm()


class _VirtualTimer:
    __slots__ = ("deadline", "seq", "callback", "cancelled")

    def __init__(self, deadline: float, seq: int, callback: Callback) -> None:
        self.deadline = deadline
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __lt__(self, other: "_VirtualTimer") -> bool:
        return (self.deadline, self.seq) < (other.deadline, other.seq)


class VirtualScheduler:
    """Deterministic scheduler driven by an explicit virtual clock."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[_VirtualTimer] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        timer = _VirtualTimer(self._now + max(0.0, delay), next(self._counter), callback)
        heapq.heappush(self._queue, timer)
        return timer

    def call_repeating(self, interval: float, callback: Callback) -> TimerHandle:
        handle = _RepeatingHandle(self, interval, callback)
        handle.arm()
        return handle

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        # Virtual time has no running loop; finish the coroutine in place.
        asyncio.run(coro)

    def pending(self) -> int:
        """Number of armed, uncancelled timers."""
        return sum(1 for timer in self._queue if not timer.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every timer that falls due."""
        self.advance_to(self._now + seconds)

    def advance_to(self, target: float) -> None:
        if target < self._now:
            raise ValueError("Virtual time cannot move backwards.")
        while self._queue and self._queue[0].deadline <= target:
            timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = timer.deadline
            timer.callback()
        self._now = target
