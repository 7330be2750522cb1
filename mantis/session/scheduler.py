"""
Logical Scheduler - Virtual timers for presentation state machines.

The coordinator never sleeps or touches the wall clock. It registers
callbacks with a scheduler and a driver advances time: tests step it
by exact amounts, a real client advances it from its frame loop.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable
import heapq
import itertools


@dataclass(order=True)
class TimerHandle:
    """A scheduled callback. Ordered by due time, then by insertion."""
    due: int
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class LogicalScheduler:
    """
    Timer queue driven by an explicit clock.

    Usage:
        scheduler = LogicalScheduler()
        handle = scheduler.call_later(400, on_done)
        scheduler.advance(400)  # fires on_done
    """

    def __init__(self, start_ms: int = 0):
        self._now = start_ms
        self._queue: list[TimerHandle] = []
        self._seq = itertools.count()

    @property
    def now(self) -> int:
        return self._now

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(due=self._now + max(0, delay_ms), seq=next(self._seq), callback=callback)
        heapq.heappush(self._queue, handle)
        return handle

    def cancel(self, handle: TimerHandle | None):
        if handle is not None:
            handle.cancelled = True

    def pending(self) -> int:
        return sum(1 for h in self._queue if not h.cancelled)

    def advance(self, delta_ms: int):
        """
        Move the clock forward, firing every timer that falls due.

        Timers scheduled by a callback fire in the same call if they
        are due before the target time.
        """
        target = self._now + delta_ms
        while self._queue and self._queue[0].due <= target:
            handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = handle.due
            handle.callback()
        self._now = target

    def run_until_idle(self, limit_ms: int = 60_000):
        """Fire timers until none remain or `limit_ms` has elapsed."""
        deadline = self._now + limit_ms
        while self._queue and self._now < deadline:
            live = [h for h in self._queue if not h.cancelled]
            if not live:
                self._queue.clear()
                break
            next_due = min(h.due for h in live)
            self.advance(min(next_due, deadline) - self._now)
