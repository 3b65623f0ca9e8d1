"""
nudge_engine/scheduler.py -- Cancelable timers behind an injectable clock.

Everything time-based in the engine (history debounce, autosave polling
and debounce, countdown and counter tickers) goes through a
:class:`Scheduler` instead of creating timers directly.  The application
plugs in a Qt-backed scheduler; tests and the command line use
:class:`ManualScheduler`, a virtual clock that only moves when told to.

Usage::

    from nudge_engine.scheduler import Debouncer, ManualScheduler

    clock = ManualScheduler()
    debounce = Debouncer(clock, 300, record_snapshot)
    debounce.trigger()
    debounce.trigger()
    clock.advance(300)        # record_snapshot runs once
"""

from __future__ import annotations

import heapq
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TimerHandle:
    """A scheduled callback that can be cancelled before it fires."""

    def __init__(self, callback: Callable[[], None], interval_ms: Optional[int] = None):
        self.callback = callback
        self.interval_ms = interval_ms
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    def repeating(self) -> bool:
        return self.interval_ms is not None

    def cancel(self) -> None:
        self._active = False

    def _fire(self) -> None:
        if not self.repeating:
            self._active = False
        self.callback()


class Scheduler(ABC):
    """Source of time and timers for the engine."""

    @abstractmethod
    def now(self) -> float:
        """Current time in milliseconds."""

    @abstractmethod
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        """Run *callback* once after *delay_ms*."""

    @abstractmethod
    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> TimerHandle:
        """Run *callback* every *interval_ms* until the handle is cancelled."""


class ManualScheduler(Scheduler):
    """Virtual-clock scheduler; time only moves through :meth:`advance`."""

    def __init__(self, start_ms: float = 0):
        self._now = start_ms
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(callback)
        self._push(self._now + max(0, delay_ms), handle)
        return handle

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        handle = TimerHandle(callback, interval_ms)
        self._push(self._now + interval_ms, handle)
        return handle

    def _push(self, due: float, handle: TimerHandle) -> None:
        heapq.heappush(self._queue, (due, next(self._seq), handle))

    @property
    def pending(self) -> int:
        """Number of live timers still queued."""
        return sum(1 for _, _, handle in self._queue if handle.active)

    def advance(self, ms: float) -> None:
        """Move the clock forward by *ms*, firing due timers in order."""
        target = self._now + ms
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            if not handle.active:
                continue
            self._now = due
            handle._fire()
            if handle.repeating and handle.active:
                self._push(due + handle.interval_ms, handle)
        self._now = target

    def run_all(self, limit_ms: float = 60_000) -> None:
        """Advance until no one-shot timers remain (bounded by *limit_ms*)."""
        deadline = self._now + limit_ms
        while self._now < deadline:
            one_shots = [d for d, _, h in self._queue if h.active and not h.repeating]
            if not one_shots:
                return
            self.advance(min(one_shots) - self._now)


class Debouncer:
    """Trailing-edge debounce: run *callback* once the triggers stop.

    Every :meth:`trigger` restarts the delay, so a burst of triggers
    produces one call, *delay_ms* after the last of them.
    """

    def __init__(self, scheduler: Scheduler, delay_ms: int, callback: Callable[[], None]):
        self._scheduler = scheduler
        self.delay_ms = delay_ms
        self._callback = callback
        self._handle: Optional[TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None and self._handle.active

    def trigger(self) -> None:
        self.cancel()
        self._handle = self._scheduler.call_later(self.delay_ms, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> bool:
        """Run a pending callback now.  Returns True if one was pending."""
        if not self.pending:
            return False
        self.cancel()
        self._callback()
        return True

    def _fire(self) -> None:
        self._handle = None
        self._callback()
