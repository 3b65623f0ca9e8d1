"""
nudge_engine/renderer/dynamic.py -- Self-updating leaves (countdown, counter).

Countdown timers and animated statistics change while nobody edits the
document, so they run their own small update loops on the scheduler rather
than going through the store.  A :class:`TickerRegistry` owns one ticker
per layer, hands the current value to the renderer, and stops tickers whose
layers are no longer rendered.

Usage::

    registry = TickerRegistry(scheduler, on_update=repaint)
    text = registry.countdown(layer).text
    registry.reconcile({"layer_a", "layer_b"})   # stop everything else
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional

from nudge_engine.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

COUNTDOWN_TICK_MS = 1000
COUNTER_TICK_MS = 16
COUNTER_DURATION_MS = 1000

# End time used when a countdown has none
DEFAULT_COUNTDOWN_SPAN = timedelta(hours=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_end_time(value: Optional[str], now: datetime) -> datetime:
    """Parse an ISO end time; a missing or unparsable one is an hour from *now*."""
    if not value:
        return now + DEFAULT_COUNTDOWN_SPAN
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparsable countdown end time %r", value)
        return now + DEFAULT_COUNTDOWN_SPAN
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_remaining(seconds: float, fmt: Optional[str] = "HH:MM:SS") -> str:
    """Format a remaining duration.

    ``MM:SS`` folds hours into minutes; ``auto`` drops the hours field when
    it is zero.  Durations at or below zero show all zeros.
    """
    fmt = fmt or "HH:MM:SS"
    total = max(0, int(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if fmt == "MM:SS" or (fmt == "auto" and hours == 0):
        return f"{hours * 60 + minutes:02d}:{secs:02d}"
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class CountdownTicker:
    """Recomputes the remaining time every second until the end time."""

    def __init__(
        self,
        scheduler: Scheduler,
        end_time: datetime,
        fmt: Optional[str] = None,
        urgency_threshold: Optional[float] = None,
        clock: Callable[[], datetime] = utc_now,
        on_tick: Optional[Callable[[], None]] = None,
    ):
        self._scheduler = scheduler
        self.end_time = end_time
        self.format = fmt
        self.urgency_threshold = urgency_threshold
        self._clock = clock
        self._on_tick = on_tick
        self._handle: Optional[TimerHandle] = None
        self.remaining = 0.0
        self._recompute()

    @property
    def running(self) -> bool:
        return self._handle is not None and self._handle.active

    @property
    def text(self) -> str:
        return format_remaining(self.remaining, self.format)

    @property
    def expired(self) -> bool:
        return self.remaining <= 0

    @property
    def urgent(self) -> bool:
        return bool(self.urgency_threshold) and self.remaining < self.urgency_threshold

    def start(self) -> None:
        if self.running or self.expired:
            return
        self._handle = self._scheduler.call_every(COUNTDOWN_TICK_MS, self.tick)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _recompute(self) -> None:
        self.remaining = max(0.0, (self.end_time - self._clock()).total_seconds())

    def tick(self) -> None:
        self._recompute()
        if self.expired:
            self.stop()
        if self._on_tick is not None:
            self._on_tick()


class StatisticCounter:
    """Counts from 0 up to the target over one second in 16 ms steps."""

    def __init__(
        self,
        scheduler: Scheduler,
        target: float,
        animate: bool = True,
        on_tick: Optional[Callable[[], None]] = None,
    ):
        self._scheduler = scheduler
        self.target = target
        self.animate = animate
        self._on_tick = on_tick
        self._handle: Optional[TimerHandle] = None
        self._current = 0.0
        self.value: float = 0 if animate and target > 0 else target
        self._step = target / (COUNTER_DURATION_MS / COUNTER_TICK_MS)

    @property
    def running(self) -> bool:
        return self._handle is not None and self._handle.active

    @property
    def done(self) -> bool:
        return self.value == self.target

    def start(self) -> None:
        if self.running or self.done:
            return
        self._handle = self._scheduler.call_every(COUNTER_TICK_MS, self.tick)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def tick(self) -> None:
        self._current += self._step
        if self._current >= self.target:
            self.value = self.target
            self.stop()
        else:
            self.value = math.floor(self._current)
        if self._on_tick is not None:
            self._on_tick()


class TickerRegistry:
    """One ticker per rendered layer, created on demand and reaped on reconcile.

    Parameters
    ----------
    scheduler : Scheduler
        Drives every ticker.
    clock : callable
        Wall clock for countdowns (UTC ``datetime``).
    on_update : callable, optional
        Called after any ticker changes its value, typically to repaint.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        clock: Callable[[], datetime] = utc_now,
        on_update: Optional[Callable[[], None]] = None,
    ):
        self._scheduler = scheduler
        self._clock = clock
        self._on_update = on_update
        self._countdowns: dict[str, tuple[tuple, CountdownTicker]] = {}
        self._counters: dict[str, tuple[tuple, StatisticCounter]] = {}

    def _changed(self) -> None:
        if self._on_update is not None:
            self._on_update()

    def countdown(self, layer) -> CountdownTicker:
        content = layer.content
        key = (content.end_time, content.format, content.urgency_threshold)
        existing = self._countdowns.get(layer.id)
        if existing is not None and existing[0] == key:
            return existing[1]
        if existing is not None:
            existing[1].stop()
        ticker = CountdownTicker(
            self._scheduler,
            parse_end_time(content.end_time, self._clock()),
            content.format,
            content.urgency_threshold,
            clock=self._clock,
            on_tick=self._changed,
        )
        ticker.start()
        self._countdowns[layer.id] = (key, ticker)
        return ticker

    def statistic(self, layer) -> StatisticCounter:
        content = layer.content
        target = content.value or 0
        animate = bool(content.animate_on_load)
        key = (target, animate)
        existing = self._counters.get(layer.id)
        if existing is not None and existing[0] == key:
            return existing[1]
        if existing is not None:
            existing[1].stop()
        counter = StatisticCounter(self._scheduler, target, animate, on_tick=self._changed)
        counter.start()
        self._counters[layer.id] = (key, counter)
        return counter

    @property
    def active_layer_ids(self) -> set[str]:
        return set(self._countdowns) | set(self._counters)

    def reconcile(self, layer_ids: Iterable[str]) -> None:
        """Stop and forget tickers for layers not in *layer_ids*."""
        keep = set(layer_ids)
        for table in (self._countdowns, self._counters):
            for layer_id in [lid for lid in table if lid not in keep]:
                table.pop(layer_id)[1].stop()
                logger.debug("Stopped ticker for removed layer %s", layer_id)

    def stop_all(self) -> None:
        self.reconcile(())
