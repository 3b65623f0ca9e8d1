"""
nudge_studio/services/qt_scheduler.py -- Engine scheduler backed by QTimer.

Lets the history debounce, autosave and dynamic preview tickers run on the
Qt event loop.  Callbacks fire on the thread that owns the scheduler.
"""

from __future__ import annotations

from typing import Callable, Optional

from PySide6.QtCore import QElapsedTimer, QObject, QTimer

from nudge_engine.scheduler import Scheduler, TimerHandle


class QtTimerHandle(TimerHandle):
    """TimerHandle whose cancel() also stops the underlying QTimer."""

    def __init__(self, callback: Callable[[], None], timer: QTimer, interval_ms: Optional[int] = None):
        super().__init__(callback, interval_ms)
        self._timer = timer

    def cancel(self) -> None:
        super().cancel()
        if self._timer is not None:
            self._timer.stop()
            self._timer.deleteLater()
            self._timer = None

    def _fire(self) -> None:
        if not self.active:
            return
        super()._fire()
        if not self.repeating:
            self.cancel()


class QtScheduler(Scheduler):
    """Scheduler driven by the Qt event loop.

    Parameters
    ----------
    parent : QObject, optional
        Parent for the timers created here, so they die with it.
    """

    def __init__(self, parent: QObject | None = None):
        self._parent = parent
        self._elapsed = QElapsedTimer()
        self._elapsed.start()

    def now(self) -> float:
        return float(self._elapsed.elapsed())

    def _timer(self, interval_ms: int, single_shot: bool) -> QTimer:
        timer = QTimer(self._parent)
        timer.setSingleShot(single_shot)
        timer.setInterval(max(0, int(interval_ms)))
        return timer

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        timer = self._timer(delay_ms, single_shot=True)
        handle = QtTimerHandle(callback, timer)
        timer.timeout.connect(handle._fire)
        timer.start()
        return handle

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        timer = self._timer(interval_ms, single_shot=False)
        handle = QtTimerHandle(callback, timer, interval_ms)
        timer.timeout.connect(handle._fire)
        timer.start()
        return handle
