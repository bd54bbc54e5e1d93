"""
Cancellable scheduled callbacks.

Everything time-based in the core (countdown ticks, failure and success
holds, gate simulations) goes through a scheduler, never through bare
QTimer.singleShot, so that every pending callback has a handle that can be
cancelled when an attempt is discarded.

Two implementations:

    QtScheduler       QTimer-backed, runs on the Qt event loop
    VirtualScheduler  manual clock, advanced explicitly (tests, CLI replay)
"""

import heapq
import logging
from typing import Callable, List, Optional, Tuple

from PySide6.QtCore import QElapsedTimer, QObject, QTimer

logger = logging.getLogger(__name__)


class ScheduledCall:
    """Handle for one pending callback."""

    def __init__(self, callback: Callable[[], None], due_ms: int):
        self._callback = callback
        self.due_ms = due_ms
        self._cancelled = False
        self._fired = False

    @property
    def active(self) -> bool:
        return not (self._cancelled or self._fired)

    def cancel(self):
        self._cancelled = True

    def _fire(self):
        if not self.active:
            return
        self._fired = True
        self._callback()


class Scheduler:
    """Interface shared by both schedulers."""

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledCall:
        raise NotImplementedError

    def now_ms(self) -> int:
        raise NotImplementedError


class _QtCall(ScheduledCall):
    def __init__(self, callback, due_ms, timer: QTimer):
        super().__init__(callback, due_ms)
        self._timer = timer

    def cancel(self):
        super().cancel()
        self._timer.stop()


class QtScheduler(QObject, Scheduler):
    """
    Single-shot QTimers parented to this object.

    Live timers are kept in ``_keep`` so Python does not collect them
    before they fire; fired and cancelled ones are pruned on each call.
    """

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._keep: List[Tuple[QTimer, ScheduledCall]] = []
        self._elapsed = QElapsedTimer()
        self._elapsed.start()

    def now_ms(self) -> int:
        return int(self._elapsed.elapsed())

    def _prune(self):
        live = []
        for timer, call in self._keep:
            if call.active:
                live.append((timer, call))
            else:
                timer.deleteLater()
        if len(live) != len(self._keep):
            logger.debug(f"Pruned {len(self._keep) - len(live)} finished timer(s)")
        self._keep = live

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledCall:
        self._prune()
        delay_ms = max(0, int(delay_ms))
        timer = QTimer(self)
        timer.setSingleShot(True)
        call = _QtCall(callback, self.now_ms() + delay_ms, timer)
        timer.timeout.connect(call._fire)
        timer.start(delay_ms)
        self._keep.append((timer, call))
        return call


class VirtualScheduler(Scheduler):
    """
    Scheduler on a manual millisecond clock.

    Nothing fires until ``advance`` is called; callbacks run in due order
    (ties in scheduling order) with the clock set to their due time, and
    callbacks scheduled while advancing fire in the same call if they fall
    inside the window.
    """

    def __init__(self):
        self._now = 0
        self._seq = 0
        self._queue: List[Tuple[int, int, ScheduledCall]] = []

    def now_ms(self) -> int:
        return self._now

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(callback, self._now + max(0, int(delay_ms)))
        heapq.heappush(self._queue, (call.due_ms, self._seq, call))
        self._seq += 1
        return call

    @property
    def pending(self) -> int:
        return sum(1 for _, _, c in self._queue if c.active)

    def advance(self, ms: int):
        target = self._now + max(0, int(ms))
        while self._queue and self._queue[0][0] <= target:
            due, _, call = heapq.heappop(self._queue)
            if not call.active:
                continue
            self._now = due
            call._fire()
        self._now = target

    def run_until_idle(self, limit_ms: int = 600_000):
        """Advance until nothing is pending, or *limit_ms* has elapsed."""
        deadline = self._now + limit_ms
        while True:
            live = [entry for entry in self._queue if entry[2].active]
            if not live:
                return
            due = min(entry[0] for entry in live)
            if due > deadline:
                self._now = deadline
                return
            self.advance(due - self._now)
