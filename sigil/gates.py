"""
Gate stages that sit after the sigil in the onboarding sequence.

Both gates are deliberately simple: they own no verification logic, only
the pacing the presentation layer animates, and they report completion
through a ``completed`` signal that the session forwards to the sequencer.
"""

import logging
from typing import Hashable, List, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from .errors import ConfigurationError
from .scheduler import QtScheduler, ScheduledCall, Scheduler

logger = logging.getLogger(__name__)


class UploadGate(QObject):
    """
    Simulated upload: progress climbs by ``step_percent`` every
    ``step_ms`` until 100, then ``completed`` fires after ``hold_ms``.
    """

    progress_changed = Signal(int)
    completed = Signal()

    def __init__(self, scheduler: Optional[Scheduler] = None,
                 step_ms: int = 200, step_percent: int = 10, hold_ms: int = 1000,
                 parent: Optional[QObject] = None):
        super().__init__(parent)
        if step_ms <= 0 or not 0 < step_percent <= 100 or hold_ms < 0:
            raise ConfigurationError(
                f"bad upload pacing: step_ms={step_ms} step_percent={step_percent} "
                f"hold_ms={hold_ms}")
        self._scheduler = scheduler if scheduler is not None else QtScheduler(self)
        self.step_ms = step_ms
        self.step_percent = step_percent
        self.hold_ms = hold_ms
        self.file_name: Optional[str] = None
        self.progress = 0
        self.uploading = False
        self.done = False
        self._call: Optional[ScheduledCall] = None

    def start(self, file_name: str) -> bool:
        if self.uploading or self.done:
            return False
        logger.info(f"Uploading {file_name}")
        self.file_name = file_name
        self.progress = 0
        self.uploading = True
        self.progress_changed.emit(0)
        self._call = self._scheduler.call_later(self.step_ms, self._step)
        return True

    def _step(self):
        self.progress = min(100, self.progress + self.step_percent)
        self.progress_changed.emit(self.progress)
        if self.progress < 100:
            self._call = self._scheduler.call_later(self.step_ms, self._step)
        else:
            self._call = self._scheduler.call_later(self.hold_ms, self._finish)

    def _finish(self):
        self._call = None
        self.uploading = False
        self.done = True
        logger.info(f"Upload of {self.file_name} complete")
        self.completed.emit()

    def reset(self):
        if self._call is not None:
            self._call.cancel()
            self._call = None
        self.file_name = None
        self.progress = 0
        self.uploading = False
        self.done = False


class SelectionGate(QObject):
    """
    Pick ``required`` distinct items (the key constellation). Repeats and
    picks past the limit are ignored; ``completed`` fires ``hold_ms``
    after the last pick.
    """

    selection_changed = Signal(int)  # picks remaining
    completed = Signal()

    def __init__(self, scheduler: Optional[Scheduler] = None,
                 required: int = 6, hold_ms: int = 1500,
                 parent: Optional[QObject] = None):
        super().__init__(parent)
        if required <= 0 or hold_ms < 0:
            raise ConfigurationError(
                f"bad selection settings: required={required} hold_ms={hold_ms}")
        self._scheduler = scheduler if scheduler is not None else QtScheduler(self)
        self.required = required
        self.hold_ms = hold_ms
        self._selected: List[Hashable] = []
        self._call: Optional[ScheduledCall] = None

    @property
    def selected(self) -> Tuple[Hashable, ...]:
        return tuple(self._selected)

    @property
    def remaining(self) -> int:
        return self.required - len(self._selected)

    def select(self, item: Hashable) -> bool:
        if self.remaining == 0 or item in self._selected:
            return False
        self._selected.append(item)
        self.selection_changed.emit(self.remaining)
        if self.remaining == 0:
            logger.info(f"Selection of {self.required} items complete")
            self._call = self._scheduler.call_later(self.hold_ms, self._finish)
        return True

    def _finish(self):
        self._call = None
        self.completed.emit()

    def clear(self):
        if self._call is not None:
            self._call.cancel()
            self._call = None
        if self._selected:
            self._selected = []
            self.selection_changed.emit(self.remaining)
