"""
Linear onboarding sequencer.

    VERIFICATION ──► UPLOAD ──► SELECTION ──► FINISHED

Completion is monotonic: a stage never leaves ``completed`` once added.
Two ways to move the cursor besides completing the current stage:

  jump_to(stage)       trusted external jump (e.g. from a map of the
                       onboarding); always lands, back-fills every
                       preceding stage as completed
  navigate_to(stage)   timeline rewind; only to completed stages, the
                       first stage, or the stage right after a completed
                       one; never creates completion state
"""

import logging
from enum import Enum
from typing import Dict, Iterable, Optional, Sequence, Set, Tuple

from PySide6.QtCore import QObject, Signal

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    VERIFICATION = "verification"
    UPLOAD = "upload"          # gate A: upload simulation
    SELECTION = "selection"    # gate B: set selection
    FINISHED = "finished"

    def __str__(self):
        return self.value


DEFAULT_ORDER: Tuple[Stage, ...] = (Stage.VERIFICATION, Stage.UPLOAD, Stage.SELECTION)

# Keyed by the furthest completed stage; None means nothing completed.
# Later stages are deliberately worth more.
PROGRESS_TABLE: Dict[Optional[Stage], int] = {
    None: 0,
    Stage.VERIFICATION: 15,
    Stage.UPLOAD: 50,
    Stage.SELECTION: 100,
}


class StageSequencer(QObject):
    """
    Tracks the current stage and the set of completed stages.

    Signals:
        stage_changed(Stage)
        progress_changed(int)  percent, non-decreasing
    """

    stage_changed = Signal(object)
    progress_changed = Signal(int)

    def __init__(self, stages: Sequence[Stage] = DEFAULT_ORDER,
                 progress_table: Optional[Dict[Optional[Stage], int]] = None,
                 parent: Optional[QObject] = None):
        super().__init__(parent)
        stages = tuple(stages)
        if not stages:
            raise ConfigurationError("sequencer needs at least one stage")
        if Stage.FINISHED in stages:
            raise ConfigurationError("FINISHED is implicit and cannot be listed")
        if len(set(stages)) != len(stages):
            raise ConfigurationError("stages must be unique")

        table = dict(PROGRESS_TABLE if progress_table is None else progress_table)
        missing = [s for s in (None,) + stages if s not in table]
        if missing:
            raise ConfigurationError(f"progress table has no entry for {missing}")
        values = [table[s] for s in (None,) + stages]
        if any(b < a for a, b in zip(values, values[1:])):
            raise ConfigurationError("progress table must not decrease along the sequence")

        self._stages = stages
        self._table = table
        self._current = stages[0]
        self._completed: Set[Stage] = set()

    # --- read side ---

    @property
    def stages(self) -> Tuple[Stage, ...]:
        return self._stages

    @property
    def current_stage(self) -> Stage:
        return self._current

    @property
    def completed_stages(self) -> frozenset:
        return frozenset(self._completed)

    @property
    def finished(self) -> bool:
        return self._current == Stage.FINISHED

    def is_complete(self, stage: Stage) -> bool:
        return stage in self._completed

    def progress_percent(self) -> int:
        furthest = None
        for stage in self._stages:
            if stage in self._completed:
                furthest = stage
        return self._table[furthest]

    def can_navigate_to(self, stage: Stage) -> bool:
        if stage not in self._stages:
            return False
        if stage in self._completed or stage == self._stages[0]:
            return True
        previous = self._stages[self._stages.index(stage) - 1]
        return previous in self._completed

    # --- internals ---

    def _next_after(self, stage: Stage) -> Stage:
        i = self._stages.index(stage)
        return self._stages[i + 1] if i + 1 < len(self._stages) else Stage.FINISHED

    def _move_to(self, stage: Stage):
        if stage == self._current:
            return
        logger.info(f"Stage {self._current} -> {stage}")
        self._current = stage
        self.stage_changed.emit(stage)

    def _complete(self, stages: Iterable[Stage]):
        before = self.progress_percent()
        self._completed.update(stages)
        after = self.progress_percent()
        if after != before:
            self.progress_changed.emit(after)

    # --- inbound ---

    def mark_complete(self, stage: Stage):
        if stage not in self._stages:
            logger.warning(f"Ignoring completion of unknown stage {stage!r}")
            return
        if stage not in self._completed:
            logger.info(f"Stage {stage} complete")
            self._complete([stage])
        if stage == self._current:
            self._move_to(self._next_after(stage))

    def jump_to(self, stage: Stage):
        if stage not in self._stages:
            logger.debug(f"Ignoring jump to {stage!r}: not in sequence")
            return
        if stage == self._current:
            return
        preceding = self._stages[:self._stages.index(stage)]
        self._complete(preceding)
        self._move_to(stage)

    def navigate_to(self, stage: Stage) -> bool:
        if not self.can_navigate_to(stage):
            logger.debug(f"Ignoring navigation to {stage!r}")
            return False
        self._move_to(stage)
        return True
