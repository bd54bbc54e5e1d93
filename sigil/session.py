"""
Calibration session: the sigil verifier, the stage sequencer and the two
gates wired together.

    verifier.succeeded      → sequencer.mark_complete(VERIFICATION)
    upload.completed        → sequencer.mark_complete(UPLOAD)
    selection.completed     → sequencer.mark_complete(SELECTION)
    sequencer.stage_changed → activate / deactivate the verifier,
                              reset both gates,
                              voice cue for the new stage
    verifier RESETTING      → retry voice cue

The presentation layer talks to ``session.verifier`` (pointer events,
materialization), ``session.upload`` / ``session.selection`` (gate input)
and ``session.sequencer`` (jump and timeline navigation), and listens to
their signals plus ``voice_cue``.
"""

import logging
from typing import Optional

from PySide6.QtCore import QObject, Signal

from .config import SigilConfig
from .gates import SelectionGate, UploadGate
from .narration import RETRY_CUE, Narrator
from .scheduler import QtScheduler, Scheduler
from .sequencer import Stage, StageSequencer
from .verifier import PathTraceVerifier, VerifierState

logger = logging.getLogger(__name__)


class CalibrationSession(QObject):

    voice_cue = Signal(str)

    def __init__(self, config: Optional[SigilConfig] = None,
                 scheduler: Optional[Scheduler] = None,
                 parent: Optional[QObject] = None):
        super().__init__(parent)
        self.config = config or SigilConfig()
        self._scheduler = scheduler if scheduler is not None else QtScheduler(self)
        cfg = self.config

        self.verifier = PathTraceVerifier(
            cfg.build_graph(), cfg.tolerance, cfg.time_budget_ms,
            capture_radius=cfg.capture_radius,
            scheduler=self._scheduler,
            tick_ms=cfg.tick_ms,
            failure_hold_ms=cfg.failure_hold_ms,
            success_hold_ms=cfg.success_hold_ms,
            parent=self,
        )
        self.sequencer = StageSequencer(parent=self)
        self.upload = UploadGate(
            self._scheduler, step_ms=cfg.upload_step_ms,
            step_percent=cfg.upload_step_percent, hold_ms=cfg.upload_hold_ms,
            parent=self,
        )
        self.selection = SelectionGate(
            self._scheduler, required=cfg.selection_size,
            hold_ms=cfg.selection_hold_ms, parent=self,
        )
        self.narrator = Narrator()
        self._running = False

        self.verifier.succeeded.connect(self._on_verified)
        self.verifier.state_changed.connect(self._on_verifier_state)
        self.upload.completed.connect(lambda: self.sequencer.mark_complete(Stage.UPLOAD))
        self.selection.completed.connect(lambda: self.sequencer.mark_complete(Stage.SELECTION))
        self.sequencer.stage_changed.connect(self._on_stage_changed)

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        if self._running:
            return
        self._running = True
        logger.info("Calibration session started")
        self._enter(self.sequencer.current_stage)

    def close(self):
        self._running = False
        self.verifier.deactivate()
        self.upload.reset()
        self.selection.clear()
        logger.info("Calibration session closed")

    # --- wiring ---

    def _enter(self, stage: Stage):
        if stage == Stage.VERIFICATION:
            self.verifier.activate()
        else:
            self.verifier.deactivate()

        # Every gate starts fresh on entry and stops when left
        self.upload.reset()
        self.selection.clear()

        cue = self.narrator.cue_for_stage(stage)
        if cue:
            self.voice_cue.emit(cue)

    def _on_stage_changed(self, stage: Stage):
        if self._running:
            self._enter(stage)

    def _on_verified(self):
        self.sequencer.mark_complete(Stage.VERIFICATION)

    def _on_verifier_state(self, state: VerifierState):
        if state == VerifierState.RESETTING:
            self.voice_cue.emit(RETRY_CUE)
