"""
Sigil Path-Trace Verifier
=========================
Classifies one continuous pointer gesture against an AnchorGraph under a
spatial tolerance and a time budget, and drives the retry cycle.

States:

    IDLE ──activate()──► MATERIALIZING ──notify_materialization_complete()──►
    AWAITING_START ──pointer down on entry──► TRACING ──┬──► SUCCESS ──hold──► IDLE
                                                        └──► FAILED ──hold──►
    RESETTING ──► MATERIALIZING (fresh attempt)

    deactivate() from anywhere ──► IDLE

Rules while TRACING:
  - every move is measured against edges[cursor_index] (clamped
    point-to-segment distance); beyond the tolerance is a path deviation
  - a move within the capture radius of that edge's end captures it and
    advances the cursor; capturing the last edge only arms the release
  - release succeeds iff every edge is captured and the release point is
    within the capture radius of the exit anchor
  - leaving the surface is a path deviation

The countdown runs in AWAITING_START and TRACING. Cosmetic holds after
failure and success are scheduled callbacks; every one is cancelled when
the attempt is discarded and is also bound to the attempt generation.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, List, Optional, Set

from PySide6.QtCore import QObject, Signal

from .errors import ConfigurationError, FailureReason, TraceFailure
from .geometry import AnchorGraph, as_point, distance
from .scheduler import QtScheduler, ScheduledCall, Scheduler

logger = logging.getLogger(__name__)

DEFAULT_TICK_MS = 1000
DEFAULT_FAILURE_HOLD_MS = 2500
DEFAULT_SUCCESS_HOLD_MS = 2500


class VerifierState(str, Enum):
    IDLE = "idle"
    MATERIALIZING = "materializing"
    AWAITING_START = "awaiting-start"
    TRACING = "tracing"
    SUCCESS = "success"
    FAILED = "failed"
    RESETTING = "resetting"

    def __str__(self):
        return self.value


# States in which the countdown is running
_COUNTING = (VerifierState.AWAITING_START, VerifierState.TRACING)


def _positive(value) -> bool:
    return value is not None and math.isfinite(value) and value > 0


@dataclass
class TraceAttempt:
    """Mutable per-attempt state. Owned by the verifier, never handed out."""
    generation: int
    remaining_ms: int
    cursor_index: int = 0
    awaiting_release: bool = False
    completed_edges: Set[int] = field(default_factory=set)


@dataclass(frozen=True)
class TraceSnapshot:
    """Read-only view of the verifier for the presentation layer."""
    state: VerifierState
    edge_count: int
    cursor_index: Optional[int]       # None when awaiting release or idle
    awaiting_release: bool
    completed_edges: FrozenSet[int]
    remaining_ms: int
    retry_count: int


class PathTraceVerifier(QObject):
    """
    Timed path-tracing verification engine.

    Inbound: activate, deactivate, notify_materialization_complete and the
    on_pointer_* handlers. Calls made in a state that does not accept them
    are ignored and return False.

    Outbound signals:
        state_changed(VerifierState)
        failed(FailureReason)
        succeeded()
        tick(int)  remaining milliseconds
    """

    state_changed = Signal(object)
    failed = Signal(object)
    succeeded = Signal()
    tick = Signal(int)

    def __init__(self, graph: AnchorGraph, tolerance: float, time_budget_ms: int,
                 capture_radius: Optional[float] = None,
                 scheduler: Optional[Scheduler] = None,
                 tick_ms: int = DEFAULT_TICK_MS,
                 failure_hold_ms: int = DEFAULT_FAILURE_HOLD_MS,
                 success_hold_ms: int = DEFAULT_SUCCESS_HOLD_MS,
                 parent: Optional[QObject] = None):
        super().__init__(parent)
        if not isinstance(graph, AnchorGraph):
            raise ConfigurationError(f"expected an AnchorGraph, got {type(graph).__name__}")
        if not _positive(tolerance):
            raise ConfigurationError(f"tolerance must be positive, got {tolerance}")
        if not _positive(time_budget_ms) or int(time_budget_ms) <= 0:
            raise ConfigurationError(
                f"time budget must be at least 1 ms, got {time_budget_ms}")
        if capture_radius is None:
            capture_radius = tolerance
        if not _positive(capture_radius) or capture_radius > tolerance:
            raise ConfigurationError(
                f"capture radius must be in (0, {tolerance}], got {capture_radius}")
        if tick_ms <= 0:
            raise ConfigurationError(f"tick interval must be positive, got {tick_ms}")
        if failure_hold_ms < 0 or success_hold_ms < 0:
            raise ConfigurationError("hold durations cannot be negative")

        self.graph = graph
        self.tolerance = float(tolerance)
        self.capture_radius = float(capture_radius)
        self.time_budget_ms = int(time_budget_ms)
        self.tick_ms = int(tick_ms)
        self.failure_hold_ms = int(failure_hold_ms)
        self.success_hold_ms = int(success_hold_ms)
        self._scheduler = scheduler if scheduler is not None else QtScheduler(self)

        self._state = VerifierState.IDLE
        self._attempt: Optional[TraceAttempt] = None
        self._generation = 0
        self._retry_count = 0
        self._last_failure: Optional[TraceFailure] = None
        self._pending: List[ScheduledCall] = []

    # --- read side ---

    @property
    def state(self) -> VerifierState:
        return self._state

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def last_failure(self) -> Optional[TraceFailure]:
        return self._last_failure

    def snapshot(self) -> TraceSnapshot:
        a = self._attempt
        if a is None:
            return TraceSnapshot(
                state=self._state, edge_count=len(self.graph.edges),
                cursor_index=None, awaiting_release=False,
                completed_edges=frozenset(), remaining_ms=0,
                retry_count=self._retry_count,
            )
        return TraceSnapshot(
            state=self._state,
            edge_count=len(self.graph.edges),
            cursor_index=None if a.awaiting_release else a.cursor_index,
            awaiting_release=a.awaiting_release,
            completed_edges=frozenset(a.completed_edges),
            remaining_ms=a.remaining_ms,
            retry_count=self._retry_count,
        )

    # --- internals ---

    def _set_state(self, state: VerifierState):
        if state == self._state:
            return
        logger.debug(f"{self._state} -> {state}")
        self._state = state
        self.state_changed.emit(state)

    def _cancel_pending(self):
        for call in self._pending:
            call.cancel()
        self._pending = []

    def _schedule(self, delay_ms: int, fn, generation: int):
        def fire():
            if generation != self._generation:
                logger.debug(f"Dropping stale callback from attempt {generation}")
                return
            fn()
        self._pending = [c for c in self._pending if c.active]
        self._pending.append(self._scheduler.call_later(delay_ms, fire))

    def _ignored(self, event: str) -> bool:
        logger.debug(f"Ignoring {event} in state {self._state}")
        return False

    def _begin_attempt(self):
        self._cancel_pending()
        self._generation += 1
        self._attempt = TraceAttempt(
            generation=self._generation,
            remaining_ms=self.time_budget_ms,
        )
        self._set_state(VerifierState.MATERIALIZING)

    def _schedule_tick(self):
        a = self._attempt
        delay = min(self.tick_ms, a.remaining_ms)
        self._schedule(delay, lambda: self._on_timer_tick(delay), a.generation)

    def _on_timer_tick(self, elapsed_ms: int):
        if self._state not in _COUNTING:
            return
        a = self._attempt
        a.remaining_ms = max(0, a.remaining_ms - elapsed_ms)
        self.tick.emit(a.remaining_ms)
        if a.remaining_ms == 0:
            self._fail(FailureReason.TIMEOUT)
        else:
            self._schedule_tick()

    def _fail(self, reason: FailureReason):
        a = self._attempt
        self._cancel_pending()
        self._retry_count += 1
        self._last_failure = TraceFailure(
            reason=reason,
            retry_count=self._retry_count,
            completed_edges=frozenset(a.completed_edges),
            remaining_ms=a.remaining_ms,
        )
        logger.info(f"Trace failed: {reason} "
                    f"({len(a.completed_edges)}/{len(self.graph.edges)} edges, "
                    f"retry {self._retry_count})")
        generation = a.generation
        self._set_state(VerifierState.FAILED)
        self.failed.emit(reason)
        # A failed handler may already have deactivated us
        if self._generation == generation and self._state == VerifierState.FAILED:
            self._schedule(self.failure_hold_ms, self._reset, generation)

    def _reset(self):
        self._set_state(VerifierState.RESETTING)
        self._begin_attempt()

    def _succeed(self):
        self._cancel_pending()
        logger.info(f"Trace verified after {self._retry_count} failed attempt(s)")
        generation = self._attempt.generation
        self._set_state(VerifierState.SUCCESS)
        if self._generation == generation and self._state == VerifierState.SUCCESS:
            self._schedule(self.success_hold_ms, self._finish_success, generation)

    def _finish_success(self):
        self._pending = []
        self._generation += 1
        self._attempt = None
        self._set_state(VerifierState.IDLE)
        self.succeeded.emit()

    # --- inbound ---

    def activate(self) -> bool:
        if self._state != VerifierState.IDLE:
            return self._ignored("activate")
        logger.info(f"Activating sigil with {len(self.graph)} anchors")
        self._begin_attempt()
        return True

    def notify_materialization_complete(self) -> bool:
        if self._state != VerifierState.MATERIALIZING:
            return self._ignored("materialization complete")
        self._set_state(VerifierState.AWAITING_START)
        if self._state != VerifierState.AWAITING_START:
            return True
        self.tick.emit(self._attempt.remaining_ms)
        self._schedule_tick()
        return True

    def deactivate(self):
        self._cancel_pending()
        self._generation += 1
        self._attempt = None
        self._set_state(VerifierState.IDLE)

    def on_pointer_down(self, point: Any) -> bool:
        if self._state != VerifierState.AWAITING_START:
            return self._ignored("pointer down")
        if point is None or not distance(point, self.graph.entry.point) <= self.capture_radius:
            return self._ignored("pointer down away from entry")
        self._attempt.cursor_index = 0
        self._set_state(VerifierState.TRACING)
        return True

    def on_pointer_move(self, point: Any) -> bool:
        if self._state != VerifierState.TRACING:
            return self._ignored("pointer move")
        a = self._attempt
        if a.awaiting_release:
            # Only the release point matters once every edge is captured
            return True

        point = as_point(point)
        edges = self.graph.edges
        edge = edges[a.cursor_index]
        # NaN distances count as off the path
        if not edge.distance_to(point) <= self.tolerance:
            self._fail(FailureReason.PATH_DEVIATION)
            return True

        if distance(point, edge.end.point) <= self.capture_radius:
            a.completed_edges.add(a.cursor_index)
            logger.debug(f"Captured edge {a.cursor_index} at anchor {edge.end.id}")
            if a.cursor_index + 1 < len(edges):
                a.cursor_index += 1
            else:
                a.awaiting_release = True
        return True

    def on_pointer_up(self, point: Any) -> bool:
        if self._state != VerifierState.TRACING:
            return self._ignored("pointer up")
        a = self._attempt
        complete = len(a.completed_edges) == len(self.graph.edges)
        # No point means the release could not be mapped onto the surface
        if (complete and point is not None
                and distance(point, self.graph.exit.point) <= self.capture_radius):
            self._succeed()
        else:
            self._fail(FailureReason.INCOMPLETE_RELEASE)
        return True

    def on_pointer_leave(self) -> bool:
        if self._state != VerifierState.TRACING:
            return self._ignored("pointer leave")
        self._fail(FailureReason.PATH_DEVIATION)
        return True
