# Sigil authentication: timed path-tracing verification and onboarding sequencing
from .errors import ConfigurationError, FailureReason, TraceFailure
from .geometry import Anchor, AnchorGraph, Edge, Point, distance_to_segment
from .scheduler import QtScheduler, ScheduledCall, Scheduler, VirtualScheduler
from .verifier import PathTraceVerifier, TraceSnapshot, VerifierState
from .sequencer import PROGRESS_TABLE, Stage, StageSequencer
from .gates import SelectionGate, UploadGate
from .config import SigilConfig
from .session import CalibrationSession

__all__ = [
    'ConfigurationError',
    'FailureReason',
    'TraceFailure',
    'Anchor',
    'AnchorGraph',
    'Edge',
    'Point',
    'distance_to_segment',
    'QtScheduler',
    'ScheduledCall',
    'Scheduler',
    'VirtualScheduler',
    'PathTraceVerifier',
    'TraceSnapshot',
    'VerifierState',
    'PROGRESS_TABLE',
    'Stage',
    'StageSequencer',
    'SelectionGate',
    'UploadGate',
    'SigilConfig',
    'CalibrationSession',
]
