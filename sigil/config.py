"""
Configuration for the sigil core.

Defaults reproduce the shipped onboarding: a five-anchor zig-zag drawn in
a 100×100 view box, 5-unit tolerance, seven seconds to trace.

Overrides come from the environment (a ``.env`` file is honoured):

    SIGIL_ANCHORS          x,y;x,y;...   at least two points
    SIGIL_TOLERANCE        float
    SIGIL_CAPTURE_RADIUS   float, <= tolerance
    SIGIL_TIME_BUDGET_MS   int
    SIGIL_TICK_MS          int
    SIGIL_FAILURE_HOLD_MS  int
    SIGIL_SUCCESS_HOLD_MS  int
"""

import os
from dataclasses import dataclass, replace
from typing import List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigurationError
from .geometry import AnchorGraph

DEFAULT_ANCHORS: Tuple[Tuple[float, float], ...] = (
    (25, 50),
    (45, 25),
    (75, 35),
    (60, 75),
    (30, 65),
)


@dataclass(frozen=True)
class SigilConfig:
    anchors: Tuple[Tuple[float, float], ...] = DEFAULT_ANCHORS
    tolerance: float = 5.0
    capture_radius: float = 5.0
    time_budget_ms: int = 7000
    tick_ms: int = 1000
    failure_hold_ms: int = 2500
    success_hold_ms: int = 2500

    # Gate pacing
    upload_step_ms: int = 200
    upload_step_percent: int = 10
    upload_hold_ms: int = 1000
    selection_size: int = 6
    selection_hold_ms: int = 1500

    def build_graph(self) -> AnchorGraph:
        return AnchorGraph.from_points(self.anchors)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None,
                 dotenv_path: Optional[str] = None) -> 'SigilConfig':
        """
        Read ``SIGIL_*`` overrides from *env* (default: os.environ after
        loading .env). Unset variables keep their defaults.
        """
        if env is None:
            load_dotenv(dotenv_path)
            env = os.environ

        overrides = {}
        if env.get("SIGIL_ANCHORS"):
            overrides["anchors"] = parse_anchors(env["SIGIL_ANCHORS"])
        for key, name, kind in (
            ("SIGIL_TOLERANCE", "tolerance", float),
            ("SIGIL_CAPTURE_RADIUS", "capture_radius", float),
            ("SIGIL_TIME_BUDGET_MS", "time_budget_ms", int),
            ("SIGIL_TICK_MS", "tick_ms", int),
            ("SIGIL_FAILURE_HOLD_MS", "failure_hold_ms", int),
            ("SIGIL_SUCCESS_HOLD_MS", "success_hold_ms", int),
        ):
            raw = env.get(key)
            if raw is None or raw.strip() == "":
                continue
            try:
                overrides[name] = kind(raw.strip())
            except ValueError:
                raise ConfigurationError(f"{key}={raw!r} is not a valid {kind.__name__}")

        return replace(cls(), **overrides)


def parse_anchors(spec: str) -> Tuple[Tuple[float, float], ...]:
    """Parse ``x,y;x,y;...`` into a tuple of points."""
    points: List[Tuple[float, float]] = []
    for part in spec.split(';'):
        part = part.strip()
        if not part:
            continue
        if ',' not in part:
            raise ConfigurationError(f"Invalid anchor '{part}'. Expected x,y")
        x, y = part.split(',', 1)
        try:
            points.append((float(x), float(y)))
        except ValueError:
            raise ConfigurationError(f"Invalid anchor '{part}'. Expected numbers")
    if len(points) < 2:
        raise ConfigurationError(f"at least 2 anchors required, got {len(points)}")
    return tuple(points)
