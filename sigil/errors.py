"""
Error taxonomy for the sigil core.

Only ConfigurationError is ever raised. Trace failures are part of the
retry loop and travel as FailureReason values through the verifier's
``failed`` signal; TraceFailure is the record kept for the last one.
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet


class ConfigurationError(ValueError):
    """Invalid graph, tolerance, budget or table supplied at construction."""


class FailureReason(str, Enum):
    PATH_DEVIATION = "path-deviation"
    INCOMPLETE_RELEASE = "incomplete-release"
    TIMEOUT = "timeout"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class TraceFailure:
    """What was known about an attempt at the moment it failed."""
    reason: FailureReason
    retry_count: int          # after the increment for this failure
    completed_edges: FrozenSet[int]
    remaining_ms: int
