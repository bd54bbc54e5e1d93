import pytest
from PySide6.QtCore import QCoreApplication

from sigil.config import SigilConfig
from sigil.geometry import AnchorGraph
from sigil.scheduler import VirtualScheduler
from sigil.verifier import PathTraceVerifier

# Five-anchor zig-zag
ZIGZAG = [(0, 0), (20, 20), (40, 0), (60, 20), (80, 0)]


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture()
def scheduler():
    return VirtualScheduler()


@pytest.fixture()
def graph():
    return AnchorGraph.from_points(ZIGZAG)


class Recorder:
    """Collects everything a verifier emits."""

    def __init__(self, verifier):
        self.states = []
        self.failures = []
        self.successes = 0
        self.ticks = []
        verifier.state_changed.connect(self.states.append)
        verifier.failed.connect(self.failures.append)
        verifier.succeeded.connect(self._succeeded)
        verifier.tick.connect(self.ticks.append)

    def _succeeded(self):
        self.successes += 1


@pytest.fixture()
def verifier(graph, scheduler):
    return PathTraceVerifier(graph, tolerance=5, time_budget_ms=7000,
                             capture_radius=3, scheduler=scheduler)


@pytest.fixture()
def events(verifier):
    return Recorder(verifier)


@pytest.fixture()
def config():
    return SigilConfig()
