"""
sigil — headless gesture simulator

Replays a synthesized pointer gesture through the path-trace verifier and
prints every event it emits.

Usage:
    python -m sigil success            # trace the sigil and release on the exit
    python -m sigil deviate            # wander off the first edge
    python -m sigil release            # trace everything, release far away
    python -m sigil leave              # start tracing, then leave the surface
    python -m sigil timeout            # never touch it

    python -m sigil success --realtime # real Qt timers instead of a virtual clock

Settings come from SIGIL_* environment variables or a .env file
(see sigil.config).
"""

import argparse
import logging
import sys
from typing import List, Optional

from PySide6.QtCore import QCoreApplication, QTimer

from .config import SigilConfig
from .errors import ConfigurationError
from .geometry import Point, synthesize_gesture
from .scheduler import QtScheduler, VirtualScheduler
from .verifier import PathTraceVerifier, VerifierState

SCENARIOS = ("success", "deviate", "release", "leave", "timeout")


def build_gesture(verifier: PathTraceVerifier, scenario: str) -> List[tuple]:
    """
    The pointer events for *scenario*, as (kind, point) pairs where kind is
    one of "down", "move", "up", "leave".
    """
    graph = verifier.graph
    step = max(0.5, verifier.capture_radius / 2)
    path = synthesize_gesture(graph, step=step)
    entry, exit_ = graph.entry.point, graph.exit.point

    if scenario == "success":
        return ([("down", path[0])] + [("move", p) for p in path[1:]]
                + [("up", path[-1])])
    if scenario == "deviate":
        first = graph.edges[0]
        dx, dy = first.end.x - first.start.x, first.end.y - first.start.y
        norm = (dx * dx + dy * dy) ** 0.5 or 1.0
        off = verifier.tolerance + 1
        mid = Point((first.start.x + first.end.x) / 2 - dy / norm * off,
                    (first.start.y + first.end.y) / 2 + dx / norm * off)
        return [("down", entry), ("move", mid)]
    if scenario == "release":
        far = Point(exit_.x + verifier.capture_radius * 10, exit_.y)
        return ([("down", path[0])] + [("move", p) for p in path[1:]]
                + [("up", far)])
    if scenario == "leave":
        return [("down", path[0])] + [("move", p) for p in path[1:3]] + [("leave", None)]
    return []


def play(verifier: PathTraceVerifier, gesture: List[tuple]):
    for kind, point in gesture:
        if verifier.state != VerifierState.TRACING and kind != "down":
            break
        if kind == "down":
            verifier.on_pointer_down(point)
        elif kind == "move":
            verifier.on_pointer_move(point)
        elif kind == "up":
            verifier.on_pointer_up(point)
        elif kind == "leave":
            verifier.on_pointer_leave()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="python -m sigil",
        description="Replay a synthesized gesture through the sigil verifier"
    )
    parser.add_argument(
        'scenario', nargs='?', default='success', choices=SCENARIOS,
        help='Gesture to replay (default: success)'
    )
    parser.add_argument(
        '--realtime', action='store_true',
        help='Use real Qt timers instead of a virtual clock'
    )
    parser.add_argument(
        '--env-file', metavar='PATH',
        help='Load SIGIL_* settings from this .env file'
    )
    parser.add_argument(
        '--verbose', '-v', action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--debug', action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose:
        level = logging.INFO
    if args.debug:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(name)s %(levelname)s %(message)s',
        datefmt='%H:%M:%S'
    )

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])

    try:
        config = SigilConfig.from_env(dotenv_path=args.env_file)
        scheduler = QtScheduler() if args.realtime else VirtualScheduler()
        verifier = PathTraceVerifier(
            config.build_graph(), config.tolerance, config.time_budget_ms,
            capture_radius=config.capture_radius,
            scheduler=scheduler,
            tick_ms=config.tick_ms,
            failure_hold_ms=config.failure_hold_ms,
            success_hold_ms=config.success_hold_ms,
        )
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"sigil — {args.scenario}")
    print(f"  Graph:     {verifier.graph!r}")
    print(f"  Tolerance: {verifier.tolerance:g}  capture: {verifier.capture_radius:g}")
    print(f"  Budget:    {verifier.time_budget_ms} ms")
    print()

    outcome = {}

    def log(text):
        print(f"[{scheduler.now_ms():>6} ms] {text}")

    def done():
        if args.realtime:
            QTimer.singleShot(0, app.quit)

    def on_state(state):
        log(f"state {state}")
        if state == VerifierState.MATERIALIZING and verifier.retry_count > 0:
            done()

    def on_failed(reason):
        log(f"failed {reason}")
        outcome.setdefault("failed", reason)

    def on_succeeded():
        log("succeeded")
        outcome["succeeded"] = True
        done()

    verifier.state_changed.connect(on_state)
    verifier.failed.connect(on_failed)
    verifier.succeeded.connect(on_succeeded)
    verifier.tick.connect(lambda ms: log(f"tick {ms}"))

    verifier.activate()
    verifier.notify_materialization_complete()
    play(verifier, build_gesture(verifier, args.scenario))

    if args.realtime:
        app.exec()
    else:
        scheduler.run_until_idle()
    verifier.deactivate()

    print()
    if outcome.get("succeeded"):
        print("Outcome: verified")
    else:
        print(f"Outcome: failed ({outcome.get('failed')}), retries {verifier.retry_count}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
