"""
Anchor graph geometry for sigil tracing.

A sigil is a path graph: anchors visited in order, each consecutive pair
joined by a straight edge.

    entry ──► a1 ──► a2 ──► ... ──► exit

    edges[i].end is edges[i + 1].start
    every anchor appears exactly once

Coordinates are in whatever space the presentation layer draws in; the
verifier only ever compares distances.
"""

import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .errors import ConfigurationError


class Point(tuple):
    """Immutable (x, y) pair."""
    __slots__ = ()

    def __new__(cls, x: float, y: float):
        return super().__new__(cls, (float(x), float(y)))

    @property
    def x(self) -> float:
        return self[0]

    @property
    def y(self) -> float:
        return self[1]

    def __repr__(self):
        return f"Point({self[0]:g}, {self[1]:g})"


def as_point(value: Any) -> Point:
    """
    Coerce pointer input to a Point.

    Accepts Point, (x, y) sequences, and Qt points (QPointF / QPoint)
    whose x and y are methods.
    """
    if isinstance(value, Point):
        return value
    x = getattr(value, 'x', None)
    if callable(x):
        return Point(value.x(), value.y())
    px, py = value
    return Point(px, py)


def distance(a: Any, b: Any) -> float:
    a, b = as_point(a), as_point(b)
    return math.hypot(a.x - b.x, a.y - b.y)


def distance_to_segment(p: Any, v: Any, w: Any) -> float:
    """
    Euclidean distance from p to the closed segment v→w.

    p is projected onto the line through v and w, the projection parameter
    is clamped to [0, 1], and the distance to the clamped point returned.
    A degenerate segment (v == w) is treated as the point v.
    """
    p, v, w = as_point(p), as_point(v), as_point(w)
    dx, dy = w.x - v.x, w.y - v.y
    l2 = dx * dx + dy * dy
    if l2 == 0:
        return math.hypot(p.x - v.x, p.y - v.y)
    t = ((p.x - v.x) * dx + (p.y - v.y) * dy) / l2
    t = max(0.0, min(1.0, t))
    return math.hypot(p.x - (v.x + t * dx), p.y - (v.y + t * dy))


@dataclass(frozen=True)
class Anchor:
    id: int
    x: float
    y: float
    is_entry: bool = False
    is_exit: bool = False

    @property
    def point(self) -> Point:
        return Point(self.x, self.y)


@dataclass(frozen=True)
class Edge:
    start: Anchor
    end: Anchor

    @property
    def length(self) -> float:
        return distance(self.start.point, self.end.point)

    def distance_to(self, point: Any) -> float:
        return distance_to_segment(point, self.start.point, self.end.point)


class AnchorGraph:
    """
    Immutable path graph of anchors.

    Construction validates the shape and raises ConfigurationError for
    anything that is not a single simple path from the entry anchor to
    the exit anchor covering every anchor once.
    """

    def __init__(self, anchors: Sequence[Anchor], edges: Sequence[Edge]):
        anchors = tuple(anchors)
        edges = tuple(edges)
        self._validate(anchors, edges)
        self._anchors = anchors
        self._edges = edges
        self._entry = next(a for a in anchors if a.is_entry)
        self._exit = next(a for a in anchors if a.is_exit)

    @staticmethod
    def _validate(anchors: Tuple[Anchor, ...], edges: Tuple[Edge, ...]):
        if len(anchors) < 2:
            raise ConfigurationError(
                f"a sigil needs at least 2 anchors, got {len(anchors)}")

        ids = [a.id for a in anchors]
        if len(set(ids)) != len(ids):
            raise ConfigurationError("anchor ids must be unique")

        entries = [a for a in anchors if a.is_entry]
        exits = [a for a in anchors if a.is_exit]
        if len(entries) != 1:
            raise ConfigurationError(
                f"exactly one entry anchor required, got {len(entries)}")
        if len(exits) != 1:
            raise ConfigurationError(
                f"exactly one exit anchor required, got {len(exits)}")
        if entries[0].id == exits[0].id:
            raise ConfigurationError("entry and exit must be different anchors")

        if len(edges) != len(anchors) - 1:
            raise ConfigurationError(
                f"a path over {len(anchors)} anchors has {len(anchors) - 1} "
                f"edges, got {len(edges)}")

        known = set(ids)
        for i, edge in enumerate(edges):
            if edge.start.id not in known or edge.end.id not in known:
                raise ConfigurationError(f"edge {i} references an unknown anchor")
            if i + 1 < len(edges) and edge.end.id != edges[i + 1].start.id:
                raise ConfigurationError(
                    f"edge {i} ends at anchor {edge.end.id} but edge {i + 1} "
                    f"starts at anchor {edges[i + 1].start.id}")

        if edges[0].start.id != entries[0].id:
            raise ConfigurationError("path must start at the entry anchor")
        if edges[-1].end.id != exits[0].id:
            raise ConfigurationError("path must end at the exit anchor")

        visited = [edges[0].start.id] + [e.end.id for e in edges]
        if len(set(visited)) != len(visited):
            raise ConfigurationError("path revisits an anchor (cycle or branch)")
        if set(visited) != known:
            raise ConfigurationError("path does not cover every anchor")

    @classmethod
    def from_points(cls, points: Iterable[Any]) -> 'AnchorGraph':
        """Build the path through *points* in order: first is entry, last is exit."""
        pts = [as_point(p) for p in points]
        last = len(pts) - 1
        anchors = [
            Anchor(i, p.x, p.y, is_entry=(i == 0), is_exit=(i == last and i > 0))
            for i, p in enumerate(pts)
        ]
        edges = [Edge(anchors[i], anchors[i + 1]) for i in range(len(anchors) - 1)]
        return cls(anchors, edges)

    @property
    def anchors(self) -> Tuple[Anchor, ...]:
        return self._anchors

    @property
    def edges(self) -> Tuple[Edge, ...]:
        return self._edges

    @property
    def entry(self) -> Anchor:
        return self._entry

    @property
    def exit(self) -> Anchor:
        return self._exit

    def __len__(self):
        return len(self._anchors)

    def __repr__(self):
        path = " -> ".join(str(a.id) for a in [self._edges[0].start] + [e.end for e in self._edges])
        return f"AnchorGraph({path})"


def synthesize_gesture(graph: AnchorGraph, step: float = 1.0,
                       offset: Optional[Tuple[float, float]] = None) -> List[Point]:
    """
    Points a perfect pointer would pass through when tracing *graph*.

    Each edge is sampled every *step* units, ending exactly on its end
    anchor. *offset* shifts every sampled point (anchors included), which
    is how the simulator produces off-path gestures.
    """
    ox, oy = offset or (0.0, 0.0)
    points = [Point(graph.entry.x + ox, graph.entry.y + oy)]
    for edge in graph.edges:
        n = max(1, int(math.ceil(edge.length / step)))
        for k in range(1, n + 1):
            t = k / n
            points.append(Point(
                edge.start.x + t * (edge.end.x - edge.start.x) + ox,
                edge.start.y + t * (edge.end.y - edge.start.y) + oy,
            ))
    return points
