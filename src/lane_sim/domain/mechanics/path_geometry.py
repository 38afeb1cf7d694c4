"""
Straight-segment path network used by grid motion.

Coordinate contract: all points, tolerances and distances are expressed in the
``units`` of the layout (meters for both built-in presets). The path network is
independent of the lane graph; a layout only needs to agree with itself.

Two presets ship with the engine:

* ``facility``: the layout the motion engine drives vehicles on. One central
  zone line, seven vertical connectors, tight on-path tolerance (0.1).
* ``overview``: the coarser layout used for map overlays. Three zone lines,
  five connectors and two boundaries, tolerance 0.5 and a 2.0 snap radius.

The two differ in topology as well as tolerance, so they do not snap points
to the same place.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from lane_sim.domain.entities.geography import PathSegment, Point, SegmentKind
from lane_sim.domain.mechanics.lane_graph import project_on_segment

# target acquisition step ranges (min, span) along the current segment
HORIZONTAL_STEP = (5.0, 10.0)
VERTICAL_STEP = (3.0, 6.0)


def _seg(sid: str, x0: float, y0: float, x1: float, y1: float, kind: SegmentKind) -> PathSegment:
    return PathSegment(sid, Point(x0, y0), Point(x1, y1), kind)


@dataclass(frozen=True)
class GridLayout:
    segments: tuple[PathSegment, ...]
    on_path_tolerance: float
    segment_tolerance: float  # for deciding which segment governs target choice
    snap_max_distance: float | None
    start_points: tuple[Point, ...] = ()
    safe_point: Point | None = None
    units: str = "meters"


def _facility() -> GridLayout:
    segs = [_seg("main", 4.0, 11.2, 44.0, 11.2, SegmentKind.ZONE_LINE)]
    for i, x in enumerate((4.0, 12.5, 18.9, 25.3, 31.7, 38.1, 44.0)):
        kind = SegmentKind.BOUNDARY if x in (4.0, 44.0) else SegmentKind.CONNECTOR
        segs.append(_seg(f"v{i}", x, 3.2, x, 19.2, kind))
    starts = [Point(x, 11.2) for x in (12.5, 18.9, 25.3, 31.7, 38.1)]
    starts += [Point(12.5, 8.6), Point(25.3, 13.8), Point(31.7, 9.4), Point(18.9, 14.2)]
    return GridLayout(
        segments=tuple(segs),
        on_path_tolerance=0.1,
        segment_tolerance=0.2,
        snap_max_distance=None,
        start_points=tuple(starts),
        safe_point=Point(12.5, 11.2),
    )


def _overview() -> GridLayout:
    segs = [
        _seg(f"h{i}", 2.0, y, 46.0, y, SegmentKind.ZONE_LINE)
        for i, y in enumerate((7.8, 11.2, 14.6))
    ]
    segs += [
        _seg(f"v{i}", x, 2.5, x, 19.5, SegmentKind.CONNECTOR)
        for i, x in enumerate((9.5, 16.5, 23.5, 30.5, 37.5), start=1)
    ]
    segs += [
        _seg("left", 2.0, 2.5, 2.0, 19.5, SegmentKind.BOUNDARY),
        _seg("right", 44.5, 2.5, 44.5, 19.5, SegmentKind.BOUNDARY),
    ]
    return GridLayout(
        segments=tuple(segs),
        on_path_tolerance=0.5,
        segment_tolerance=0.5,
        snap_max_distance=2.0,
        safe_point=Point(9.5, 11.2),
    )


LAYOUTS: dict[str, GridLayout] = {"facility": _facility(), "overview": _overview()}


class PathGeometry:
    def __init__(
        self,
        segments: Iterable[PathSegment],
        *,
        units: str = "meters",
        on_path_tolerance: float = 0.1,
        segment_tolerance: float = 0.2,
        snap_max_distance: float | None = None,
    ):
        self.segments = tuple(segments)
        if not self.segments:
            raise ValueError("path geometry needs at least one segment")
        self.units = units
        self.on_path_tolerance = on_path_tolerance
        self.segment_tolerance = segment_tolerance
        self.snap_max_distance = snap_max_distance

    @classmethod
    def from_layout(cls, layout: GridLayout) -> "PathGeometry":
        return cls(
            layout.segments,
            units=layout.units,
            on_path_tolerance=layout.on_path_tolerance,
            segment_tolerance=layout.segment_tolerance,
            snap_max_distance=layout.snap_max_distance,
        )

    # ---------------- primitives ----------------

    @staticmethod
    def project(p: Point, seg: PathSegment) -> Point:
        proj = project_on_segment(p, seg.start, seg.end)
        return seg.start if proj is None else proj[0]

    def distance_to_segment(self, p: Point, seg: PathSegment) -> float:
        return p.dist(self.project(p, seg))

    def is_on_path(self, p: Point, tolerance: float | None = None) -> bool:
        tol = self.on_path_tolerance if tolerance is None else tolerance
        return any(self.distance_to_segment(p, s) <= tol for s in self.segments)

    def snap_to_nearest_path(self, p: Point, max_distance: float | None = None) -> Point:
        limit = self.snap_max_distance if max_distance is None else max_distance
        best, best_d = p, math.inf if limit is None else limit
        for seg in self.segments:
            q = self.project(p, seg)
            d = p.dist(q)
            if d < best_d:
                best, best_d = q, d
        return best

    def path_at(self, p: Point, tolerance: float | None = None) -> PathSegment | None:
        tol = self.segment_tolerance if tolerance is None else tolerance
        for seg in self.segments:
            if self.distance_to_segment(p, seg) < tol:
                return seg
        return None

    # ---------------- grid motion support ----------------

    def pick_target(self, p: Point, seg: PathSegment, rng: np.random.Generator) -> Point:
        """Random point a few units further along ``seg`` in either direction, clamped to it."""
        lo, span = HORIZONTAL_STEP if seg.horizontal else VERTICAL_STEP
        direction = 1.0 if rng.random() > 0.5 else -1.0
        step = lo + rng.random() * span
        length = seg.length
        if length == 0:
            return seg.start
        proj = project_on_segment(p, seg.start, seg.end)
        t0 = 0.0 if proj is None else proj[1]
        t = max(0.0, min(1.0, t0 + direction * step / length))
        return Point(
            seg.start.x + t * (seg.end.x - seg.start.x),
            seg.start.y + t * (seg.end.y - seg.start.y),
        )

    def intersections(self, tolerance: float = 0.1) -> list[Point]:
        """Segment crossings followed by segment endpoints, de-duplicated within ``tolerance``."""
        nodes: list[Point] = []

        def _add(q: Point) -> None:
            if not any(abs(n.x - q.x) < tolerance and abs(n.y - q.y) < tolerance for n in nodes):
                nodes.append(q)

        segs = self.segments
        for i, s1 in enumerate(segs):
            for s2 in segs[i + 1 :]:
                q = _crossing(s1, s2)
                if q is not None:
                    _add(q)
        for s in segs:
            _add(s.start)
            _add(s.end)
        return nodes


def _crossing(s1: PathSegment, s2: PathSegment) -> Point | None:
    x1, y1, x2, y2 = s1.start.x, s1.start.y, s1.end.x, s1.end.y
    x3, y3, x4, y4 = s2.start.x, s2.start.y, s2.end.x, s2.end.y
    denom = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
    if abs(denom) < 1e-10:
        return None  # parallel
    t = ((x1 - x3) * (y3 - y4) - (y1 - y3) * (x3 - x4)) / denom
    u = -((x1 - x2) * (y1 - y3) - (y1 - y2) * (x1 - x3)) / denom
    if 0 <= t <= 1 and 0 <= u <= 1:
        return Point(x1 + t * (x2 - x1), y1 + t * (y2 - y1))
    return None
