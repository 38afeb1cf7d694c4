import math
from collections.abc import Iterable, Sequence

import numpy as np

from lane_sim.domain.entities.geography import Lane, NearestPoint, Point

CONNECTION_RADIUS = 3.0
MIN_LANE_LENGTH = 1e-6


class UnknownLaneError(KeyError):
    """A lane id that is not part of the graph was passed to a query."""

    def __init__(self, lane_id: str):
        super().__init__(lane_id)
        self.lane_id = lane_id

    def __str__(self) -> str:
        return f"unknown lane {self.lane_id!r}"


def project_on_segment(p: Point, a: Point, b: Point) -> tuple[Point, float] | None:
    """Clamped projection of p onto segment ab -> (closest point, t). None if ab has no length."""
    dx, dy = b.x - a.x, b.y - a.y
    len_sq = dx * dx + dy * dy
    if len_sq == 0:
        return None
    t = max(0.0, min(1.0, ((p.x - a.x) * dx + (p.y - a.y) * dy) / len_sq))
    return Point(a.x + t * dx, a.y + t * dy), t


class LaneGraph:
    """
    Connectivity over named polyline lanes.

    Edges are inferred once at construction: lanes A and B are connected when
    any endpoint of A lies within ``connection_radius`` of any endpoint of B.
    Inferred edges are undirected. Lanes may also declare one-way links via
    ``Lane.connects_to``; those are added only on the declaring lane.

    Queries with an id that is not in the graph raise ``UnknownLaneError``.
    """

    def __init__(
        self,
        lanes: Iterable[Lane],
        *,
        rng: np.random.Generator | None = None,
        connection_radius: float = CONNECTION_RADIUS,
    ):
        self._lanes: dict[str, Lane] = {}
        for lane in lanes:
            if lane.id in self._lanes:
                raise ValueError(f"duplicate lane id {lane.id!r}")
            if len(lane.points) < 2:
                raise ValueError(f"lane {lane.id!r} needs at least 2 points")
            self._lanes[lane.id] = lane
        self.rng = rng if rng is not None else np.random.default_rng()
        self.connection_radius = connection_radius
        self._lengths = {lid: self._polyline_length(lane) for lid, lane in self._lanes.items()}
        self._adj = self._build_connections()

    @classmethod
    def from_network(cls, network, *, rng=None, connection_radius: float = CONNECTION_RADIUS):
        """Build from a LaneNetworkModel (config.models)."""
        lanes = [
            Lane(
                id=m.id,
                points=tuple(Point(float(x), float(y)) for x, y in m.points),
                width=m.width,
                connects_to=tuple(m.connects_to),
            )
            for m in network.lanes
        ]
        return cls(lanes, rng=rng, connection_radius=connection_radius)

    # ------------------------------------------------------------------

    def _build_connections(self) -> dict[str, tuple[str, ...]]:
        r = self.connection_radius
        found: dict[str, list[str]] = {lid: [] for lid in self._lanes}
        lanes = list(self._lanes.values())
        for lane in lanes:
            ends = (lane.start, lane.end)
            for other in lanes:
                if other.id == lane.id:
                    continue
                if any(p.dist(q) < r for p in ends for q in (other.start, other.end)):
                    found[lane.id].append(other.id)
        for lane in lanes:
            for target in lane.connects_to:
                if target not in self._lanes:
                    raise ValueError(f"lane {lane.id!r} connects to unknown lane {target!r}")
                if target != lane.id and target not in found[lane.id]:
                    found[lane.id].append(target)
        return {lid: tuple(conns) for lid, conns in found.items()}

    @staticmethod
    def _polyline_length(lane: Lane) -> float:
        return sum(a.dist(b) for a, b in zip(lane.points, lane.points[1:]))

    def _require(self, lane_id: str) -> Lane:
        try:
            return self._lanes[lane_id]
        except KeyError:
            raise UnknownLaneError(lane_id) from None

    # ------------------------------------------------------------------

    @property
    def lanes(self) -> list[Lane]:
        return list(self._lanes.values())

    @property
    def lane_ids(self) -> list[str]:
        return list(self._lanes)

    def __contains__(self, lane_id: object) -> bool:
        return lane_id in self._lanes

    def __len__(self) -> int:
        return len(self._lanes)

    def lane(self, lane_id: str) -> Lane:
        return self._require(lane_id)

    def lane_length(self, lane_id: str) -> float:
        """Polyline length, floored so callers can divide by it."""
        self._require(lane_id)
        return max(self._lengths[lane_id], MIN_LANE_LENGTH)

    def neighbors(self, lane_id: str) -> tuple[str, ...]:
        self._require(lane_id)
        return self._adj[lane_id]

    def connections(self, lane_id: str) -> frozenset[str]:
        return frozenset(self.neighbors(lane_id))

    # ------------------------------------------------------------------

    def nearest_point_on_lane(self, p: Point, lane_id: str) -> NearestPoint:
        lane = self._require(lane_id)
        n = lane.segment_count
        best = NearestPoint(lane.id, lane.start, 0.0, p.dist(lane.start))
        for i, (a, b) in enumerate(zip(lane.points, lane.points[1:])):
            proj = project_on_segment(p, a, b)
            if proj is None:
                continue
            q, t = proj
            d = p.dist(q)
            if d < best.distance:
                best = NearestPoint(lane.id, q, (i + t) / n, d)
        return best

    def nearest_point_on_network(self, p: Point) -> NearestPoint | None:
        best = None
        for lane_id in self._lanes:
            cand = self.nearest_point_on_lane(p, lane_id)
            if best is None or cand.distance < best.distance:
                best = cand
        return best

    def _locate(self, lane: Lane, progress: float) -> tuple[int, float]:
        n = lane.segment_count
        scaled = min(max(progress, 0.0), 1.0) * n
        i = min(int(math.floor(scaled)), n - 1)
        return i, scaled - i

    def position_at_progress(self, lane_id: str, progress: float) -> Point:
        lane = self._require(lane_id)
        if progress <= 0:
            return lane.start
        if progress >= 1:
            return lane.end
        i, s = self._locate(lane, progress)
        a, b = lane.points[i], lane.points[i + 1]
        return Point(a.x + s * (b.x - a.x), a.y + s * (b.y - a.y))

    def heading_at_progress(self, lane_id: str, progress: float) -> float:
        lane = self._require(lane_id)
        i, _ = self._locate(lane, progress)
        a, b = lane.points[i], lane.points[i + 1]
        return math.atan2(b.y - a.y, b.x - a.x)

    # ------------------------------------------------------------------

    def choose_next_lane(
        self, current: str, planned_route: Sequence[str] = (), route_index: int = 0
    ) -> str | None:
        conns = self.neighbors(current)
        if not conns:
            return self.find_return_lane(current)
        if route_index + 1 < len(planned_route):
            planned = planned_route[route_index + 1]
            if planned in conns:
                return planned
        return conns[int(self.rng.integers(len(conns)))]

    def find_return_lane(self, lane_id: str) -> str | None:
        """First lane (graph order) listing ``lane_id`` as a connection: a U-turn at a dead end."""
        self._require(lane_id)
        for other, conns in self._adj.items():
            if other != lane_id and lane_id in conns:
                return other
        return None

    def random_route(self, start: str, length: int = 5) -> list[str]:
        self._require(start)
        route = [start]
        current = start
        for _ in range(length - 1):
            conns = self._adj[current]
            if not conns:
                break
            back = route[-2] if len(route) >= 2 else None
            pool = [c for c in conns if c != back] or list(conns)
            current = pool[int(self.rng.integers(len(pool)))]
            route.append(current)
        return route
