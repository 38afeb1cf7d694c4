# lane_sim/domain/mechanics/motion.py
import math
from dataclasses import dataclass
from enum import Enum

import numpy as np

from lane_sim.app.protocols import MotionModel
from lane_sim.domain.entities.entity import Entity
from lane_sim.domain.entities.geography import Point
from lane_sim.domain.mechanics.lane_graph import LaneGraph, UnknownLaneError
from lane_sim.domain.mechanics.path_geometry import PathGeometry
from lane_sim.domain.mechanics.zones import ZoneClassifier

TAU = 2 * math.pi


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def wrap_angle(a: float) -> float:
    """Map an angle to (-pi, pi]."""
    a = math.fmod(a + math.pi, TAU)
    if a <= 0:
        a += TAU
    return a - math.pi


def lerp_angle(a: float, b: float, t: float) -> float:
    """Rotate from a toward b along the shorter arc, radians."""
    return wrap_angle(a + wrap_angle(b - a) * t)


def sample_speed(rng: np.random.Generator, speed_range: tuple[float, float]) -> float:
    lo, hi = speed_range
    return float(lo + rng.random() * (hi - lo))


# ---------------------------------------------------------------------------


class UpdateStatus(str, Enum):
    OK = "ok"
    RECOVERED = "recovered"  # runtime error, entity reset
    CONFIG_ERROR = "config_error"  # unknown lane reference, entity reset


@dataclass(frozen=True)
class UpdateOutcome:
    entity_id: str
    status: UpdateStatus
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is UpdateStatus.OK


def apply_motion(
    model: MotionModel, e: Entity, dt: float, now_ms: float, zones: ZoneClassifier
) -> UpdateOutcome:
    """Advance one entity and reclassify its zone; failures reset the entity instead of raising."""
    status, error = UpdateStatus.OK, None
    try:
        model.update(e, dt, now_ms)
    except UnknownLaneError as exc:
        status, error = UpdateStatus.CONFIG_ERROR, str(exc)
        model.reset(e)
    except Exception as exc:
        status, error = UpdateStatus.RECOVERED, f"{type(exc).__name__}: {exc}"
        model.reset(e)
    e.zone_id = zones.classify(e.x, e.y)
    return UpdateOutcome(e.id, status, error)


# ---------------------------------------------------------------------------


class GridMotion(MotionModel):
    """
    Strict-path movement over a PathGeometry.

    Off path: snap back, pick a new target, skip the move this tick.
    On path: keep a target further along the current segment, move toward it,
    re-snap to cancel drift and ease the heading toward the bearing.
    """

    ARRIVAL_DISTANCE = 0.5
    MIN_MOVE = 0.05
    HEADING_RATE = 0.1
    SPEED_RATE = 0.02
    SPEED_WAVE = 0.1

    def __init__(self, geometry: PathGeometry, *, rng: np.random.Generator, safe_point: Point):
        self.geometry = geometry
        self.rng = rng
        self.safe_point = safe_point

    def _retarget(self, e: Entity) -> None:
        seg = self.geometry.path_at(e.pos)
        if seg is not None:
            e.target = self.geometry.pick_target(e.pos, seg, self.rng)

    def update(self, e: Entity, dt: float, now_ms: float) -> None:
        geo = self.geometry
        if not geo.is_on_path(e.pos):
            e.move_to(geo.snap_to_nearest_path(e.pos, math.inf))
            self._retarget(e)
            return

        if (
            e.target is None
            or not geo.is_on_path(e.target)
            or e.pos.dist(e.target) < self.ARRIVAL_DISTANCE
        ):
            self._retarget(e)

        if e.target is not None:
            dx, dy = e.target.x - e.x, e.target.y - e.y
            remaining = math.hypot(dx, dy)
            if remaining > self.MIN_MOVE:
                step = min(e.speed * dt, remaining)
                e.move_to(Point(e.x + dx / remaining * step, e.y + dy / remaining * step))
                e.heading = lerp_angle(e.heading, math.atan2(dy, dx), self.HEADING_RATE)
                e.move_to(geo.snap_to_nearest_path(e.pos, math.inf))

        wave = self.SPEED_WAVE * math.sin(now_ms / 1000.0)
        e.speed = max(0.0, lerp(e.speed, e.target_speed + wave, self.SPEED_RATE))

    def reset(self, e: Entity) -> None:
        e.move_to(self.safe_point)
        e.target = None
        e.speed = e.target_speed


class LaneMotion(MotionModel):
    """Progress-driven movement along lane polylines of a LaneGraph."""

    SPEED_RATE = 0.1
    SPEED_JITTER = 0.1
    RETARGET_SPEED_P = 0.3
    FALLBACK_ROUTE_LENGTH = 5

    def __init__(
        self,
        graph: LaneGraph,
        *,
        rng: np.random.Generator,
        speed_range: tuple[float, float],
        route_length: int = FALLBACK_ROUTE_LENGTH,
    ):
        self.graph = graph
        self.rng = rng
        self.speed_range = speed_range
        self.route_length = route_length

    def update(self, e: Entity, dt: float, now_ms: float) -> None:
        g = self.graph
        progress = e.lane_progress + e.speed * dt / g.lane_length(e.lane_id)
        if progress >= 1.0:
            e.move_to(g.position_at_progress(e.lane_id, 1.0))
            e.heading = g.heading_at_progress(e.lane_id, 1.0)
            self.transition(e)
        else:
            e.lane_progress = progress
            e.move_to(g.position_at_progress(e.lane_id, progress))
            e.heading = g.heading_at_progress(e.lane_id, progress)

        jitter = (self.rng.random() - 0.5) * 2 * self.SPEED_JITTER
        e.speed = max(0.0, lerp(e.speed, e.target_speed + jitter, self.SPEED_RATE))

    def transition(self, e: Entity) -> None:
        """Move the entity onto the next lane and restart its progress."""
        g = self.graph
        current = e.lane_id
        conns = g.neighbors(current)
        nxt = e.route_index + 1
        if nxt < len(e.route) and e.route[nxt] in conns:
            e.route_index = nxt
            lane_id = e.route[nxt]
        else:
            lane_id = g.choose_next_lane(current, e.route, e.route_index)
            if lane_id is not None:
                e.set_route(g.random_route(lane_id, self.route_length))
            else:
                route = g.random_route(current, self.FALLBACK_ROUTE_LENGTH)
                e.set_route(route, index=1)
                lane_id = route[e.route_index]

        e.lane_id = lane_id
        e.lane_progress = 0.0
        if self.rng.random() < self.RETARGET_SPEED_P:
            e.target_speed = sample_speed(self.rng, self.speed_range)

    def reset(self, e: Entity) -> None:
        ids = self.graph.lane_ids
        lane_id = ids[int(self.rng.integers(len(ids)))]
        e.lane_id = lane_id
        e.lane_progress = 0.0
        e.move_to(self.graph.position_at_progress(lane_id, 0.0))
        e.heading = self.graph.heading_at_progress(lane_id, 0.0)
        e.set_route(self.graph.random_route(lane_id, self.FALLBACK_ROUTE_LENGTH))
