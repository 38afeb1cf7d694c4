# app/controllers/population.py
import math
from collections.abc import Sequence

import numpy as np

from lane_sim.config.models import PopulationModel
from lane_sim.domain.entities.entity import GRID_LANE, Entity, EntityKind
from lane_sim.domain.entities.geography import Point
from lane_sim.domain.mechanics.lane_graph import LaneGraph
from lane_sim.domain.mechanics.motion import sample_speed
from lane_sim.domain.mechanics.path_geometry import PathGeometry
from lane_sim.domain.mechanics.zones import ZoneClassifier
from lane_sim.domain.state import EntityStore
from lane_sim.sim.clock import seconds

# vehicles get staggered event clocks so their first random events do not line up
EVENT_STAGGER_MS = seconds(2.0)


class PopulationSeeder:
    """Creates the fixed population once, with a type-specific initial placement."""

    def __init__(
        self,
        cfg: PopulationModel,
        *,
        grid_kinds: set[EntityKind],
        graph: LaneGraph | None,
        geometry: PathGeometry,
        start_points: Sequence[Point],
        zones: ZoneClassifier,
        rng: np.random.Generator,
    ):
        self.cfg = cfg
        self.grid_kinds = grid_kinds
        self.graph = graph
        self.geometry = geometry
        self.start_points = list(start_points)
        self.zones = zones
        self.rng = rng

    def seed(self, store: EntityStore, now_ms: float) -> EntityStore:
        counter = 1
        for kind in EntityKind:
            kind_cfg = self.cfg.for_kind(kind)
            for i in range(kind_cfg.count):
                eid = f"{kind.value}-{counter}"
                counter += 1
                if kind in self.grid_kinds:
                    e = self._grid_entity(eid, kind, i, now_ms)
                else:
                    e = self._lane_entity(eid, kind, now_ms)
                e.zone_id = self.zones.classify(e.x, e.y)
                store.add(e)
        return store

    def _grid_entity(self, eid: str, kind: EntityKind, i: int, now_ms: float) -> Entity:
        if not self.start_points:
            raise ValueError("grid motion needs at least one start point")
        p = self.geometry.snap_to_nearest_path(self.start_points[i % len(self.start_points)])
        seg = self.geometry.path_at(p)
        flip = i % 2 == 1
        if seg is None or seg.horizontal:
            heading = math.pi if flip else 0.0
        else:
            heading = 3 * math.pi / 2 if flip else math.pi / 2
        speed = sample_speed(self.rng, self.cfg.for_kind(kind).speed_range)
        return Entity(
            id=eid,
            kind=kind,
            x=p.x,
            y=p.y,
            speed=speed,
            target_speed=speed,
            heading=heading,
            lane_id=GRID_LANE,
            last_event_ms=now_ms - i * EVENT_STAGGER_MS,
        )

    def _lane_entity(self, eid: str, kind: EntityKind, now_ms: float) -> Entity:
        if self.graph is None or not len(self.graph):
            raise ValueError(f"{kind.value!r} uses lane motion but no lanes are configured")
        kind_cfg = self.cfg.for_kind(kind)
        ids = self.graph.lane_ids
        lane_id = ids[int(self.rng.integers(len(ids)))]
        progress = float(self.rng.random() * kind_cfg.max_initial_progress)
        p = self.graph.position_at_progress(lane_id, progress)
        e = Entity(
            id=eid,
            kind=kind,
            x=p.x,
            y=p.y,
            speed=sample_speed(self.rng, kind_cfg.speed_range),
            target_speed=sample_speed(self.rng, kind_cfg.speed_range),
            heading=self.graph.heading_at_progress(lane_id, progress),
            lane_id=lane_id,
            lane_progress=progress,
            last_event_ms=now_ms,
        )
        e.set_route(self.graph.random_route(lane_id, kind_cfg.route_length))
        return e
