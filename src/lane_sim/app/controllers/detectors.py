# app/controllers/detectors.py
from collections.abc import Sequence

import numpy as np

from lane_sim.app.events import OPERATIONAL_KINDS, REASONS, EventKind, SimEvent
from lane_sim.app.protocols import Detector
from lane_sim.config.models import EventsModel
from lane_sim.domain.entities.entity import Entity
from lane_sim.domain.state import lane_occupancy
from lane_sim.sim.clock import seconds
from lane_sim.sim.rng import random_uuid


class EventDetector(Detector):
    """
    Derives discrete events from the entity set after motion has run:
      • random operational events, throttled per entity by a cooldown
      • near-collisions between moving entities (also slows both down)
      • lane congestion when occupancy meets the threshold
    """

    def __init__(self, cfg: EventsModel, *, rng: np.random.Generator):
        self.cfg = cfg
        self.rng = rng

    def detect(self, entities: Sequence[Entity], now_ms: float) -> list[SimEvent]:
        out = self.random_events(entities, now_ms)
        out += self.proximity_events(entities, now_ms)
        out += self.congestion_events(entities, now_ms)
        return out

    def _event(self, now_ms, kind: EventKind, asset_ids, zone_id, payload) -> SimEvent:
        return SimEvent(
            id=random_uuid(self.rng),
            t=now_ms,
            kind=kind,
            asset_ids=list(asset_ids),
            zone_id=zone_id,
            payload=payload,
        )

    def _reason(self, kind: EventKind) -> str:
        pool = REASONS.get(kind, ("unknown",))
        return pool[int(self.rng.integers(len(pool)))]

    # ---------------------------------------------------------------

    def random_events(self, entities: Sequence[Entity], now_ms: float) -> list[SimEvent]:
        cooldown_ms = seconds(self.cfg.cooldown_s)
        out = []
        for e in entities:
            if self.rng.random() >= self.cfg.probability:
                continue
            if now_ms - e.last_event_ms < cooldown_ms:
                continue
            kind = OPERATIONAL_KINDS[int(self.rng.integers(len(OPERATIONAL_KINDS)))]
            e.last_event_ms = now_ms
            severity = "high" if self.rng.random() < self.cfg.high_severity_p else "medium"
            out.append(
                self._event(
                    now_ms,
                    kind,
                    [e.id],
                    e.zone_id,
                    {"reason": self._reason(kind), "severity": severity},
                )
            )
        return out

    def proximity_events(self, entities: Sequence[Entity], now_ms: float) -> list[SimEvent]:
        n = len(entities)
        if n < 2:
            return []
        xy = np.array([(e.x, e.y) for e in entities], dtype=float)
        speeds = np.array([e.speed for e in entities], dtype=float)
        dist = np.linalg.norm(xy[:, None, :] - xy[None, :, :], axis=-1)
        moving = speeds > self.cfg.motion_threshold
        ii, jj = np.triu_indices(n, k=1)
        hit = (dist[ii, jj] < self.cfg.collision_radius) & (moving[ii] | moving[jj])

        out = []
        for i, j in zip(ii[hit], jj[hit]):
            a, b = entities[int(i)], entities[int(j)]
            out.append(
                self._event(
                    now_ms,
                    EventKind.NEAR_COLLISION,
                    [a.id, b.id],
                    a.zone_id or b.zone_id or "unknown",
                    {
                        "distance": round(float(dist[i, j]), 2),
                        "closingSpeed": abs(a.speed - b.speed),
                    },
                )
            )
            a.target_speed *= self.cfg.collision_penalty
            b.target_speed *= self.cfg.collision_penalty
        return out

    def congestion_events(self, entities: Sequence[Entity], now_ms: float) -> list[SimEvent]:
        """One event per lane at or over the threshold. Grid-driven entities are not
        pooled under a shared "grid" lane; they never count toward congestion."""
        threshold = self.cfg.congestion_threshold
        return [
            self._event(
                now_ms,
                EventKind.CONGESTION,
                ids,
                lane_id,
                {"occupancy": len(ids), "threshold": threshold},
            )
            for lane_id, ids in lane_occupancy(entities).items()
            if len(ids) >= threshold
        ]
