# tests/app/test_detectors.py
import pytest

from lane_sim.app.controllers.detectors import EventDetector
from lane_sim.app.events import OPERATIONAL_KINDS, REASONS, EventKind
from lane_sim.config.models import EventsModel
from lane_sim.domain.entities.entity import GRID_LANE, Entity, EntityKind
from lane_sim.sim.clock import ManualClock, seconds
from lane_sim.sim.rng import EVENTS, RNGRegistry


def _detector(seed=1, **overrides):
    cfg = EventsModel(**{"probability": 0.0, **overrides})
    return EventDetector(cfg, rng=RNGRegistry(seed).stream(EVENTS))


def _e(eid, x, y, *, speed=0.0, target_speed=1.0, lane_id=GRID_LANE):
    e = Entity(eid, EntityKind.LOAD, x, y, speed=speed, target_speed=target_speed)
    e.lane_id = lane_id
    e.zone_id = "A1"
    return e


# ---------------- congestion ----------------


def test_congestion_at_threshold_emits_one_event():
    det = _detector(congestion_threshold=3)
    ents = [_e(f"load-{i}", i * 10.0, 0.0, lane_id="L1") for i in range(3)]
    events = det.detect(ents, 1_000.0)
    assert len(events) == 1
    ev = events[0]
    assert ev.kind is EventKind.CONGESTION
    assert sorted(ev.asset_ids) == ["load-0", "load-1", "load-2"]
    assert ev.zone_id == "L1"
    assert ev.payload == {"occupancy": 3, "threshold": 3}


def test_congestion_below_threshold_is_quiet():
    det = _detector(congestion_threshold=3)
    ents = [_e("a", 0.0, 0.0, lane_id="L1"), _e("b", 10.0, 0.0, lane_id="L1")]
    assert det.detect(ents, 0.0) == []


def test_grid_entities_never_congest():
    det = _detector(congestion_threshold=3)
    ents = [_e(f"vehicle-{i}", i * 10.0, 0.0) for i in range(5)]
    assert det.congestion_events(ents, 0.0) == []


# ---------------- proximity ----------------


def test_near_collision_penalises_both_entities():
    det = _detector(collision_radius=1.5)
    a = _e("a", 0.0, 0.0, speed=0.5)
    b = _e("b", 1.0, 0.0, speed=0.0)
    events = det.detect([a, b], 0.0)
    assert [ev.kind for ev in events] == [EventKind.NEAR_COLLISION]
    assert events[0].asset_ids == ["a", "b"]
    assert events[0].payload["distance"] == pytest.approx(1.0)
    assert events[0].payload["closingSpeed"] == pytest.approx(0.5)
    assert a.target_speed == pytest.approx(0.5)
    assert b.target_speed == pytest.approx(0.5)


def test_stationary_entities_do_not_collide():
    det = _detector()
    a = _e("a", 0.0, 0.0, speed=0.05)
    b = _e("b", 1.0, 0.0, speed=0.0)
    assert det.proximity_events([a, b], 0.0) == []
    assert a.target_speed == 1.0


def test_far_entities_do_not_collide():
    det = _detector()
    assert det.proximity_events([_e("a", 0, 0, speed=1.0), _e("b", 1.5, 0, speed=1.0)], 0.0) == []
    assert det.proximity_events([_e("a", 0, 0, speed=1.0)], 0.0) == []


# ---------------- random events ----------------


def test_random_events_respect_cooldown():
    clock = ManualClock(seconds(40))
    det = _detector(probability=1.0, cooldown_s=30.0)
    e = _e("a", 0.0, 0.0)

    first = det.random_events([e], clock.now_ms())
    assert len(first) == 1
    ev = first[0]
    assert ev.kind in OPERATIONAL_KINDS
    assert ev.payload["reason"] in REASONS[ev.kind]
    assert ev.payload["severity"] in {"high", "medium"}
    assert e.last_event_ms == clock.now_ms()

    clock.advance(seconds(10))
    assert det.random_events([e], clock.now_ms()) == []
    clock.advance(seconds(21))
    assert len(det.random_events([e], clock.now_ms())) == 1


def test_zero_probability_never_fires():
    det = _detector(probability=0.0)
    assert det.random_events([_e("a", 0, 0)], seconds(3600)) == []


def test_event_ids_are_seeded():
    ents = [_e(f"l{i}", i * 10.0, 0.0, lane_id="L1") for i in range(3)]
    a = _detector(seed=9).detect(ents, 0.0)
    b = _detector(seed=9).detect(ents, 0.0)
    assert [ev.id for ev in a] == [ev.id for ev in b]
    assert a[0].id != _detector(seed=10).detect(ents, 0.0)[0].id


def test_event_wire_shape():
    det = _detector()
    ents = [_e(f"l{i}", i * 10.0, 0.0, lane_id="L1") for i in range(3)]
    d = det.detect(ents, 5.0)[0].to_dict()
    assert d["type"] == "congestion"
    assert d["zoneId"] == "L1"
    assert d["assetIds"] == ["l0", "l1", "l2"]
    assert d["t"] == 5.0
    assert set(d) == {"id", "t", "type", "assetIds", "zoneId", "payload"}


def test_every_operational_kind_has_a_reason_pool():
    assert set(REASONS) == set(OPERATIONAL_KINDS)
    assert all(REASONS[k] for k in OPERATIONAL_KINDS)
