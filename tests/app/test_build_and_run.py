# tests/app/test_build_and_run.py
import math
import time
from types import SimpleNamespace

import pytest

from lane_sim.app.build import build, resolve_layout
from lane_sim.config.models import GridModel, ScenarioModel
from lane_sim.domain.entities.entity import GRID_LANE, EntityKind
from lane_sim.domain.entities.geography import Point
from lane_sim.domain.mechanics.lane_graph import LaneGraph
from lane_sim.io.recorder import MemorySink, Recorder
from lane_sim.runtime.registries import make_motion, registered_motion_kinds
from lane_sim.sim.clock import ManualClock
from lane_sim.sim.rng import RNGRegistry

SQUARE = {
    "units": "meters",
    "lanes": [
        {"id": "A", "points": [[8, 2], [28, 2]]},
        {"id": "B", "points": [[28, 2], [28, 18]]},
        {"id": "C", "points": [[28, 18], [8, 18]]},
        {"id": "D", "points": [[8, 18], [8, 2]]},
    ],
}


def _cfg(**overrides):
    return {"name": "test", "run_id": "t-1", "sim": {"seed": 1}, "lanes": SQUARE, **overrides}


def test_build_runs():
    clock = ManualClock(1_700_000_000_000.0)
    app = build(_cfg(), clock=clock, use_logging=False)
    for _ in range(50):
        clock.advance(100.0)
        report = app.scheduler.step()
        assert len(report.positions) == len(app.store) == 9
        for rec in report.positions:
            assert math.isfinite(rec.x) and math.isfinite(rec.y)
    assert app.scheduler.ticks == 50


def test_default_population_placement():
    clock = ManualClock(1_000_000.0)
    app = build(_cfg(), clock=clock, use_logging=False)
    ids = [e.id for e in app.store]
    assert ids == [
        "vehicle-1",
        "vehicle-2",
        "load-3",
        "load-4",
        "load-5",
        "load-6",
        "person-7",
        "person-8",
        "person-9",
    ]
    vehicles = app.store.of_kind(EntityKind.VEHICLE)
    for i, v in enumerate(vehicles):
        assert v.lane_id == GRID_LANE
        assert app.geometry.is_on_path(v.pos)
        assert 0.8 <= v.speed <= 2.2
        assert v.last_event_ms == 1_000_000.0 - i * 2000.0
    for e in app.store.of_kind(EntityKind.LOAD):
        assert e.lane_id in app.graph
        assert 0.0 <= e.lane_progress <= 0.5
        assert e.route[0] == e.lane_id
        assert len(e.route) <= 3
    for e in app.store.of_kind(EntityKind.PERSON):
        assert e.lane_progress <= 0.3
        assert 0.3 <= e.speed <= 1.5


def test_same_seed_same_run():
    def run():
        clock = ManualClock(0.0)
        app = build(_cfg(), clock=clock, use_logging=False)
        out = []
        for _ in range(20):
            clock.advance(100.0)
            out.append([(p.id, p.x, p.y) for p in app.scheduler.step().positions])
        return out

    assert run() == run()


def test_lane_kinds_need_lanes():
    with pytest.raises(ValueError):
        build({"name": "empty"}, clock=ManualClock(), use_logging=False)


def test_grid_only_scenario_needs_no_lanes():
    cfg = {
        "population": {"load": {"count": 0}, "person": {"count": 0}},
        "grid": {"preset": "overview"},
    }
    app = build(cfg, clock=ManualClock(), use_logging=False)
    assert len(app.store) == 2
    # overview has no start points: vehicles start on path nodes
    assert all(app.geometry.is_on_path(v.pos) for v in app.store)
    assert set(app.motions) == {EntityKind.VEHICLE}


def test_resolve_layout_overrides():
    layout = resolve_layout(
        GridModel(
            preset="overview",
            segments=[{"id": "s", "start": (0, 0), "end": (10, 0)}],
            start_points=[(5, 0)],
            on_path_tolerance=0.2,
        )
    )
    assert [s.id for s in layout.segments] == ["s"]
    assert layout.start_points == (Point(5, 0),)
    assert layout.on_path_tolerance == 0.2
    assert layout.snap_max_distance == 2.0  # from the preset
    assert layout.safe_point == Point(9.5, 11.2)


def test_app_start_defaults_to_recorder():
    sink = MemorySink()
    app = build(
        _cfg(sim={"seed": 1, "tick_ms": 10}), use_logging=False, recorder=Recorder(sink)
    )
    assert app.start()
    deadline = time.monotonic() + 2.0
    while not sink.of_stream("positions") and time.monotonic() < deadline:
        time.sleep(0.01)
    assert app.stop()
    batches = sink.of_stream("positions")
    assert batches
    assert len(batches[0]["data"]) == 9
    assert {"id", "type", "x", "y", "speed", "heading", "zoneId", "confidence", "t"} == set(
        batches[0]["data"][0]
    )


def test_motion_registry():
    assert registered_motion_kinds() == ["grid", "lane"]
    with pytest.raises(ValueError):
        make_motion(SimpleNamespace(kind="teleport"), deps={})


def test_lane_motion_factory_rejects_empty_graph():
    model = ScenarioModel()
    with pytest.raises(ValueError):
        make_motion(
            model.motion[EntityKind.LOAD],
            deps={
                "rng_registry": RNGRegistry(0),
                "entity_kind": EntityKind.LOAD,
                "population": model.population.load,
                "graph": LaneGraph([]),
            },
        )
