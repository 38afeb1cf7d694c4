# tests/io/test_config_loading.py
import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from lane_sim.app.build import build
from lane_sim.io.config import load_lane_network, load_scenario
from lane_sim.sim.clock import ManualClock

SCENARIOS = Path(__file__).resolve().parents[2] / "scenarios"

LANES = {
    "units": "meters",
    "lanes": [
        {"id": "L1", "points": [{"x": 0, "y": 0}, {"x": 10, "y": 0}]},
        {"id": "L2", "points": [[10, 0], [10, 10]], "width": 1.5},
    ],
}


def _write(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_load_lane_network_accepts_both_point_shapes(tmp_path):
    net = load_lane_network(_write(tmp_path / "lanes.json", LANES))
    assert [lane.id for lane in net.lanes] == ["L1", "L2"]
    assert net.lanes[0].points == [(0.0, 0.0), (10.0, 0.0)]
    assert net.lanes[1].width == 1.5


def test_scenario_lanes_path_is_relative_to_scenario(tmp_path):
    _write(tmp_path / "lanes.json", LANES)
    scenario = _write(tmp_path / "s.json", {"name": "x", "lanes": "lanes.json"})
    m = load_scenario(scenario)
    assert m.name == "x"
    assert len(m.lanes.lanes) == 2


def test_lanes_path_argument_wins(tmp_path):
    _write(tmp_path / "lanes.json", LANES)
    other = _write(tmp_path / "other.json", {"lanes": [LANES["lanes"][0]]})
    scenario = _write(tmp_path / "s.json", {"lanes": "lanes.json"})
    m = load_scenario(scenario, lanes_path=other)
    assert [lane.id for lane in m.lanes.lanes] == ["L1"]


def test_invalid_scenario_raises(tmp_path):
    with pytest.raises(ValidationError):
        load_scenario(_write(tmp_path / "s.json", {"sim": {"tick_ms": -5}}))


def test_shipped_scenario_builds_and_steps():
    model = load_scenario(SCENARIOS / "facility.json")
    clock = ManualClock(0.0)
    app = build(model, clock=clock, use_logging=False)
    assert "dock" in app.graph
    assert app.graph.connections("dock") == {"H2"}
    for _ in range(100):
        clock.advance(100.0)
        report = app.scheduler.step()
        assert len(report.positions) == 9


def test_inline_lanes_accept_point_objects(tmp_path):
    scenario = _write(tmp_path / "s.json", {"name": "inline", "lanes": LANES})
    m = load_scenario(scenario)
    assert [lane.id for lane in m.lanes.lanes] == ["L1", "L2"]
    assert m.lanes.lanes[0].points == [(0.0, 0.0), (10.0, 0.0)]
    assert m.lanes.lanes[1].points == [(10.0, 0.0), (10.0, 10.0)]
