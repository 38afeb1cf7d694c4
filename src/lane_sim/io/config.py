# src/lane_sim/io/config.py
import json
from pathlib import Path

from lane_sim.config.models import LaneNetworkModel, ScenarioModel


def _read_json(path: str | Path):
    with open(Path(path).expanduser(), encoding="utf-8") as f:
        return json.load(f)


def _normalise_points(raw_lanes: dict) -> dict:
    """Rewrite {x, y} point objects as (x, y) pairs, in place."""
    for lane in raw_lanes.get("lanes", []):
        lane["points"] = [
            (p["x"], p["y"]) if isinstance(p, dict) else tuple(p) for p in lane.get("points", [])
        ]
    return raw_lanes


def load_lane_network(path: str | Path) -> LaneNetworkModel:
    """Read a lanes file: {"units": "meters", "lanes": [{"id", "points": [{x, y}] | [[x, y]]}]}."""
    return LaneNetworkModel.model_validate(_normalise_points(_read_json(path)))


def load_scenario(path: str | Path, *, lanes_path: str | Path | None = None) -> ScenarioModel:
    """
    Read a scenario file. ``lanes`` may be inline or a path (relative to the
    scenario file); ``lanes_path`` overrides both.
    """
    path = Path(path)
    raw = _read_json(path)
    if lanes_path is not None:
        raw["lanes"] = load_lane_network(lanes_path).model_dump()
    elif isinstance(raw.get("lanes"), str):
        raw["lanes"] = load_lane_network(path.parent / raw["lanes"]).model_dump()
    elif isinstance(raw.get("lanes"), dict):
        _normalise_points(raw["lanes"])
    return ScenarioModel.model_validate(raw)
