# runtime/registries.py
from collections.abc import Callable
from typing import Any

from lane_sim.app.protocols import MotionModel
from lane_sim.config.models import MotionGridModel, MotionLaneModel, MotionUnion
from lane_sim.domain.mechanics.motion import GridMotion, LaneMotion
from lane_sim.sim.rng import SPEEDS, TARGETS

MotionFactory = Callable[[MotionUnion, dict[str, Any]], MotionModel]

_motion_registry: dict[str, MotionFactory] = {}


def register_motion(kind: str):
    def deco(fn: MotionFactory):
        _motion_registry[kind] = fn
        return fn

    return deco


def make_motion(cfg: MotionUnion, *, deps: dict[str, Any]) -> MotionModel:
    """
    deps:
      - 'rng_registry': RNGRegistry
      - 'entity_kind': EntityKind the model will drive
      - 'population': KindModel for that entity kind
      - 'geometry', 'safe_point': for grid motion
      - 'graph': LaneGraph for lane motion
    """
    try:
        factory = _motion_registry[cfg.kind]
    except KeyError:
        raise ValueError(f"Unknown motion kind {cfg.kind!r}") from None
    return factory(cfg, deps)


@register_motion("grid")
def _make_grid(cfg: MotionGridModel, deps):
    rng = deps["rng_registry"].substream(TARGETS, deps["entity_kind"].value)
    return GridMotion(deps["geometry"], rng=rng, safe_point=deps["safe_point"])


@register_motion("lane")
def _make_lane(cfg: MotionLaneModel, deps):
    if not len(deps["graph"]):
        kind = deps["entity_kind"].value
        raise ValueError(f"{kind!r} uses lane motion but the lane graph is empty")
    kind_cfg = deps["population"]
    rng = deps["rng_registry"].substream(SPEEDS, deps["entity_kind"].value)
    return LaneMotion(
        deps["graph"],
        rng=rng,
        speed_range=kind_cfg.speed_range,
        route_length=max(2, kind_cfg.route_length),
    )


def registered_motion_kinds() -> list[str]:
    return sorted(_motion_registry)

