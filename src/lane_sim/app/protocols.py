from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Protocol, runtime_checkable

from lane_sim.app.events import PositionTick, SimEvent
from lane_sim.domain.entities.entity import Entity

# The two producer callbacks the engine drives once per tick.
PositionCallback = Callable[[list[PositionTick]], None]
EventCallback = Callable[[SimEvent], None]


@runtime_checkable
class Clock(Protocol):
    """Source of epoch-millisecond timestamps for ticks, events and cooldowns."""

    def now_ms(self) -> float: ...
    def to_wall(self, t_ms: float) -> datetime: ...


@runtime_checkable
class MotionModel(Protocol):
    """
    Per-entity movement strategy, fixed per entity kind for a run.
      • update: advance one entity by dt simulated seconds (may raise).
      • reset: put the entity back in a known-valid state after a failure.
    Units: facility units for positions, seconds for dt, radians for heading.
    """

    def update(self, e: Entity, dt: float, now_ms: float) -> None: ...
    def reset(self, e: Entity) -> None: ...


@runtime_checkable
class Detector(Protocol):
    def detect(self, entities: Sequence[Entity], now_ms: float) -> list[SimEvent]: ...
