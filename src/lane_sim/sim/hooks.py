# sim/hooks.py
from typing import Protocol

from lane_sim.app.events import SimEvent
from lane_sim.domain.mechanics.motion import UpdateOutcome


class SchedulerHooks(Protocol):
    def run_start(self, *, tick_ms, sim_speed, entities): ...
    def run_end(self, *, ticks, wall_ms): ...
    def tick_end(self, *, tick, positions, events, resets, ms): ...
    def entity_reset(self, outcome: UpdateOutcome, *, tick): ...
    def event(self, ev: SimEvent): ...
    def error(self, *, reason: str, exc: BaseException, **kw): ...


class NoopHooks:
    def run_start(self, **_):
        pass

    def run_end(self, **_):
        pass

    def tick_end(self, **_):
        pass

    def entity_reset(self, *_, **__):
        pass

    def event(self, *_, **__):
        pass

    def error(self, *_, **__):
        pass
