# sim/scheduler.py
import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass, field

import numpy as np

from lane_sim.app.events import PositionTick, SimEvent
from lane_sim.app.protocols import Clock, Detector, EventCallback, MotionModel, PositionCallback
from lane_sim.domain.entities.entity import EntityKind
from lane_sim.domain.mechanics.motion import UpdateOutcome, apply_motion
from lane_sim.domain.mechanics.zones import ZoneClassifier
from lane_sim.domain.state import EntityStore

from .hooks import NoopHooks, SchedulerHooks


@dataclass
class TickReport:
    tick: int
    t: float  # epoch ms
    positions: list[PositionTick]
    events: list[SimEvent]
    resets: list[UpdateOutcome] = field(default_factory=list)


class TickScheduler:
    """
    Drives the simulation one fixed-interval step at a time.

    Each step moves every entity with its kind's motion model, runs the
    detector once over the result and hands one position batch plus one call
    per event to the registered callbacks. ``step`` may be called directly;
    ``start`` runs it on a single background thread every ``tick_ms``.
    """

    def __init__(
        self,
        store: EntityStore,
        motions: Mapping[EntityKind, MotionModel],
        detector: Detector,
        zones: ZoneClassifier,
        *,
        clock: Clock,
        rng: np.random.Generator,
        tick_ms: float = 100.0,
        sim_speed: float = 1.0,
        hooks: SchedulerHooks | None = None,
    ):
        self.store = store
        self.motions = dict(motions)
        self.detector = detector
        self.zones = zones
        self.clock = clock
        self.rng = rng
        self.tick_ms = tick_ms
        self.sim_speed = sim_speed
        self._hooks = hooks or NoopHooks()
        self._tick = 0
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._on_position: PositionCallback | None = None
        self._on_event: EventCallback | None = None

    @property
    def dt(self) -> float:
        """Simulated seconds per tick."""
        return self.tick_ms / 1000.0 * self.sim_speed

    @property
    def ticks(self) -> int:
        return self._tick

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------

    def subscribe(self, on_position_tick: PositionCallback, on_event: EventCallback) -> None:
        self._on_position = on_position_tick
        self._on_event = on_event

    def step(self) -> TickReport:
        t1 = time.perf_counter()
        self._tick += 1
        now = self.clock.now_ms()
        dt = self.dt
        entities = list(self.store)

        resets = []
        for e in entities:
            try:
                outcome = apply_motion(self.motions[e.kind], e, dt, now, self.zones)
            except Exception as exc:
                # reset itself failed; the entity keeps its last position
                self._hooks.error(reason="motion_failed", exc=exc, tick=self._tick, entity=e.id)
                continue
            if not outcome.ok:
                resets.append(outcome)
                self._hooks.entity_reset(outcome, tick=self._tick)

        try:
            events = self.detector.detect(entities, now)
        except Exception as exc:
            self._hooks.error(reason="detector_failed", exc=exc, tick=self._tick)
            events = []
        positions = [
            PositionTick(
                id=e.id,
                type=e.kind.value,
                x=e.x,
                y=e.y,
                speed=e.speed,
                heading=e.heading,
                zone_id=e.zone_id,
                confidence=0.90 + float(self.rng.random()) * 0.1,
                t=now,
            )
            for e in entities
        ]
        self._deliver(positions, events)
        self._hooks.tick_end(
            tick=self._tick,
            positions=len(positions),
            events=len(events),
            resets=len(resets),
            ms=(time.perf_counter() - t1) * 1000,
        )
        return TickReport(self._tick, now, positions, events, resets)

    def _deliver(self, positions: list[PositionTick], events: list[SimEvent]) -> None:
        if self._on_position is not None:
            try:
                self._on_position(positions)
            except Exception as exc:
                self._hooks.error(reason="position_callback", exc=exc, tick=self._tick)
        for ev in events:
            self._hooks.event(ev)
            if self._on_event is None:
                continue
            try:
                self._on_event(ev)
            except Exception as exc:
                self._hooks.error(reason="event_callback", exc=exc, tick=self._tick, event=ev.id)

    # -------------------------------------------------------------

    def start(self, on_position_tick: PositionCallback, on_event: EventCallback) -> bool:
        """
        Start the tick loop. Returns False (and changes nothing) while a loop
        thread is alive, including one still finishing after a timed-out stop.
        """
        with self._lock:
            if self.running:
                return False
            self.subscribe(on_position_tick, on_event)
            self._stop = threading.Event()
            self._hooks.run_start(
                tick_ms=self.tick_ms, sim_speed=self.sim_speed, entities=len(self.store)
            )
            self._thread = threading.Thread(
                target=self._loop, args=(self._stop,), name="sim-tick", daemon=True
            )
            self._thread.start()
            return True

    def stop(self, timeout: float = 2.0) -> bool:
        """
        Stop the tick loop. Returns False if it was not running. If the loop
        thread outlives ``timeout`` it stays registered until it exits.
        """
        with self._lock:
            thread = self._thread
            if thread is None:
                return False
            self._stop.set()
            if thread is not threading.current_thread():
                thread.join(timeout=timeout)
            if not thread.is_alive():
                self._thread = None
            return True

    def _loop(self, stop: threading.Event) -> None:
        t0 = time.perf_counter()
        start_tick = self._tick
        interval = self.tick_ms / 1000.0
        deadline = time.monotonic() + interval
        while not stop.wait(max(0.0, deadline - time.monotonic())):
            try:
                self.step()
            except Exception as exc:
                self._hooks.error(reason="tick_failed", exc=exc, tick=self._tick)
            deadline += interval
            now = time.monotonic()
            if deadline < now:
                # overran: skip the missed slots
                deadline = now + interval
        self._hooks.run_end(
            ticks=self._tick - start_tick, wall_ms=(time.perf_counter() - t0) * 1000
        )
