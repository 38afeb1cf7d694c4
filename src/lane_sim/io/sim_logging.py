# io/sim_logging.py
import json
import logging
import sys

from lane_sim.app.events import SimEvent
from lane_sim.domain.mechanics.motion import UpdateOutcome, UpdateStatus
from lane_sim.io.recorder import Recorder
from lane_sim.sim.hooks import NoopHooks


def _default_json_logger(name="lane_sim", level="INFO"):
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler(sys.stderr)

        class _JsonFormatter(logging.Formatter):
            def format(self, record: logging.LogRecord) -> str:
                payload = {
                    "level": record.levelname,
                    "msg": record.getMessage(),
                    "logger": record.name,
                }
                extra = getattr(record, "extra", None)
                if isinstance(extra, dict):
                    payload.update(extra)
                return json.dumps(payload, default=str)

        h.setFormatter(_JsonFormatter())
        logger.addHandler(h)
    logger.setLevel(level)
    return logger


class SimLogging(NoopHooks):
    """
    Structured logs for the tick loop, plus forwarding of detected events to a
    recorder when one is attached.
    """

    def __init__(
        self,
        run_id: str = "local",
        clock=None,
        level: str = "INFO",
        debug: bool = False,
        sample_every: int = 50,
        logger: logging.Logger | None = None,
        recorder: Recorder | None = None,
    ):
        self.run_id, self.clock, self.debug, self.sample_every = (
            run_id,
            clock,
            debug,
            max(1, sample_every),
        )
        self.recorder = recorder
        self.log = logger or _default_json_logger(level=level)

    def _emit(self, level: int, msg: str, **extra):
        payload = {"run_id": self.run_id}
        if self.clock is not None and "t" in extra:
            payload["wall"] = self.clock.to_wall(extra["t"]).isoformat()
        self.log.log(level, msg, extra={"extra": {**payload, **extra}})

    # scheduler lifecycle

    def run_start(self, *, tick_ms, sim_speed, entities):
        self._emit(
            logging.INFO, "run_start", tick_ms=tick_ms, sim_speed=sim_speed, entities=entities
        )

    def run_end(self, *, ticks, wall_ms):
        self._emit(logging.INFO, "run_end", ticks=ticks, wall_ms=round(wall_ms, 1))

    def tick_end(self, *, tick, positions, events, resets, ms):
        if tick % self.sample_every == 0:
            level = logging.INFO
        elif self.debug:
            level = logging.DEBUG
        else:
            return
        self._emit(
            level, "tick", tick=tick, positions=positions, events=events, resets=resets, ms=ms
        )

    def entity_reset(self, outcome: UpdateOutcome, *, tick):
        level = logging.ERROR if outcome.status is UpdateStatus.CONFIG_ERROR else logging.WARNING
        self._emit(
            level,
            "entity_reset",
            tick=tick,
            entity_id=outcome.entity_id,
            status=outcome.status.value,
            error=outcome.error,
        )

    def error(self, *, reason: str, exc: BaseException, **extra):
        self._emit(logging.ERROR, "scheduler_error", reason=reason, error=repr(exc), **extra)

    # detected events

    def event(self, ev: SimEvent):
        self._emit(
            logging.INFO,
            ev.kind.value,
            t=ev.t,
            event_id=ev.id,
            asset_ids=ev.asset_ids,
            zone_id=ev.zone_id,
        )
        if self.recorder:
            self.recorder.on_event(ev)
