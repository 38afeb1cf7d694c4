# sim/clock.py
from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import UTC, datetime

SEC = 1000.0
MIN = 60 * SEC


def seconds(x: float) -> float:
    return x * SEC


def ms_to_s(x: float) -> float:
    return x / SEC


class SystemClock:
    """Wall clock in epoch milliseconds."""

    def now_ms(self) -> float:
        return time.time() * SEC

    def to_wall(self, t_ms: float) -> datetime:
        return datetime.fromtimestamp(t_ms / SEC, tz=UTC)


@dataclass
class ManualClock:
    """Clock that only moves when told to; used by tests and replays."""

    t_ms: float = 0.0

    @classmethod
    def utc_epoch(cls, y: int, m: int, d: int, hh=0, mm=0, ss=0) -> ManualClock:
        return cls(datetime(y, m, d, hh, mm, ss, tzinfo=UTC).timestamp() * SEC)

    def now_ms(self) -> float:
        return self.t_ms

    def advance(self, dt_ms: float) -> float:
        if dt_ms < 0:
            raise ValueError(f"clock cannot move backwards: {dt_ms}")
        self.t_ms += dt_ms
        return self.t_ms

    def to_wall(self, t_ms: float) -> datetime:
        return datetime.fromtimestamp(t_ms / SEC, tz=UTC)
