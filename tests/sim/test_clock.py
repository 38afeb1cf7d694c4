# tests/sim/test_clock.py
import time
from datetime import UTC, datetime

import pytest

from lane_sim.sim.clock import MIN, ManualClock, SystemClock, ms_to_s, seconds


def test_unit_helpers():
    assert seconds(30) == 30_000.0
    assert ms_to_s(2_500.0) == 2.5
    assert MIN == 60_000.0


def test_manual_clock_advances_and_maps_to_wall():
    c = ManualClock.utc_epoch(2025, 1, 1)
    t0 = c.now_ms()
    assert c.to_wall(t0) == datetime(2025, 1, 1, tzinfo=UTC)
    c.advance(seconds(90))
    assert c.to_wall(c.now_ms()) == datetime(2025, 1, 1, 0, 1, 30, tzinfo=UTC)


def test_manual_clock_never_goes_backwards():
    c = ManualClock(1_000.0)
    with pytest.raises(ValueError):
        c.advance(-1.0)
    assert c.now_ms() == 1_000.0


def test_system_clock_is_epoch_ms():
    now = SystemClock().now_ms()
    assert abs(now - time.time() * 1000.0) < 5_000.0
