# main.py
import argparse
import sys
import time
from pathlib import Path

from lane_sim.app.build import build
from lane_sim.io.config import load_scenario
from lane_sim.io.recorder import AsyncSink, JsonlSink, Recorder

DEFAULT_SCENARIO = Path(__file__).parent / "scenarios" / "facility.json"


def run(scenario: str | Path, duration_s: float, lanes: str | None = None):
    model = load_scenario(scenario, lanes_path=lanes)

    sink = AsyncSink(JsonlSink(sys.stdout))
    app = build(model, recorder=Recorder(sink))

    app.start()
    try:
        time.sleep(duration_s)
    finally:
        app.stop()
        sink.flush()
        sink.stop()
    return app


if __name__ == "__main__":
    p = argparse.ArgumentParser(description="Run a facility movement scenario")
    p.add_argument("scenario", nargs="?", default=DEFAULT_SCENARIO, help="scenario JSON file")
    p.add_argument("--lanes", help="lanes JSON file (overrides the scenario's lanes)")
    p.add_argument("--duration", type=float, default=10.0, help="seconds to run")
    args = p.parse_args()
    run(args.scenario, args.duration, args.lanes)
