# io/recorder.py
import json
import logging
import queue
import sys
import threading
from typing import Any, Protocol

from lane_sim.app.events import PositionTick, SimEvent

log = logging.getLogger("lane_sim.recorder")


class Sink(Protocol):
    def write(self, record: dict[str, Any]) -> None: ...


class JsonlSink:
    def __init__(self, fp=sys.stdout):
        self.fp = fp

    def write(self, record: dict[str, Any]) -> None:
        self.fp.write(json.dumps(record) + "\n")


class MemorySink:
    def __init__(self):
        self.records: list[dict[str, Any]] = []

    def write(self, record: dict[str, Any]) -> None:
        self.records.append(record)

    def of_stream(self, stream: str) -> list[dict[str, Any]]:
        return [r for r in self.records if r["stream"] == stream]


# Async sink (non-blocking, drops on overflow)
class AsyncSink:
    def __init__(self, sink: Sink, maxsize: int = 10000):
        self.sink, self.q = sink, queue.Queue(maxsize=maxsize)
        self.dropped = 0
        self._stop = threading.Event()
        self._t = threading.Thread(target=self._run, name="recorder-sink", daemon=True)
        self._t.start()

    def write(self, record: dict[str, Any]) -> None:
        try:
            self.q.put_nowait(record)
        except queue.Full:
            self.dropped += 1  # never block the tick

    def _run(self):
        while not (self._stop.is_set() and self.q.empty()):
            try:
                record = self.q.get(timeout=0.05)
            except queue.Empty:
                continue
            try:
                self.sink.write(record)
            except Exception:
                log.exception("async sink write failed")
            finally:
                self.q.task_done()

    def flush(self):
        self.q.join()

    def stop(self):
        self._stop.set()
        self._t.join(timeout=1.0)


class Recorder:
    """
    Fans the two output streams out to sinks. ``on_position_tick`` and
    ``on_event`` match the scheduler callbacks, so a Recorder can be passed to
    ``TickScheduler.start`` directly.
    """

    def __init__(self, *sinks: Sink):
        self.sinks = sinks or (JsonlSink(),)

    def _emit(self, record: dict[str, Any]) -> None:
        for s in self.sinks:
            try:
                s.write(record)
            except Exception:
                log.exception("sink %s failed", type(s).__name__)

    def on_position_tick(self, records: list[PositionTick]) -> None:
        self._emit({"stream": "positions", "data": [r.to_dict() for r in records]})

    def on_event(self, ev: SimEvent) -> None:
        self._emit({"stream": "event", "data": ev.to_dict()})
