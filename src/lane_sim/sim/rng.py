# sim/rng.py
from __future__ import annotations

import uuid
from dataclasses import dataclass
from functools import cache
from zlib import crc32

import numpy as np

# Named streams used by the engine; one generator per concern keeps draws for
# route choice independent from draws for event emission.
ROUTES = "routes"
TARGETS = "targets"
SPEEDS = "speeds"
EVENTS = "events"
POPULATION = "population"
TELEMETRY = "telemetry"


def _u32(x: int) -> int:
    return int(x & 0xFFFFFFFF)


def _crc32_u32(s: str) -> int:
    return _u32(crc32(s.encode("utf-8")))


@dataclass(frozen=True)
class RNGKey:
    """Stream name plus optional sub-keys (entity ids, lane ids, ...)."""

    stream: str
    parts: tuple[int, ...]

    @classmethod
    def from_parts(cls, stream: str, *parts: object) -> RNGKey:
        norm: list[int] = [_crc32_u32(stream)]
        for p in parts:
            if isinstance(p, (int, np.integer)):
                norm.append(_u32(int(p)))
            elif isinstance(p, str):
                norm.append(_crc32_u32(p))
            else:
                norm.append(_crc32_u32(repr(p)))
        return cls(stream=stream, parts=tuple(norm))


class RNGRegistry:
    """
    Deterministic registry of numpy.random.Generator streams.
    Seed path: [master_seed, scenario, *key.parts]. Two registries built with
    the same seed and scenario hand out identical streams.
    """

    def __init__(self, master_seed: int, *, scenario: str | int = 0):
        self.master_seed = _u32(master_seed)
        self.scenario_tag = _crc32_u32(str(scenario))

    @cache
    def generator(self, key: RNGKey) -> np.random.Generator:
        ss = np.random.SeedSequence(entropy=[self.master_seed, self.scenario_tag, *key.parts])
        return np.random.Generator(np.random.PCG64(ss))

    def stream(self, name: str) -> np.random.Generator:
        return self.generator(RNGKey.from_parts(name))

    def substream(self, name: str, *parts: object) -> np.random.Generator:
        return self.generator(RNGKey.from_parts(name, *parts))


def random_uuid(rng: np.random.Generator) -> str:
    """Version 4 UUID drawn from a seeded generator instead of os.urandom."""
    return str(uuid.UUID(bytes=rng.bytes(16), version=4))
