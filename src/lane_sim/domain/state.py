# lane_sim/domain/state.py
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from lane_sim.domain.entities.entity import Entity, EntityKind


def lane_occupancy(entities: Iterable[Entity]) -> dict[str, list[str]]:
    """lane id -> occupant ids in iteration order; grid entities excluded."""
    out: dict[str, list[str]] = {}
    for e in entities:
        if e.on_grid:
            continue
        out.setdefault(e.lane_id, []).append(e.id)
    return out


@dataclass
class EntityStore:
    """Per-simulation entity records, owned by one scheduler."""

    entities: dict[str, Entity] = field(default_factory=dict)

    def add(self, e: Entity) -> None:
        if e.id in self.entities:
            raise ValueError(f"duplicate entity id {e.id!r}")
        self.entities[e.id] = e

    def get(self, entity_id: str) -> Entity:
        return self.entities[entity_id]

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities.values())

    def __len__(self) -> int:
        return len(self.entities)

    def of_kind(self, kind: EntityKind) -> list[Entity]:
        return [e for e in self.entities.values() if e.kind == kind]

    def lane_occupancy(self) -> dict[str, list[str]]:
        return lane_occupancy(self.entities.values())
