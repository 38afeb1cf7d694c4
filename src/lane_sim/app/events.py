# app/events.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventKind(str, Enum):
    # values are the wire names consumers already switch on
    CONGESTION = "congestion"
    BLOCKED = "blocked"
    NEAR_COLLISION = "nearCollision"
    DWELL_EXCEEDED = "dwellExceeded"
    ZONE_BREACH = "zoneBreach"


# kinds the random operational detector draws from
OPERATIONAL_KINDS = (EventKind.BLOCKED, EventKind.DWELL_EXCEEDED, EventKind.ZONE_BREACH)

# reason phrase pools, one per operational kind
REASONS: dict[EventKind, tuple[str, ...]] = {
    EventKind.BLOCKED: ("fallen pallet", "maintenance work", "temporary obstruction"),
    EventKind.DWELL_EXCEEDED: (
        "extended pick operation",
        "manual intervention required",
        "system delay",
    ),
    EventKind.ZONE_BREACH: ("unauthorized access", "navigation error", "emergency override"),
}


@dataclass
class SimEvent:
    id: str
    t: float  # epoch ms
    kind: EventKind
    asset_ids: list[str]
    zone_id: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "t": self.t,
            "type": self.kind.value,
            "assetIds": list(self.asset_ids),
            "zoneId": self.zone_id,
            "payload": dict(self.payload),
        }


@dataclass(frozen=True)
class PositionTick:
    id: str
    type: str
    x: float
    y: float
    speed: float
    heading: float  # radians
    zone_id: str
    confidence: float  # [0.90, 1.00)
    t: float  # epoch ms

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "x": self.x,
            "y": self.y,
            "speed": self.speed,
            "heading": self.heading,
            "zoneId": self.zone_id,
            "confidence": self.confidence,
            "t": self.t,
        }
