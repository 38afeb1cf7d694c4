# domain/entities/entity.py
from dataclasses import dataclass, field
from enum import Enum

from lane_sim.domain.entities.geography import Point

# lane_id value for entities driven by grid motion instead of a lane polyline
GRID_LANE = "grid"


class EntityKind(str, Enum):
    VEHICLE = "vehicle"
    LOAD = "load"
    PERSON = "person"


@dataclass
class Entity:
    id: str
    kind: EntityKind
    x: float
    y: float
    speed: float
    target_speed: float
    heading: float = 0.0  # radians, counter-clockwise from +x
    lane_id: str = GRID_LANE
    lane_progress: float = 0.0
    route: list[str] = field(default_factory=list)
    route_index: int = 0
    last_event_ms: float = 0.0
    zone_id: str = "unknown"
    target: Point | None = None  # grid mode only

    @property
    def pos(self) -> Point:
        return Point(self.x, self.y)

    def move_to(self, p: Point) -> None:
        self.x, self.y = p.x, p.y

    @property
    def on_grid(self) -> bool:
        return self.lane_id == GRID_LANE

    def set_route(self, route: list[str], index: int = 0) -> None:
        if not route:
            raise ValueError(f"empty route for {self.id}")
        self.route = route
        self.route_index = min(index, len(route) - 1)
