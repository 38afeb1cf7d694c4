import math
from dataclasses import dataclass, field
from enum import Enum


# Core geometry types; coordinates are facility units (meters unless a lane
# network declares "px").
@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def dist(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class Lane:
    id: str
    points: tuple[Point, ...]
    width: float | None = None
    connects_to: tuple[str, ...] = field(default_factory=tuple)  # declared one-way links

    @property
    def start(self) -> Point:
        return self.points[0]

    @property
    def end(self) -> Point:
        return self.points[-1]

    @property
    def segment_count(self) -> int:
        return len(self.points) - 1


class SegmentKind(str, Enum):
    BOUNDARY = "boundary"
    CONNECTOR = "connector"
    ZONE_LINE = "zone-line"


@dataclass(frozen=True)
class PathSegment:
    id: str
    start: Point
    end: Point
    kind: SegmentKind = SegmentKind.CONNECTOR

    @property
    def length(self) -> float:
        return self.start.dist(self.end)

    @property
    def horizontal(self) -> bool:
        return abs(self.end.x - self.start.x) >= abs(self.end.y - self.start.y)


@dataclass(frozen=True)
class NearestPoint:
    lane_id: str
    point: Point
    progress: float
    distance: float
