import math
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from lane_sim.domain.entities.entity import EntityKind


class SimModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    seed: int = 0
    tick_ms: int = Field(default=100, gt=0)
    sim_speed: float = Field(default=1.0, gt=0)


class LogModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False
    sample_every: int = 50  # ticks between summary lines


# ----------------- LANES ---------------------


class LaneModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    id: str
    points: list[tuple[float, float]]
    width: float | None = None
    connects_to: list[str] = Field(default_factory=list)

    @field_validator("points")
    @classmethod
    def _polyline(cls, v):
        if len(v) < 2:
            raise ValueError("a lane needs at least 2 points")
        return v


class LaneNetworkModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    units: Literal["px", "meters"] = "meters"
    lanes: list[LaneModel] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_ids(self):
        seen: set[str] = set()
        for lane in self.lanes:
            if lane.id in seen:
                raise ValueError(f"duplicate lane id {lane.id!r}")
            seen.add(lane.id)
        for lane in self.lanes:
            missing = [t for t in lane.connects_to if t not in seen]
            if missing:
                raise ValueError(f"lane {lane.id!r} connects to unknown lanes {missing}")
        return self


# ----------------- POPULATION ---------------------


class KindModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    count: int = Field(default=0, ge=0)
    speed_range: tuple[float, float] = (0.5, 1.5)  # m/s
    route_length: int = Field(default=5, ge=1)
    max_initial_progress: float = Field(default=0.0, ge=0.0, le=1.0)

    @field_validator("speed_range")
    @classmethod
    def _ordered(cls, v: tuple[float, float], info: ValidationInfo):
        lo, hi = v
        if lo < 0 or hi < lo:
            raise ValueError(f"{info.field_name} must satisfy 0 <= lo <= hi, got {v}")
        return v


class PopulationModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    vehicle: KindModel = Field(default_factory=lambda: KindModel(count=2, speed_range=(0.8, 2.2)))
    load: KindModel = Field(
        default_factory=lambda: KindModel(
            count=4, speed_range=(0.5, 1.8), route_length=3, max_initial_progress=0.5
        )
    )
    person: KindModel = Field(
        default_factory=lambda: KindModel(
            count=3, speed_range=(0.3, 1.5), route_length=4, max_initial_progress=0.3
        )
    )

    def for_kind(self, kind: EntityKind) -> KindModel:
        return getattr(self, kind.value)


# ----------------- EVENTS ---------------------


class EventsModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    probability: float = Field(default=0.001, ge=0.0, le=1.0)  # per entity per tick
    cooldown_s: float = Field(default=30.0, ge=0.0)
    high_severity_p: float = Field(default=0.3, ge=0.0, le=1.0)
    collision_radius: float = Field(default=1.5, ge=0.0)
    motion_threshold: float = Field(default=0.1, ge=0.0)
    collision_penalty: float = Field(default=0.5, ge=0.0, le=1.0)
    congestion_threshold: int = Field(default=3, ge=1)


# ----------------- GRID ---------------------


class PathSegmentModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    id: str
    start: tuple[float, float]
    end: tuple[float, float]
    kind: Literal["boundary", "connector", "zone-line"] = "connector"


class GridModel(BaseModel):
    """Path network for grid motion. Unset fields fall back to the preset."""

    model_config = ConfigDict(extra="forbid")
    preset: Literal["facility", "overview"] = "facility"
    segments: list[PathSegmentModel] | None = None
    on_path_tolerance: float | None = Field(default=None, gt=0)
    segment_tolerance: float | None = Field(default=None, gt=0)
    snap_max_distance: float | None = Field(default=None, gt=0)
    safe_point: tuple[float, float] | None = None
    start_points: list[tuple[float, float]] | None = None

    @field_validator("segments")
    @classmethod
    def _non_empty(cls, v):
        if v is not None and len(v) == 0:
            raise ValueError("segments must not be empty; omit it to use the preset")
        return v


# ----------------- ZONES ---------------------


class BandModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    label: str
    lo: float = -math.inf
    hi: float = math.inf


def _columns() -> list[BandModel]:
    edges = [6.4, 14.4, 22.4, 30.4, 38.4, 46.4, math.inf]
    return [
        BandModel(label=str(i + 1), lo=a, hi=b) for i, (a, b) in enumerate(zip(edges, edges[1:]))
    ]


class ZoneModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    rows: list[BandModel] = Field(
        default_factory=lambda: [
            BandModel(label="A", hi=8.8),
            BandModel(label="B", lo=13.6, hi=20.8),
            BandModel(label="P", lo=20.8),
        ]
    )
    columns: list[BandModel] = Field(default_factory=_columns)
    default: str = "main-aisle"


# ----------------- MOTION ---------------------


class MotionGridModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["grid"] = "grid"


class MotionLaneModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["lane"] = "lane"


MotionUnion = Annotated[MotionGridModel | MotionLaneModel, Field(discriminator="kind")]


def _default_motion() -> dict[EntityKind, MotionGridModel | MotionLaneModel]:
    return {
        EntityKind.VEHICLE: MotionGridModel(),
        EntityKind.LOAD: MotionLaneModel(),
        EntityKind.PERSON: MotionLaneModel(),
    }


# ------------------------------------------------------------------


class ScenarioModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = "facility"
    run_id: str = "local"
    sim: SimModel = SimModel()
    log: LogModel = LogModel()
    population: PopulationModel = Field(default_factory=PopulationModel)
    events: EventsModel = EventsModel()
    grid: GridModel = GridModel()
    zones: ZoneModel = Field(default_factory=ZoneModel)
    lanes: LaneNetworkModel = Field(default_factory=LaneNetworkModel)
    motion: dict[EntityKind, MotionUnion] = Field(default_factory=_default_motion)

    @field_validator("motion")
    @classmethod
    def _fill_missing_kinds(cls, v):
        # kinds left out keep their default motion model
        return {**_default_motion(), **v}
