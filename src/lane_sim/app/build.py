# lane_sim/app/build.py
from collections.abc import Mapping
from dataclasses import dataclass

from lane_sim.app.controllers.detectors import EventDetector
from lane_sim.app.controllers.population import PopulationSeeder
from lane_sim.app.protocols import Clock, EventCallback, MotionModel, PositionCallback
from lane_sim.config.models import GridModel, ScenarioModel
from lane_sim.domain.entities.entity import EntityKind
from lane_sim.domain.entities.geography import PathSegment, Point, SegmentKind
from lane_sim.domain.mechanics.lane_graph import LaneGraph
from lane_sim.domain.mechanics.path_geometry import LAYOUTS, GridLayout, PathGeometry
from lane_sim.domain.mechanics.zones import ZoneClassifier
from lane_sim.domain.state import EntityStore
from lane_sim.io.recorder import JsonlSink, Recorder
from lane_sim.io.sim_logging import SimLogging  # JSON logs
from lane_sim.runtime.registries import make_motion
from lane_sim.sim.clock import SystemClock
from lane_sim.sim.hooks import NoopHooks
from lane_sim.sim.rng import EVENTS, POPULATION, ROUTES, TELEMETRY, RNGRegistry
from lane_sim.sim.scheduler import TickScheduler


@dataclass
class App:
    scheduler: TickScheduler
    clock: Clock
    rng: RNGRegistry
    store: EntityStore
    graph: LaneGraph
    geometry: PathGeometry
    zones: ZoneClassifier
    motions: dict[EntityKind, MotionModel]
    detector: EventDetector
    recorder: Recorder

    def start(
        self,
        on_position_tick: PositionCallback | None = None,
        on_event: EventCallback | None = None,
    ) -> bool:
        """Start ticking; callbacks default to the recorder."""
        return self.scheduler.start(
            on_position_tick or self.recorder.on_position_tick,
            on_event or self.recorder.on_event,
        )

    def stop(self, timeout: float = 2.0) -> bool:
        return self.scheduler.stop(timeout)


def resolve_layout(cfg: GridModel) -> GridLayout:
    """Preset layout with any explicitly configured fields laid over it."""
    base = LAYOUTS[cfg.preset]
    segments = base.segments
    if cfg.segments is not None:
        segments = tuple(
            PathSegment(s.id, Point(*s.start), Point(*s.end), SegmentKind(s.kind))
            for s in cfg.segments
        )
    start_points = base.start_points
    if cfg.start_points is not None:
        start_points = tuple(Point(*p) for p in cfg.start_points)
    safe_point = Point(*cfg.safe_point) if cfg.safe_point is not None else base.safe_point
    return GridLayout(
        segments=segments,
        on_path_tolerance=cfg.on_path_tolerance or base.on_path_tolerance,
        segment_tolerance=cfg.segment_tolerance or base.segment_tolerance,
        snap_max_distance=cfg.snap_max_distance or base.snap_max_distance,
        start_points=start_points,
        safe_point=safe_point,
        units=base.units,
    )


def build(
    cfg: ScenarioModel | Mapping,
    *,
    graph: LaneGraph | None = None,
    clock: Clock | None = None,
    use_logging: bool = True,
    recorder: Recorder | None = None,
) -> App:
    # 0) Validate config
    model = cfg if isinstance(cfg, ScenarioModel) else ScenarioModel.model_validate(cfg)

    # 1) Clock & RNG
    clock = clock or SystemClock()
    rng_registry = RNGRegistry(model.sim.seed, scenario=model.name)

    # 2) Lane graph and path network
    if graph is None:
        graph = LaneGraph.from_network(model.lanes, rng=rng_registry.stream(ROUTES))
    layout = resolve_layout(model.grid)
    geometry = PathGeometry.from_layout(layout)
    start_points = list(layout.start_points) or geometry.intersections()
    # without a configured safe point fall back to the first node of the network
    safe_point = layout.safe_point
    if safe_point is None:
        safe_point = start_points[0] if start_points else geometry.segments[0].start
    zones = ZoneClassifier.from_model(model.zones)

    # 3) Motion models, one per populated kind
    motions: dict[EntityKind, MotionModel] = {}
    for kind, motion_cfg in model.motion.items():
        kind_cfg = model.population.for_kind(kind)
        if kind_cfg.count == 0:
            continue
        motions[kind] = make_motion(
            motion_cfg,
            deps={
                "rng_registry": rng_registry,
                "entity_kind": kind,
                "population": kind_cfg,
                "geometry": geometry,
                "safe_point": safe_point,
                "graph": graph,
            },
        )

    # 4) Initial population
    store = EntityStore()
    seeder = PopulationSeeder(
        model.population,
        grid_kinds={k for k, m in model.motion.items() if m.kind == "grid"},
        graph=graph,
        geometry=geometry,
        start_points=start_points,
        zones=zones,
        rng=rng_registry.stream(POPULATION),
    )
    seeder.seed(store, clock.now_ms())

    # 5) Detector, recorder and scheduler (with hooks)
    detector = EventDetector(model.events, rng=rng_registry.stream(EVENTS))
    recorder = recorder or Recorder(JsonlSink())
    hooks = (
        SimLogging(
            run_id=model.run_id,
            clock=clock,
            level=model.log.level,
            debug=model.log.debug,
            sample_every=model.log.sample_every,
        )
        if use_logging
        else NoopHooks()
    )
    scheduler = TickScheduler(
        store,
        motions,
        detector,
        zones,
        clock=clock,
        rng=rng_registry.stream(TELEMETRY),
        tick_ms=model.sim.tick_ms,
        sim_speed=model.sim.sim_speed,
        hooks=hooks,
    )

    return App(
        scheduler, clock, rng_registry, store, graph, geometry, zones, motions, detector, recorder
    )
