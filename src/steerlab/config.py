from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, List

import yaml

from .sim.types.modes import CombineMode, SingleBehavior


def _default_path() -> List[tuple[float, float]]:
    return [
        (150.0, 120.0),
        (400.0, 90.0),
        (800.0, 150.0),
        (920.0, 300.0),
        (800.0, 520.0),
        (520.0, 620.0),
        (240.0, 500.0),
        (100.0, 350.0),
    ]


@dataclass
class ObstacleConfig:
    center: tuple[float, float] = (0.0, 0.0)
    radius: float = 50.0


def _default_obstacles() -> List[ObstacleConfig]:
    return [
        ObstacleConfig(center=(500.0, 320.0), radius=60.0),
        ObstacleConfig(center=(300.0, 380.0), radius=45.0),
        ObstacleConfig(center=(700.0, 460.0), radius=55.0),
    ]


@dataclass
class PlayerConfig:
    start: tuple[float, float] = (500.0, 400.0)
    # non-zero so the heading is defined on the first frame
    start_velocity: tuple[float, float] = (0.05, 0.0)
    start_target: tuple[float, float] = (700.0, 500.0)
    max_speed: float = 3.0
    max_force: float = 0.12
    pursue_prediction: float = 0.8
    arrive_slowing_radius: float = 140.0
    combine_wander_weight: float = 0.6
    combine_seek_weight: float = 1.0
    combine_force_multiplier: float = 2.0


@dataclass
class PopulationConfig:
    count: int = 12
    spawn_margin: int = 80
    base_max_speed: float = 2.4
    max_speed_jitter: float = 0.3
    max_force: float = 0.14
    velocity_range: float = 5.0
    wrap_buffer: float = 60.0
    colors: tuple[str, str] = ("skyblue", "maroon")


@dataclass
class SteeringConfig:
    separation_radius: float = 48.0
    separation_strength: float = 0.9
    predictive_look_ahead: float = 0.9
    predictive_strength: float = 0.9
    predictive_combined_radius: float = 24.0
    obstacle_look_ahead: float = 70.0
    obstacle_strength: float = 1.2
    obstacle_buffer: float = 8.0
    obstacle_secondary_factor: float = 0.8
    wall_margin: float = 40.0
    wall_strength: float = 1.6
    waypoint_radius: float = 22.0
    waypoint_slowing_multiplier: float = 2.5
    wander_circle_distance: float = 50.0
    wander_circle_radius: float = 30.0
    wander_angle_change: float = 0.5
    priority_epsilon: float = 0.001


@dataclass
class PriorityWeights:
    obstacle: float = 2.0
    wall: float = 1.8
    predictive: float = 1.4
    separation: float = 1.2
    path: float = 0.9


@dataclass
class BlendWeights:
    obstacle: float = 1.8
    wall: float = 1.4
    predictive: float = 1.2
    separation: float = 1.0
    path: float = 0.9


@dataclass
class SimulationConfig:
    screen_width: float = 1800.0
    screen_height: float = 1000.0
    time_step: float = 1.0 / 60.0
    seed: int = 42
    frame_rate_independent: bool = False
    reference_fps: float = 60.0
    config_version: str = "v1"
    player: PlayerConfig = field(default_factory=PlayerConfig)
    population: PopulationConfig = field(default_factory=PopulationConfig)
    steering: SteeringConfig = field(default_factory=SteeringConfig)
    priority_weights: PriorityWeights = field(default_factory=PriorityWeights)
    blend_weights: BlendWeights = field(default_factory=BlendWeights)
    path: List[tuple[float, float]] = field(default_factory=_default_path)
    obstacles: List[ObstacleConfig] = field(default_factory=_default_obstacles)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass(frozen=True)
class Controls:
    """Per-tick behavior selection. Instances are never mutated; use ``toggled``/``updated``."""

    single_agent_mode: bool = True
    single_behavior: SingleBehavior = SingleBehavior.SEEK
    single_combine: bool = False
    path_following: bool = True
    separation: bool = True
    predictive_avoidance: bool = True
    obstacle_avoidance: bool = True
    wall_avoidance: bool = True
    combine_mode: CombineMode = CombineMode.PRIORITY
    draw_debug: bool = True

    def toggled(self, name: str) -> "Controls":
        value = getattr(self, name, None)
        if not isinstance(value, bool):
            raise ValueError(f"Unknown control toggle: {name}")
        return replace(self, **{name: not value})

    def updated(self, raw: dict[str, Any]) -> "Controls":
        known = {item.name for item in fields(self)}
        unknown = set(raw) - known
        if unknown:
            raise ValueError(f"Unknown control fields: {sorted(unknown)}")
        values = dict(raw)
        if "single_behavior" in values:
            values["single_behavior"] = SingleBehavior.parse(values["single_behavior"])
        if "combine_mode" in values:
            values["combine_mode"] = CombineMode.parse(values["combine_mode"])
        for name, value in values.items():
            if name in ("single_behavior", "combine_mode"):
                continue
            # "false" and 0 are truthy or ambiguous over JSON
            if not isinstance(value, bool):
                raise ValueError(f"Control {name} expects true/false, got {value!r}")
        return replace(self, **values)

    @staticmethod
    def from_dict(raw: dict[str, Any]) -> "Controls":
        return Controls().updated(raw)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {item.name: getattr(self, item.name) for item in fields(self)}
        payload["single_behavior"] = self.single_behavior.value
        payload["combine_mode"] = self.combine_mode.value
        return payload


def load_config(raw: dict) -> SimulationConfig:
    def _pair(value: Any) -> tuple[float, float]:
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return (float(value[0]), float(value[1]))
        raise ValueError(f"Expected an (x, y) pair, got {value!r}")

    player_raw = dict(raw.get("player", {}))
    for key in ("start", "start_velocity", "start_target"):
        if key in player_raw:
            player_raw[key] = _pair(player_raw[key])
    player = PlayerConfig(**player_raw)
    population_raw = dict(raw.get("population", {}))
    if "colors" in population_raw:
        population_raw["colors"] = tuple(population_raw["colors"])
    population = PopulationConfig(**population_raw)
    steering = SteeringConfig(**raw.get("steering", {}))
    priority_weights = PriorityWeights(**raw.get("priority_weights", {}))
    blend_weights = BlendWeights(**raw.get("blend_weights", {}))

    extra: dict[str, Any] = {}
    if "path" in raw:
        extra["path"] = [_pair(point) for point in raw["path"] or []]
    if "obstacles" in raw:
        extra["obstacles"] = [
            ObstacleConfig(center=_pair(item.get("center", (0.0, 0.0))), radius=float(item.get("radius", 50.0)))
            for item in raw["obstacles"] or []
        ]
    nested = {"player", "population", "steering", "priority_weights", "blend_weights", "path", "obstacles"}
    sim_values = {k: v for k, v in raw.items() if k not in nested}
    return SimulationConfig(
        player=player,
        population=population,
        steering=steering,
        priority_weights=priority_weights,
        blend_weights=blend_weights,
        **extra,
        **sim_values,
    )
