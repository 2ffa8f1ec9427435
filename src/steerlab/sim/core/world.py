from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, List

from pygame.math import Vector2

from ...config import Controls, SimulationConfig
from ..systems import behaviors, combine, integrator
from ..systems.avoidance import Obstacle
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotPointer, SnapshotScene
from ..utils.math2d import heading_angle, length, subtract
from .agent import Agent
from .rng import DeterministicRng

logger = logging.getLogger(__name__)


class World:
    """One steering session: the single player agent plus the fixed-size population."""

    def __init__(self, config: SimulationConfig):
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._path: List[Vector2] = [Vector2(x, y) for x, y in config.path]
        self._obstacles: List[Obstacle] = [
            Obstacle(center=Vector2(item.center), radius=float(item.radius)) for item in config.obstacles
        ]
        self._agents: List[Agent] = []
        self._player = self._make_player()
        self._target = Vector2(config.player.start_target)
        self._target_prev: Vector2 | None = None
        self._target_velocity = Vector2()
        self._controls = Controls()
        self._metrics: TickMetrics | None = None
        self._bootstrap_population()

    @property
    def agents(self) -> List[Agent]:
        return self._agents

    @property
    def player(self) -> Agent:
        return self._player

    @property
    def target_velocity(self) -> Vector2:
        return self._target_velocity

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def reset(self) -> None:
        self._agents.clear()
        self._rng.reset()
        self._player = self._make_player()
        self._target = Vector2(self._config.player.start_target)
        self._target_prev = None
        self._target_velocity = Vector2()
        self._controls = Controls()
        self._metrics = None
        self._bootstrap_population()

    def step(
        self,
        tick: int,
        target: Vector2 | None = None,
        controls: Controls | None = None,
        frame_time: float = 0.0,
    ) -> TickMetrics:
        start = perf_counter()
        if controls is not None:
            self._controls = controls
        controls = self._controls
        self._track_target(self._target if target is None else Vector2(target))
        step_scale = self._step_scale(frame_time)

        if controls.single_agent_mode:
            self._step_single(controls, step_scale)
            neighbor_checks = 0
        else:
            neighbor_checks = self._step_population(controls, step_scale)

        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = self._collect_metrics(tick, controls, neighbor_checks, elapsed_ms)
        self._metrics = metrics
        return metrics

    def snapshot(self, tick: int) -> Snapshot:
        controls = self._controls
        metrics = (
            self._metrics
            if self._metrics is not None
            else self._collect_metrics(tick, controls, 0, 0.0)
        )
        config = self._config
        scene = SnapshotScene(
            width=config.screen_width,
            height=config.screen_height,
            path=[[point.x, point.y] for point in self._path],
            obstacles=[
                {"x": obstacle.center.x, "y": obstacle.center.y, "radius": obstacle.radius}
                for obstacle in self._obstacles
            ],
        )
        pointer = SnapshotPointer(
            x=self._target.x,
            y=self._target.y,
            vx=self._target_velocity.x,
            vy=self._target_velocity.y,
        )
        metadata = SnapshotMetadata(
            sim_dt=config.time_step,
            tick_rate=0.0 if config.time_step <= 0 else 1.0 / config.time_step,
            seed=config.seed,
            config_version=config.config_version,
            frame_rate_independent=config.frame_rate_independent,
        )
        return Snapshot(
            tick=tick,
            metrics=metrics,
            player=self._agent_snapshot(self._player),
            agents=[self._agent_snapshot(agent) for agent in self._agents],
            scene=scene,
            pointer=pointer,
            controls=controls.to_dict(),
            metadata=metadata,
        )

    def _make_player(self) -> Agent:
        player = self._config.player
        return Agent(
            id=-1,
            position=Vector2(player.start),
            velocity=Vector2(player.start_velocity),
            max_speed=player.max_speed,
            max_force=player.max_force,
            color="orange",
        )

    def _bootstrap_population(self) -> None:
        config = self._config
        population = config.population
        margin = int(population.spawn_margin)
        velocity_steps = int(round(population.velocity_range * 10))
        jitter_steps = int(round(population.max_speed_jitter * 100))
        for index in range(population.count):
            position = Vector2(
                float(self._rng.next_int(margin, int(config.screen_width) - margin)),
                float(self._rng.next_int(margin, int(config.screen_height) - margin)),
            )
            velocity = Vector2(
                self._rng.next_int(-velocity_steps, velocity_steps) / 10.0,
                self._rng.next_int(-velocity_steps, velocity_steps) / 10.0,
            )
            max_speed = population.base_max_speed + self._rng.next_int(0, jitter_steps) / 100.0
            path_index = self._rng.next_int(0, len(self._path) - 1) if self._path else 0
            self._agents.append(
                Agent(
                    id=index,
                    position=position,
                    velocity=velocity,
                    max_speed=max_speed,
                    max_force=population.max_force,
                    path_index=path_index,
                    color=population.colors[index % len(population.colors)],
                )
            )
        logger.debug("bootstrapped %d agents (seed=%s)", len(self._agents), config.seed)

    def _track_target(self, target: Vector2) -> None:
        previous = self._target_prev if self._target_prev is not None else target
        self._target_velocity = subtract(target, previous)
        self._target_prev = Vector2(target)
        self._target = Vector2(target)

    def _step_scale(self, frame_time: float) -> float:
        config = self._config
        if not config.frame_rate_independent or frame_time <= 0.0:
            return 1.0
        return frame_time * config.reference_fps

    def _step_single(self, controls: Controls, step_scale: float) -> None:
        config = self._config
        player_config = config.player
        steering = config.steering
        player = self._player
        if controls.single_combine:
            wander = behaviors.wander(
                player,
                self._rng,
                steering.wander_circle_distance,
                steering.wander_circle_radius,
                steering.wander_angle_change,
            )
            seek = behaviors.seek(player.position, self._target, player.max_speed)
            desired = combine.weighted_blend(
                [
                    (wander, player_config.combine_wander_weight),
                    (seek, player_config.combine_seek_weight),
                ],
                player.max_force * player_config.combine_force_multiplier,
            )
        else:
            desired = behaviors.desired_velocity(
                controls.single_behavior,
                player,
                self._target,
                self._target_velocity,
                self._rng,
                prediction_factor=player_config.pursue_prediction,
                slowing_radius=player_config.arrive_slowing_radius,
                circle_distance=steering.wander_circle_distance,
                circle_radius=steering.wander_circle_radius,
                angle_change=steering.wander_angle_change,
            )
        integrator.integrate_single(player, desired, config.screen_width, config.screen_height, step_scale)

    def _step_population(self, controls: Controls, step_scale: float) -> int:
        config = self._config
        strategy = combine.strategy_for(
            controls.combine_mode,
            config.priority_weights,
            config.blend_weights,
            config.steering.priority_epsilon,
        )
        enabled = {
            "path_following": controls.path_following,
            "separation": controls.separation,
            "predictive_avoidance": controls.predictive_avoidance,
            "obstacle_avoidance": controls.obstacle_avoidance,
            "wall_avoidance": controls.wall_avoidance,
        }
        return integrator.integrate_population(
            self._agents,
            self._path,
            self._obstacles,
            config.screen_width,
            config.screen_height,
            config.steering,
            strategy,
            enabled,
            wrap_buffer=config.population.wrap_buffer,
            step_scale=step_scale,
        )

    def _collect_metrics(
        self, tick: int, controls: Controls, neighbor_checks: int, elapsed_ms: float
    ) -> TickMetrics:
        if controls.single_agent_mode:
            speed = length(self._player.velocity)
            return TickMetrics(
                tick=tick,
                mode="single",
                population=1,
                average_speed=speed,
                max_speed=speed,
                neighbor_checks=0,
                mean_path_index=0.0,
                tick_duration_ms=elapsed_ms,
            )
        speeds = [length(agent.velocity) for agent in self._agents]
        count = len(self._agents)
        return TickMetrics(
            tick=tick,
            mode="multi",
            population=count,
            average_speed=sum(speeds) / count if count else 0.0,
            max_speed=max(speeds) if speeds else 0.0,
            neighbor_checks=neighbor_checks,
            mean_path_index=sum(agent.path_index for agent in self._agents) / count if count else 0.0,
            tick_duration_ms=elapsed_ms,
        )

    @staticmethod
    def _agent_snapshot(agent: Agent) -> Dict[str, Any]:
        return {
            "id": agent.id,
            "x": agent.position.x,
            "y": agent.position.y,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "speed": length(agent.velocity),
            "heading": heading_angle(agent.velocity),
            "path_index": agent.path_index,
            "color": agent.color,
            "steer_x": agent.last_steering.x,
            "steer_y": agent.last_steering.y,
        }
