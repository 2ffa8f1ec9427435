from __future__ import annotations

from typing import Sequence

from pygame.math import Vector2

from ...config import SteeringConfig
from ..core.agent import Agent
from ..utils.math2d import add, limit, scale, subtract
from .avoidance import (
    Obstacle,
    obstacle_avoidance,
    path_following,
    predictive_avoidance_sum,
    separation,
    wall_avoidance,
)
from .combine import CombinationStrategy, SteeringContributions


def steering_delta(agent: Agent, desired: Vector2) -> Vector2:
    return subtract(desired, agent.velocity)


def apply_force(agent: Agent, force: Vector2, step_scale: float = 1.0) -> None:
    """Clamp ``force`` to max force, then advance velocity (clamped) and position in place."""
    steer = limit(force, agent.max_force)
    agent.last_steering = steer
    agent.velocity = limit(add(agent.velocity, scale(steer, step_scale)), agent.max_speed)
    agent.position = add(agent.position, scale(agent.velocity, step_scale))


def clamp_to_bounds(position: Vector2, width: float, height: float) -> Vector2:
    return Vector2(min(max(position.x, 0.0), width), min(max(position.y, 0.0), height))


def wrap_around(position: Vector2, width: float, height: float, buffer: float) -> Vector2:
    """Teleport to the opposite side once ``buffer`` units past an edge."""
    x = position.x
    y = position.y
    if x < -buffer:
        x = width + buffer
    if x > width + buffer:
        x = -buffer
    if y < -buffer:
        y = height + buffer
    if y > height + buffer:
        y = -buffer
    return Vector2(x, y)


def integrate_single(
    agent: Agent,
    desired: Vector2,
    width: float,
    height: float,
    step_scale: float = 1.0,
) -> None:
    apply_force(agent, steering_delta(agent, desired), step_scale)
    agent.position = clamp_to_bounds(agent.position, width, height)


def compute_contributions(
    agent: Agent,
    population: Sequence[Agent],
    path: Sequence[Vector2],
    obstacles: Sequence[Obstacle],
    width: float,
    height: float,
    steering: SteeringConfig,
    enabled: dict[str, bool],
) -> tuple[SteeringContributions, int]:
    contributions = SteeringContributions()
    checks = 0
    if enabled.get("path_following", False):
        contributions.path = path_following(
            agent, path, steering.waypoint_radius, steering.waypoint_slowing_multiplier
        )
    if enabled.get("separation", False):
        contributions.separation = separation(
            agent, population, steering.separation_radius, steering.separation_strength
        )
    if enabled.get("predictive_avoidance", False):
        contributions.predictive, checks = predictive_avoidance_sum(
            agent,
            population,
            steering.predictive_look_ahead,
            steering.predictive_strength,
            steering.predictive_combined_radius,
        )
    if enabled.get("obstacle_avoidance", False):
        contributions.obstacle = obstacle_avoidance(
            agent,
            obstacles,
            steering.obstacle_look_ahead,
            steering.obstacle_strength,
            steering.obstacle_buffer,
            steering.obstacle_secondary_factor,
        )
    if enabled.get("wall_avoidance", False):
        contributions.wall = wall_avoidance(agent, width, height, steering.wall_margin, steering.wall_strength)
    return contributions, checks


def integrate_population(
    agents: Sequence[Agent],
    path: Sequence[Vector2],
    obstacles: Sequence[Obstacle],
    width: float,
    height: float,
    steering: SteeringConfig,
    strategy: CombinationStrategy,
    enabled: dict[str, bool],
    wrap_buffer: float = 60.0,
    step_scale: float = 1.0,
) -> int:
    """Advance every agent in order; later agents see earlier agents' updated state.

    Returns the number of predictive-avoidance pair checks performed.
    """
    neighbor_checks = 0
    for agent in agents:
        contributions, checks = compute_contributions(
            agent, agents, path, obstacles, width, height, steering, enabled
        )
        neighbor_checks += checks
        apply_force(agent, strategy.combine(contributions, agent.max_force), step_scale)
        agent.position = wrap_around(agent.position, width, height, wrap_buffer)
    return neighbor_checks
