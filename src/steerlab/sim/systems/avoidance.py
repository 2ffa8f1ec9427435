from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from pygame.math import Vector2

from ..core.agent import Agent
from ..utils.math2d import add, heading_or_default, length, limit, safe_normalize, scale, subtract
from .behaviors import arrive


@dataclass(slots=True)
class Obstacle:
    center: Vector2
    radius: float


def separation(agent: Agent, neighbors: Iterable[Agent], radius: float, strength: float) -> Vector2:
    accum_x = 0.0
    accum_y = 0.0
    count = 0
    for other in neighbors:
        if other is agent:
            continue
        dx = agent.position.x - other.position.x
        dy = agent.position.y - other.position.y
        dist = math.sqrt(dx * dx + dy * dy)
        # coincident agents have no defined "away" direction
        if dist <= 0.0 or dist >= radius:
            continue
        falloff = (radius - dist) / radius
        accum_x += dx / dist * falloff
        accum_y += dy / dist * falloff
        count += 1
    if count == 0:
        return Vector2()
    inv = 1.0 / count
    average = Vector2(accum_x * inv, accum_y * inv)
    if length(average) < 0.0001:
        return Vector2()
    return scale(safe_normalize(average), strength)


def predictive_avoidance(
    agent: Agent,
    other: Agent,
    look_ahead_time: float,
    max_avoid_force: float,
    combined_radius: float = 24.0,
) -> Vector2:
    future_self = add(agent.position, scale(agent.velocity, look_ahead_time))
    future_other = add(other.position, scale(other.velocity, look_ahead_time))
    diff = subtract(future_self, future_other)
    dist = length(diff)
    if dist >= combined_radius or dist <= 0.001:
        return Vector2()
    depth = (combined_radius - dist) / combined_radius
    return scale(safe_normalize(diff), max_avoid_force * (0.4 + 0.6 * depth))


def predictive_avoidance_sum(
    agent: Agent,
    population: Sequence[Agent],
    look_ahead_time: float,
    max_avoid_force: float,
    combined_radius: float = 24.0,
) -> tuple[Vector2, int]:
    """Sum ``predictive_avoidance`` against every other agent; returns (force, pair checks)."""
    total = Vector2()
    checks = 0
    for other in population:
        if other is agent:
            continue
        total = add(total, predictive_avoidance(agent, other, look_ahead_time, max_avoid_force, combined_radius))
        checks += 1
    return total, checks


def obstacle_avoidance(
    agent: Agent,
    obstacles: Sequence[Obstacle],
    look_ahead: float,
    avoid_strength: float,
    buffer: float = 8.0,
    secondary_factor: float = 0.8,
) -> Vector2:
    heading = heading_or_default(agent.velocity)
    ahead = add(agent.position, scale(heading, look_ahead))
    steer = Vector2()
    for obstacle in obstacles:
        reach = obstacle.radius + buffer
        ahead_offset = subtract(ahead, obstacle.center)
        ahead_dist = length(ahead_offset)
        if ahead_dist < reach:
            penetration = reach - ahead_dist
            steer = add(steer, scale(safe_normalize(ahead_offset), penetration * avoid_strength))
            continue
        now_offset = subtract(agent.position, obstacle.center)
        now_dist = length(now_offset)
        if now_dist < reach:
            penetration = reach - now_dist
            steer = add(steer, scale(safe_normalize(now_offset), penetration * avoid_strength * secondary_factor))
    if length(steer) < 0.001:
        return Vector2()
    return limit(steer, avoid_strength)


def wall_avoidance(agent: Agent, bounds_width: float, bounds_height: float, margin: float, strength: float) -> Vector2:
    if margin <= 0.0:
        return Vector2()
    x = agent.position.x
    y = agent.position.y
    push_x = 0.0
    push_y = 0.0
    if x < margin:
        push_x = strength * (1.0 - x / margin)
    elif x > bounds_width - margin:
        push_x = -strength * (1.0 - (bounds_width - x) / margin)
    if y < margin:
        push_y = strength * (1.0 - y / margin)
    elif y > bounds_height - margin:
        push_y = -strength * (1.0 - (bounds_height - y) / margin)
    return Vector2(push_x, push_y)


def arrive_steer(agent: Agent, target: Vector2, slowing_radius: float) -> Vector2:
    """Steering force (not desired velocity) that arrives at ``target``."""
    return subtract(arrive(agent.position, target, agent.max_speed, slowing_radius), agent.velocity)


def current_waypoint(agent: Agent, path: Sequence[Vector2], waypoint_radius: float) -> Vector2 | None:
    """The waypoint the agent is heading for, advancing ``agent.path_index`` (wrapping) once reached."""
    if not path:
        return None
    if agent.path_index >= len(path) or agent.path_index < 0:
        agent.path_index = 0
    target = path[agent.path_index]
    if length(subtract(target, agent.position)) < waypoint_radius:
        agent.path_index = (agent.path_index + 1) % len(path)
        target = path[agent.path_index]
    return target


def path_following(
    agent: Agent,
    path: Sequence[Vector2],
    waypoint_radius: float,
    slowing_multiplier: float = 2.5,
) -> Vector2:
    """Steering force toward the agent's current waypoint; zero for an empty path."""
    target = current_waypoint(agent, path, waypoint_radius)
    if target is None:
        return Vector2()
    return arrive_steer(agent, target, waypoint_radius * slowing_multiplier)
