from __future__ import annotations

import math

from pygame.math import Vector2

from ..core.agent import Agent
from ..core.rng import DeterministicRng
from ..types.modes import SingleBehavior
from ..utils.math2d import add, heading_or_default, length, limit, safe_normalize, scale, subtract

_HORIZON_EPSILON = 0.0001
_ARRIVED_DISTANCE = 0.001


def seek(position: Vector2, target: Vector2, max_speed: float) -> Vector2:
    return scale(safe_normalize(subtract(target, position)), max_speed)


def flee(position: Vector2, target: Vector2, max_speed: float) -> Vector2:
    return scale(safe_normalize(subtract(position, target)), max_speed)


def predict_target(
    position: Vector2,
    target_position: Vector2,
    target_velocity: Vector2,
    max_speed: float,
    prediction_factor: float,
) -> Vector2:
    """Linear extrapolation of the target over a distance-based time horizon."""
    distance = length(subtract(target_position, position))
    horizon = distance / (max_speed + _HORIZON_EPSILON) * prediction_factor
    return add(target_position, scale(target_velocity, horizon))


def pursue(
    position: Vector2,
    target_position: Vector2,
    target_velocity: Vector2,
    max_speed: float,
    prediction_factor: float = 0.5,
) -> Vector2:
    future = predict_target(position, target_position, target_velocity, max_speed, prediction_factor)
    return seek(position, future, max_speed)


def evade(
    position: Vector2,
    target_position: Vector2,
    target_velocity: Vector2,
    max_speed: float,
    prediction_factor: float = 0.5,
) -> Vector2:
    future = predict_target(position, target_position, target_velocity, max_speed, prediction_factor)
    return flee(position, future, max_speed)


def arrive(position: Vector2, target: Vector2, max_speed: float, slowing_radius: float) -> Vector2:
    offset = subtract(target, position)
    distance = length(offset)
    if distance < _ARRIVED_DISTANCE:
        return Vector2()
    speed = max_speed
    if slowing_radius > 0.0:
        speed = min(max_speed, max_speed * (distance / slowing_radius))
    return scale(safe_normalize(offset), speed)


def wander(
    agent: Agent,
    rng: DeterministicRng,
    circle_distance: float = 50.0,
    circle_radius: float = 30.0,
    angle_change: float = 0.5,
) -> Vector2:
    """Desired velocity toward a jittered point on a circle projected ahead.

    ``agent.wander_angle`` is advanced in place on every call.
    """
    circle_center = scale(heading_or_default(agent.velocity), circle_distance)
    agent.wander_angle += rng.next_signed_unit() * angle_change
    displacement = Vector2(math.cos(agent.wander_angle) * circle_radius, math.sin(agent.wander_angle) * circle_radius)
    return limit(add(circle_center, displacement), agent.max_speed)


def desired_velocity(
    behavior: SingleBehavior,
    agent: Agent,
    target: Vector2,
    target_velocity: Vector2,
    rng: DeterministicRng,
    prediction_factor: float = 0.8,
    slowing_radius: float = 140.0,
    circle_distance: float = 50.0,
    circle_radius: float = 30.0,
    angle_change: float = 0.5,
) -> Vector2:
    position = agent.position
    max_speed = agent.max_speed
    if behavior is SingleBehavior.SEEK:
        return seek(position, target, max_speed)
    if behavior is SingleBehavior.FLEE:
        return flee(position, target, max_speed)
    if behavior is SingleBehavior.PURSUE:
        return pursue(position, target, target_velocity, max_speed, prediction_factor)
    if behavior is SingleBehavior.EVADE:
        return evade(position, target, target_velocity, max_speed, prediction_factor)
    if behavior is SingleBehavior.ARRIVE:
        return arrive(position, target, max_speed, slowing_radius)
    if behavior is SingleBehavior.WANDER:
        return wander(agent, rng, circle_distance, circle_radius, angle_change)
    raise ValueError(f"Unhandled single-agent behavior: {behavior}")
