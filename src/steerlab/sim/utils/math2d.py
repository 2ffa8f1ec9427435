from __future__ import annotations

import math

from pygame.math import Vector2

DEFAULT_HEADING = Vector2(0.0, -1.0)


def length(vector: Vector2) -> float:
    return math.sqrt(vector.x * vector.x + vector.y * vector.y)


def safe_normalize(vector: Vector2) -> Vector2:
    return safe_normalize_xy(vector.x, vector.y)


def safe_normalize_xy(x: float, y: float) -> Vector2:
    magnitude = math.sqrt(x * x + y * y)
    if magnitude == 0.0:
        return Vector2()
    return Vector2(x / magnitude, y / magnitude)


def scale(vector: Vector2, factor: float) -> Vector2:
    return Vector2(vector.x * factor, vector.y * factor)


def add(a: Vector2, b: Vector2) -> Vector2:
    return Vector2(a.x + b.x, a.y + b.y)


def subtract(a: Vector2, b: Vector2) -> Vector2:
    return Vector2(a.x - b.x, a.y - b.y)


def limit(vector: Vector2, max_length: float) -> Vector2:
    """Rescale ``vector`` to ``max_length`` when it is longer, else return a copy."""
    if max_length <= 0.0:
        return Vector2()
    magnitude = length(vector)
    if magnitude > max_length:
        return scale(vector, max_length / magnitude)
    return Vector2(vector)


def heading_or_default(velocity: Vector2, threshold: float = 0.01) -> Vector2:
    heading = safe_normalize(velocity)
    if length(heading) < threshold:
        return Vector2(DEFAULT_HEADING)
    return heading


def heading_angle(velocity: Vector2, threshold: float = 0.01) -> float:
    if length(velocity) < threshold:
        return 0.0
    return math.atan2(velocity.y, velocity.x)
