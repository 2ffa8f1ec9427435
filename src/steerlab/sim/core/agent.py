from __future__ import annotations

from dataclasses import dataclass, field

from pygame.math import Vector2


@dataclass(slots=True, eq=False)
class Agent:
    id: int
    position: Vector2
    velocity: Vector2
    max_speed: float
    max_force: float
    path_index: int = 0
    wander_angle: float = 0.0
    color: str = "orange"
    last_steering: Vector2 = field(default_factory=Vector2)
