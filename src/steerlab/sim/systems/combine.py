from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Protocol, Sequence, Tuple

from pygame.math import Vector2

from ...config import BlendWeights, PriorityWeights
from ..types.modes import CombineMode
from ..utils.math2d import add, length, limit, scale


def priority_select(forces: Iterable[Vector2], epsilon: float = 0.001) -> Vector2:
    """First force (highest priority first) whose magnitude exceeds ``epsilon``."""
    for force in forces:
        if length(force) > epsilon:
            return Vector2(force)
    return Vector2()


def weighted_blend(weighted_forces: Iterable[Tuple[Vector2, float]], max_force: float) -> Vector2:
    total = Vector2()
    for force, weight in weighted_forces:
        total = add(total, scale(force, weight))
    return limit(total, max_force)


@dataclass(slots=True)
class SteeringContributions:
    """Per-agent group/environment contributions for one tick. Disabled ones stay zero."""

    obstacle: Vector2 = field(default_factory=Vector2)
    wall: Vector2 = field(default_factory=Vector2)
    predictive: Vector2 = field(default_factory=Vector2)
    separation: Vector2 = field(default_factory=Vector2)
    path: Vector2 = field(default_factory=Vector2)


class CombinationStrategy(Protocol):
    mode: CombineMode

    def combine(self, contributions: SteeringContributions, max_force: float) -> Vector2:
        ...


class PriorityCombiner:
    """Immediate danger > neighbor safety > navigation; a tier fully overrides the ones below it."""

    mode = CombineMode.PRIORITY

    def __init__(self, weights: PriorityWeights | None = None, epsilon: float = 0.001):
        self.weights = weights if weights is not None else PriorityWeights()
        self.epsilon = epsilon

    def tiers(self, contributions: SteeringContributions, max_force: float) -> Sequence[Vector2]:
        weights = self.weights
        danger = add(scale(contributions.obstacle, weights.obstacle), scale(contributions.wall, weights.wall))
        safety = add(
            scale(contributions.predictive, weights.predictive),
            scale(contributions.separation, weights.separation),
        )
        navigation = scale(contributions.path, weights.path)
        return [limit(danger, max_force), limit(safety, max_force), limit(navigation, max_force)]

    def combine(self, contributions: SteeringContributions, max_force: float) -> Vector2:
        return priority_select(self.tiers(contributions, max_force), self.epsilon)


class WeightedCombiner:
    mode = CombineMode.WEIGHTED

    def __init__(self, weights: BlendWeights | None = None):
        self.weights = weights if weights is not None else BlendWeights()

    def weighted(self, contributions: SteeringContributions) -> Sequence[Tuple[Vector2, float]]:
        weights = self.weights
        return [
            (contributions.obstacle, weights.obstacle),
            (contributions.wall, weights.wall),
            (contributions.predictive, weights.predictive),
            (contributions.separation, weights.separation),
            (contributions.path, weights.path),
        ]

    def combine(self, contributions: SteeringContributions, max_force: float) -> Vector2:
        return weighted_blend(self.weighted(contributions), max_force)


def strategy_for(
    mode: CombineMode,
    priority_weights: PriorityWeights | None = None,
    blend_weights: BlendWeights | None = None,
    epsilon: float = 0.001,
) -> CombinationStrategy:
    if mode is CombineMode.PRIORITY:
        return PriorityCombiner(priority_weights, epsilon)
    return WeightedCombiner(blend_weights)
