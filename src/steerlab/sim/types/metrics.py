from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    mode: str
    population: int
    average_speed: float
    max_speed: float
    neighbor_checks: int
    mean_path_index: float
    tick_duration_ms: float = 0.0
