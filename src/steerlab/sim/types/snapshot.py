from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    player: Dict[str, Any]
    agents: List[Dict[str, Any]]
    scene: "SnapshotScene"
    pointer: "SnapshotPointer"
    controls: Dict[str, Any]
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotScene:
    width: float
    height: float
    path: List[List[float]]
    obstacles: List[Dict[str, Any]]


@dataclass(slots=True)
class SnapshotPointer:
    x: float
    y: float
    vx: float
    vy: float


@dataclass(slots=True)
class SnapshotMetadata:
    sim_dt: float
    tick_rate: float
    seed: int
    config_version: str
    frame_rate_independent: bool
