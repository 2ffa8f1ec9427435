from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from pygame.math import Vector2

from ..config import Controls, SimulationConfig
from ..sim.core.world import World
from ..sim.types.modes import CombineMode, SingleBehavior

logger = logging.getLogger(__name__)

_HEADER = [
    "tick",
    "mode",
    "population",
    "avg_speed",
    "max_speed",
    "neighbor_checks",
    "mean_path_index",
    "tick_ms",
]

_ORBIT_RADIUS = 300.0
_ORBIT_RATE = 0.01


def orbit_target(config: SimulationConfig, tick: int) -> Vector2:
    """Scripted pointer: a circle around the screen center."""
    angle = tick * _ORBIT_RATE
    return Vector2(
        config.screen_width * 0.5 + math.cos(angle) * _ORBIT_RADIUS,
        config.screen_height * 0.5 + math.sin(angle) * _ORBIT_RADIUS,
    )


def _format_row(metrics: object, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.mode,
        metrics.population,
        f"{metrics.average_speed:.4f}",
        f"{metrics.max_speed:.4f}",
        metrics.neighbor_checks,
        f"{metrics.mean_path_index:.4f}",
        f"{tick_ms:.3f}",
    ]


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"mean": 0.0, "min": 0.0, "max": 0.0}
    return {
        "mean": float(sum(values) / len(values)),
        "min": float(min(values)),
        "max": float(max(values)),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    mode: str = "multi",
    behavior: str = "seek",
    combine_mode: str = "priority",
    config_path: Optional[Path] = None,
    summary_path: Optional[Path] = None,
) -> World:
    if mode not in ("single", "multi"):
        raise ValueError(f"Unknown mode: {mode}")
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    controls = Controls(
        single_agent_mode=mode == "single",
        single_behavior=SingleBehavior.parse(behavior),
        combine_mode=CombineMode.parse(combine_mode),
    )
    world = World(config)
    logger.info("headless run: steps=%d seed=%s mode=%s combine=%s", steps, config.seed, mode, combine_mode)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_HEADER)

    speed_series: list[float] = []
    try:
        for tick in range(steps):
            metrics = world.step(tick, orbit_target(config, tick), controls)
            speed_series.append(metrics.average_speed)
            if writer:
                tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
                writer.writerow(_format_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        movers = [world.player] if controls.single_agent_mode else world.agents
        summary = {
            "steps": steps,
            "seed": config.seed,
            "mode": mode,
            "behavior": controls.single_behavior.value,
            "combine_mode": controls.combine_mode.value,
            "avg_speed": _summary_stats(speed_series),
            "final_positions": [[agent.position.x, agent.position.y] for agent in movers],
            "final_path_indices": [agent.path_index for agent in movers],
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    logger.info("headless run finished after %d ticks", steps)
    return world


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless steering simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument("--mode", choices=["single", "multi"], default="multi")
    parser.add_argument(
        "--behavior",
        choices=[member.name.lower() for member in SingleBehavior],
        default="seek",
        help="Single-agent behavior used with --mode single.",
    )
    parser.add_argument("--combine", choices=[member.value for member in CombineMode], default="priority")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--summary", type=Path, default=None, help="Optional JSON summary of the run.")
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        mode=args.mode,
        behavior=args.behavior,
        combine_mode=args.combine,
        config_path=args.config,
        summary_path=args.summary,
    )


if __name__ == "__main__":
    main()
