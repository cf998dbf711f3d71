"""
Headless entry point: ``python -m wavefield``.

Loads an optional JSON configuration, steps the simulation for a fixed
number of generations and logs throttled statistics. With ``--profile`` the
run is wrapped in cProfile and the slowest calls are logged at the end.
"""
import argparse
import cProfile
import io
import logging
import pstats
import sys
from typing import List, Optional

import numpy as np

from .config import DEFAULT_CONFIG, load_config
from .logging_config import setup_logging
from .particle import parse_behavior
from .simulation import Simulation

logger = logging.getLogger("wavefield.main")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the wave surface simulation headless")
    parser.add_argument("--config", help="Path to a JSON configuration file")
    parser.add_argument("--steps", type=int, default=500, help="Generations to simulate")
    parser.add_argument("--workers", type=int, help="Override the number of row partitions")
    parser.add_argument("--preset", help="Override the initial condition")
    parser.add_argument("--boundary", choices=["fluid", "infinity"], default="fluid")
    parser.add_argument("--log-every", type=int, default=100, help="Log statistics every N steps")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("--log-level", default="info", help="Logging level name, e.g. debug or warning")
    parser.add_argument("--profile", action="store_true", help="Profile the stepping loop")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        setup_logging(args.log_level, args.log_file)
    except ValueError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        return 2

    try:
        config = load_config(args.config) if args.config else DEFAULT_CONFIG
        overrides = {}
        if args.workers is not None:
            overrides["workers"] = args.workers
        if args.preset is not None:
            overrides["preset"] = args.preset
        if overrides:
            config = config.updated(**overrides)
        simulation = Simulation(config)
    except (OSError, ValueError) as e:
        logger.critical(f"Could not start simulation: {e}")
        return 1

    simulation.set_boundary(parse_behavior(args.boundary))
    log_every = max(args.log_every, 1)

    profiler = cProfile.Profile() if args.profile else None
    if profiler:
        profiler.enable()
    try:
        for step_num in range(1, args.steps + 1):
            simulation.step()
            if step_num % log_every == 0:
                heights = simulation.grid.heights
                logger.info(
                    f"Step {step_num}/{args.steps} | "
                    f"max |y| {np.abs(heights).max():.4f} | "
                    f"energy {float(np.square(heights).sum()):.4f}"
                )
    finally:
        if profiler:
            profiler.disable()
        simulation.close()

    if profiler:
        s = io.StringIO()
        stats = pstats.Stats(profiler, stream=s).sort_stats("cumtime")
        stats.print_stats(20)
        logger.info(f"--- Performance Profile ---\n{s.getvalue()}")

    logger.info("Simulation finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
