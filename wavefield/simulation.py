"""Wave surface simulation engine: generational stepping and cell commands."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import numpy as np

from .config import WaveConfig
from .grid import Grid
from .particle import Behavior, BehaviorKind, Fluid, Infinity, Oscillator, Solid, behavior_from_kind
from .presets import Preset, get_preset
from .scheduler import RowScheduler

logger = logging.getLogger(__name__)

BOUNDARY_KINDS = (BehaviorKind.FLUID, BehaviorKind.INFINITY)


class Simulation:
    """
    Height-field simulation over a fixed grid of particles.

    Each ``step`` snapshots the live grid, lets the scheduler compute the next
    generation from that snapshot across disjoint row partitions, and returns
    once every partition has been written back. Commands (brush, oscillator,
    boundary) mutate the live grid between steps.
    """

    def __init__(self, config: WaveConfig, preset: Optional[Preset] = None):
        self.config = config
        self.preset = preset or get_preset(config.preset)
        self.scheduler = RowScheduler(config.workers)
        self.grid = self._build_grid()

        logger.info(
            f"Simulation initialized: {config.width}x{config.height} grid, "
            f"{config.workers} worker(s), preset '{self.preset.name}'"
        )

    def _build_grid(self) -> Grid:
        grid = Grid(self.config)
        self.preset.apply(grid)
        return grid

    @property
    def boundary(self) -> Optional[Behavior]:
        """Behavior shared by every perimeter cell, or None when they differ."""
        kinds = np.unique(self.grid.kinds[self.grid.perimeter])
        if len(kinds) != 1:
            return None
        return behavior_from_kind(kinds[0])

    @property
    def generation(self) -> int:
        return self.grid.generation

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def step(self) -> None:
        """Advance the whole grid by one generation."""
        snapshot = self.grid.snapshot()
        self.scheduler.run(snapshot, self.grid)
        self.grid.generation += 1
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Generation {self.grid.generation}: "
                f"max |y| {np.abs(self.grid.heights).max():.4f}"
            )

    def run(self, steps: int) -> None:
        for _ in range(steps):
            self.step()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def set_boundary(self, kind: Behavior) -> None:
        """Assign ``kind`` (Fluid or Infinity) to every perimeter cell."""
        if kind.kind not in BOUNDARY_KINDS:
            raise ValueError(
                f"Boundary must be Fluid or Infinity, got {type(kind).__name__}"
            )
        self.grid.fill_behavior(self.grid.perimeter, kind)
        logger.info(f"Boundary set to {type(kind).__name__}")

    def toggle_boundary(self) -> Behavior:
        """Switch the perimeter between Fluid and Infinity.

        Any perimeter that is not uniformly Infinity switches to Infinity.
        """
        kind = Fluid() if isinstance(self.boundary, Infinity) else Infinity()
        self.set_boundary(kind)
        return kind

    def reset_oscillators(self) -> None:
        """Return every interior cell to Fluid, dropping oscillator phases."""
        interior = ~self.grid.perimeter
        self.grid.fill_behavior(interior, Fluid())
        logger.info("Interior cells reset to Fluid")

    def apply_brush(self, center_x: int, center_y: int, radius: int, height: float) -> None:
        """Set the ``(2r+1)^2`` square around a cell to ``height`` and Fluid."""
        if radius < 0:
            raise ValueError(f"radius must be non-negative, got {radius}")
        x0, x1 = center_x - radius, center_x + radius
        y0, y1 = center_y - radius, center_y + radius
        if not (self.grid.in_bounds(x0, y0) and self.grid.in_bounds(x1, y1)):
            raise ValueError(
                f"Brush of radius {radius} at ({center_x}, {center_y}) "
                f"leaves the {self.grid.width}x{self.grid.height} grid"
            )
        region = (slice(x0, x1 + 1), slice(y0, y1 + 1))
        self.grid.fill_height(region, height)
        self.grid.fill_behavior(region, Fluid())
        logger.debug(f"Brush at ({center_x}, {center_y}) r={radius} h={height:.3f}")

    def set_oscillator(self, x: int, y: int) -> None:
        self.grid.set_behavior(x, y, Oscillator(0.0))
        logger.debug(f"Oscillator placed at ({x}, {y})")

    def set_solid(self, x: int, y: int) -> None:
        self.grid.set_behavior(x, y, Solid())
        logger.debug(f"Solid cell placed at ({x}, {y})")

    def reset(self) -> None:
        """Rebuild the grid from configuration and reapply the preset."""
        self.grid = self._build_grid()
        logger.info(f"Simulation reset with preset '{self.preset.name}'")

    def close(self) -> None:
        self.scheduler.close()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def heights(self) -> np.ndarray:
        """Row-major flat copy of the height field."""
        return self.grid.heights.ravel().copy()

    def positions(self) -> np.ndarray:
        return self.grid.positions()

    def _boundary_name(self) -> str:
        boundary = self.boundary
        return "mixed" if boundary is None else type(boundary).__name__.lower()

    def get_state(self) -> Dict[str, Any]:
        """Get current state for API/visualization."""
        return {
            "width": self.config.width,
            "height": self.config.height,
            "generation": self.generation,
            "boundary": self._boundary_name(),
            "oscillators": self.grid.count(BehaviorKind.OSCILLATOR),
            "heights": self.heights().tolist(),
        }
