"""Flat-buffer particle grid and its immutable per-step snapshot."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .config import WaveConfig
from .particle import Behavior, BehaviorKind, Oscillator, Particle, behavior_from_kind

logger = logging.getLogger(__name__)


def _frozen(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


@dataclass(frozen=True)
class GridSnapshot:
    """
    One generation of grid state, copied before a step begins.

    All arrays are read-only and shaped ``(width, height)`` except
    ``padded_heights`` which carries a one-cell ring of zeros so the
    3x3 neighbourhood of any cell can be sliced without bounds checks.
    """
    heights: np.ndarray
    padded_heights: np.ndarray
    velocities: np.ndarray
    accelerations: np.ndarray
    kinds: np.ndarray
    phases: np.ndarray
    generation: int

    @property
    def shape(self) -> Tuple[int, int]:
        return self.heights.shape


class Grid:
    """
    Fixed ``width x height`` container of particles.

    State lives in numpy buffers of shape ``(width, height)``; in C order the
    flat index of cell ``(x, y)`` is ``x * height + y``. World ``x``/``z``
    coordinates are derived once from the index and never change.
    """

    def __init__(self, config: WaveConfig):
        self.config = config
        self.width = config.width
        self.height = config.height
        shape = (self.width, self.height)

        self.heights = np.zeros(shape, dtype=np.float64)
        self.velocities = np.zeros(shape, dtype=np.float64)
        self.accelerations = np.zeros(shape, dtype=np.float64)
        self.kinds = np.full(shape, BehaviorKind.FLUID, dtype=np.int8)
        self.phases = np.zeros(shape, dtype=np.float64)

        xs = (np.arange(self.width) - self.width // 2) / self.width * config.grid_scale
        zs = (np.arange(self.height) - self.height // 2) / self.height * config.grid_scale
        self.world_x, self.world_z = (_frozen(a) for a in np.meshgrid(xs, zs, indexing="ij"))

        perimeter = np.zeros(shape, dtype=bool)
        perimeter[0, :] = perimeter[-1, :] = True
        perimeter[:, 0] = perimeter[:, -1] = True
        self.perimeter = _frozen(perimeter)

        # number of in-bounds cells in each 3x3 block, self included
        counts = np.full(shape, 9, dtype=np.int64)
        counts[0, :] -= 3
        counts[-1, :] -= 3
        counts[:, 0] -= 3
        counts[:, -1] -= 3
        counts[(0, 0, -1, -1), (0, -1, 0, -1)] += 1
        self.neighbor_counts = _frozen(counts)

        self.generation = 0
        logger.debug(f"Grid allocated: {self.width}x{self.height} cells")

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.width, self.height)

    def __len__(self) -> int:
        return self.width * self.height

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def index(self, x: int, y: int) -> int:
        """Flat index of ``(x, y)``; raises ``IndexError`` outside the grid."""
        if not self.in_bounds(x, y):
            raise IndexError(f"Cell ({x}, {y}) outside {self.width}x{self.height} grid")
        return x * self.height + y

    def particle(self, x: int, y: int) -> Particle:
        self.index(x, y)
        return Particle(
            position=(
                float(self.world_x[x, y]),
                float(self.heights[x, y]),
                float(self.world_z[x, y]),
            ),
            velocity=float(self.velocities[x, y]),
            acceleration=float(self.accelerations[x, y]),
            index_x=x,
            index_y=y,
            behavior=self.behavior(x, y),
        )

    def behavior(self, x: int, y: int) -> Behavior:
        self.index(x, y)
        return behavior_from_kind(self.kinds[x, y], self.phases[x, y])

    def set_behavior(self, x: int, y: int, behavior: Behavior) -> None:
        self.index(x, y)
        self._assign_behavior((x, y), behavior)

    def fill_height(self, where, value: float) -> None:
        """Set the cells selected by ``where`` to ``value`` clamped to the height limit."""
        limit = self.config.height_limit
        self.heights[where] = min(max(value, -limit), limit)

    def fill_behavior(self, where, behavior: Behavior) -> None:
        """Assign ``behavior`` to every cell selected by a mask or slice."""
        self._assign_behavior(where, behavior)

    def _assign_behavior(self, where, behavior: Behavior) -> None:
        self.kinds[where] = behavior.kind
        self.phases[where] = behavior.phase if isinstance(behavior, Oscillator) else 0.0

    def count(self, kind: BehaviorKind) -> int:
        return int(np.count_nonzero(self.kinds == kind))

    def snapshot(self) -> GridSnapshot:
        """Copy the live buffers into an immutable generation."""
        return GridSnapshot(
            heights=_frozen(self.heights.copy()),
            padded_heights=_frozen(np.pad(self.heights, 1, mode="constant")),
            velocities=_frozen(self.velocities.copy()),
            accelerations=_frozen(self.accelerations.copy()),
            kinds=_frozen(self.kinds.copy()),
            phases=_frozen(self.phases.copy()),
            generation=self.generation,
        )

    def positions(self) -> np.ndarray:
        """Row-major ``(width * height, 3)`` array of world positions."""
        positions = np.stack([self.world_x, self.heights, self.world_z], axis=-1)
        return _frozen(positions.reshape(-1, 3))
