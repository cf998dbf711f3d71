"""Per-cell update rules, evaluated block-wise over a range of grid rows."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict

import numpy as np

from .config import WaveConfig
from .grid import Grid, GridSnapshot
from .particle import BehaviorKind

TWO_PI = 2.0 * math.pi


# ============================================================================
# Neighbour average
# ============================================================================

def neighbor_average(snapshot: GridSnapshot, counts: np.ndarray, x0: int, x1: int) -> np.ndarray:
    """
    Mean height of the in-bounds 3x3 neighbours of rows ``x0:x1``.

    The block sum includes the cell itself and is then corrected by
    subtracting it, dividing by ``count - 1``. Out-of-bounds neighbours are
    zeros in the padded buffer and are excluded from ``counts``. A cell with
    no neighbours at all averages to 0.

    Args:
        snapshot: Generation to read from.
        counts: In-bounds cell count of each 3x3 block (self included).
        x0, x1: Half-open row range.

    Returns:
        Array of shape ``(x1 - x0, height)``.
    """
    padded = snapshot.padded_heights
    height = snapshot.shape[1]
    total = np.zeros((x1 - x0, height), dtype=np.float64)
    for dx in (-1, 0, 1):
        for dy in (-1, 0, 1):
            total += padded[x0 + 1 + dx:x1 + 1 + dx, 1 + dy:height + 1 + dy]

    own = snapshot.heights[x0:x1]
    divisor = counts[x0:x1] - 1
    safe = np.where(divisor > 0, divisor, 1)
    return np.where(divisor > 0, (total - own) / safe, 0.0)


# ============================================================================
# Rules
# ============================================================================

@dataclass
class CellBlock:
    """Writable copy of one partition's state, updated in place by the rules."""
    heights: np.ndarray
    velocities: np.ndarray
    accelerations: np.ndarray
    phases: np.ndarray


def update_fluid(block: CellBlock, mask: np.ndarray, average: np.ndarray, config: WaveConfig) -> None:
    """Damped spring pulling each height towards its neighbour mean."""
    heights = block.heights[mask]
    velocities = block.velocities[mask]

    acc = average[mask] - heights - velocities / config.sustainability
    acc = np.clip(acc, -config.acc_limit, config.acc_limit)
    acc *= config.damping

    velocities = np.clip(velocities + acc, -config.vel_limit, config.vel_limit)
    heights = np.clip(heights + velocities, -config.height_limit, config.height_limit)

    block.accelerations[mask] = acc
    block.velocities[mask] = velocities
    block.heights[mask] = heights


def update_oscillator(block: CellBlock, mask: np.ndarray, average: np.ndarray, config: WaveConfig) -> None:
    # phase wraps so long runs keep full precision
    phases = np.mod(block.phases[mask] + config.oscillator_speed, TWO_PI)
    block.phases[mask] = phases
    block.heights[mask] = np.sin(phases) * config.height_limit


def update_solid(block: CellBlock, mask: np.ndarray, average: np.ndarray, config: WaveConfig) -> None:
    pass


def update_infinity(block: CellBlock, mask: np.ndarray, average: np.ndarray, config: WaveConfig) -> None:
    block.heights[mask] = average[mask]


Rule = Callable[[CellBlock, np.ndarray, np.ndarray, WaveConfig], None]

RULES: Dict[BehaviorKind, Rule] = {
    BehaviorKind.FLUID: update_fluid,
    BehaviorKind.OSCILLATOR: update_oscillator,
    BehaviorKind.SOLID: update_solid,
    BehaviorKind.INFINITY: update_infinity,
}


# ============================================================================
# Partition update
# ============================================================================

def update_rows(snapshot: GridSnapshot, grid: Grid, x0: int, x1: int) -> None:
    """
    Compute generation N+1 for rows ``x0:x1`` and write it into ``grid``.

    Reads only ``snapshot``; writes only ``grid[x0:x1]``. Safe to run
    concurrently for disjoint row ranges.
    """
    if x0 >= x1:
        return
    kinds = snapshot.kinds[x0:x1]
    block = CellBlock(
        heights=snapshot.heights[x0:x1].copy(),
        velocities=snapshot.velocities[x0:x1].copy(),
        accelerations=snapshot.accelerations[x0:x1].copy(),
        phases=snapshot.phases[x0:x1].copy(),
    )

    average = None
    for kind, rule in RULES.items():
        mask = kinds == kind
        if not mask.any():
            continue
        if average is None and kind in (BehaviorKind.FLUID, BehaviorKind.INFINITY):
            average = neighbor_average(snapshot, grid.neighbor_counts, x0, x1)
        rule(block, mask, average, grid.config)

    grid.heights[x0:x1] = block.heights
    grid.velocities[x0:x1] = block.velocities
    grid.accelerations[x0:x1] = block.accelerations
    grid.phases[x0:x1] = block.phases
