"""Named initial conditions for the height field."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List

from .grid import Grid
from .particle import Oscillator, Solid


@dataclass
class Preset:
    """A named initial condition applied to a freshly built grid."""
    name: str
    description: str
    apply: Callable[[Grid], None]


# ============================================================================
# Initial conditions
# ============================================================================

def _flat(grid: Grid) -> None:
    pass


def _center_drop(grid: Grid) -> None:
    # 3x3 block raised to the height limit in the middle of the grid
    cx, cy = grid.width // 2, grid.height // 2
    grid.fill_height((slice(cx - 1, cx + 2), slice(cy - 1, cy + 2)), grid.config.height_limit)


def _pool(grid: Grid) -> None:
    grid.fill_behavior(grid.perimeter, Solid())
    _center_drop(grid)


def _twin_sources(grid: Grid) -> None:
    cy = grid.height // 2
    grid.set_behavior(grid.width // 3, cy, Oscillator(0.0))
    grid.set_behavior(2 * grid.width // 3, cy, Oscillator(0.0))


FLAT = Preset(
    name="flat",
    description="Still water, zero height everywhere",
    apply=_flat,
)

CENTER_DROP = Preset(
    name="center_drop",
    description="A 3x3 block raised to the height limit in the middle of the grid",
    apply=_center_drop,
)

POOL = Preset(
    name="pool",
    description="Central drop inside a solid reflective wall",
    apply=_pool,
)

TWIN_SOURCES = Preset(
    name="twin_sources",
    description="Two in-phase oscillators producing an interference pattern",
    apply=_twin_sources,
)


# ============================================================================
# Preset Registry
# ============================================================================

PRESETS: Dict[str, Preset] = {
    "flat": FLAT,
    "center_drop": CENTER_DROP,
    "pool": POOL,
    "twin_sources": TWIN_SOURCES,
}


def list_presets() -> List[Preset]:
    """Return list of all available presets."""
    return list(PRESETS.values())


def get_preset(name: str) -> Preset:
    """Get preset by name."""
    if name not in PRESETS:
        raise ValueError(f"Unknown preset '{name}'. Available: {list(PRESETS.keys())}")
    return PRESETS[name]
