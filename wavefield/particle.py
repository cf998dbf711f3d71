"""Per-cell state and the four behavior variants a cell can carry."""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple, Union


class BehaviorKind(IntEnum):
    """Tag stored per cell in the grid's behavior buffer."""
    FLUID = 0
    OSCILLATOR = 1
    SOLID = 2
    INFINITY = 3


@dataclass(frozen=True)
class Fluid:
    """Normal water: damped spring towards the neighbour mean."""
    kind = BehaviorKind.FLUID


@dataclass(frozen=True)
class Oscillator:
    """Cell driven by a sine wave; ``phase`` advances every step."""
    phase: float = 0.0
    kind = BehaviorKind.OSCILLATOR


@dataclass(frozen=True)
class Solid:
    """Reflective wall, height frozen."""
    kind = BehaviorKind.SOLID


@dataclass(frozen=True)
class Infinity:
    """Absorbing border simulating an open ocean."""
    kind = BehaviorKind.INFINITY


Behavior = Union[Fluid, Oscillator, Solid, Infinity]


def behavior_from_kind(kind: int, phase: float = 0.0) -> Behavior:
    """Rebuild a behavior value from its stored tag and phase payload."""
    kind = BehaviorKind(int(kind))
    if kind is BehaviorKind.FLUID:
        return Fluid()
    if kind is BehaviorKind.OSCILLATOR:
        return Oscillator(float(phase))
    if kind is BehaviorKind.SOLID:
        return Solid()
    return Infinity()


def parse_behavior(name: str) -> Behavior:
    """Map a command name such as ``"infinity"`` to a behavior."""
    lookup = {
        "fluid": Fluid(),
        "oscillator": Oscillator(),
        "solid": Solid(),
        "infinity": Infinity(),
    }
    key = name.strip().lower()
    if key not in lookup:
        raise ValueError(f"Unknown behavior '{name}'. Available: {list(lookup.keys())}")
    return lookup[key]


@dataclass(frozen=True)
class Particle:
    """Read-only view of one grid cell."""

    position: Tuple[float, float, float]
    velocity: float
    acceleration: float
    index_x: int
    index_y: int
    behavior: Behavior

    @property
    def height(self) -> float:
        return self.position[1]
