"""Interactive 2D wave surface simulation."""
from .config import DEFAULT_CONFIG, WaveConfig, load_config
from .grid import Grid, GridSnapshot
from .particle import Behavior, BehaviorKind, Fluid, Infinity, Oscillator, Particle, Solid
from .simulation import Simulation

__all__ = [
    "DEFAULT_CONFIG",
    "Behavior",
    "BehaviorKind",
    "Fluid",
    "Grid",
    "GridSnapshot",
    "Infinity",
    "Oscillator",
    "Particle",
    "Simulation",
    "Solid",
    "WaveConfig",
    "load_config",
]
