"""Configuration for the wave surface simulation."""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WaveConfig:
    """Immutable simulation constants, threaded into every component."""

    # Grid
    width: int = 200
    height: int = 200
    grid_scale: float = 10.0  # world extent of the whole grid

    # Brush
    brush_radius: int = 2

    # Dynamics
    acc_limit: float = 1000.0
    vel_limit: float = 1000.0
    height_limit: float = 2.0
    damping: float = 0.995
    sustainability: float = 100.0
    oscillator_speed: float = 0.1  # radians per step

    # Scheduling
    workers: int = 4

    # Service
    frame_interval: float = 0.03  # Time between WebSocket frames
    preset: str = "center_drop"

    def __post_init__(self) -> None:
        if self.width < 3 or self.height < 3:
            raise ValueError(
                f"Grid must be at least 3x3 to compute neighbours, "
                f"got {self.width}x{self.height}"
            )
        for name in ("acc_limit", "vel_limit", "height_limit", "sustainability", "oscillator_speed"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if not 0.0 < self.damping < 1.0:
            raise ValueError(f"damping must lie in (0, 1), got {self.damping}")
        if self.grid_scale <= 0:
            raise ValueError(f"grid_scale must be positive, got {self.grid_scale}")
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.frame_interval < 0:
            raise ValueError(f"frame_interval must be non-negative, got {self.frame_interval}")
        span = 2 * self.brush_radius + 1
        if self.brush_radius < 0 or span > min(self.width, self.height):
            raise ValueError(
                f"brush_radius {self.brush_radius} does not fit a "
                f"{self.width}x{self.height} grid"
            )

    @property
    def brush_height(self) -> float:
        """Height the primary pointer action paints."""
        return self.height_limit / 5.0

    @property
    def size(self) -> int:
        return self.width * self.height

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def updated(self, **changes: Any) -> "WaveConfig":
        """Return a validated copy with ``changes`` applied."""
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WaveConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**data)


def load_config(path: str) -> WaveConfig:
    """Loads a JSON configuration file."""
    logger.info(f"Loading configuration from {path}...")
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.error(f"Configuration file not found at {path}.")
        raise
    except json.JSONDecodeError:
        logger.error(f"Error decoding JSON from {path}.")
        raise
    config = WaveConfig.from_dict(data)
    logger.info("Configuration loaded successfully.")
    return config


DEFAULT_CONFIG = WaveConfig()
