"""Static render topology and pointer-to-cell mapping."""
from __future__ import annotations

from typing import Tuple

import numpy as np

from .config import WaveConfig
from .grid import Grid


def build_faces(config: WaveConfig) -> np.ndarray:
    """
    Triangle index array for the grid surface, shape ``(n, 3)``.

    Each cell contributes up to two triangles: ``(x,y), (x,y-1), (x-1,y)``
    when it has a lower-left neighbour and ``(x,y), (x,y+1), (x+1,y)`` when
    it has an upper-right one. Vertex ``(x, y)`` is at ``x * height + y``.
    """
    width, height = config.width, config.height
    index = np.arange(width * height, dtype=np.uint32).reshape(width, height)

    # slot 0 holds the lower-left triangle, slot 1 the upper-right one
    faces = np.zeros((width, height, 2, 3), dtype=np.uint32)
    present = np.zeros((width, height, 2), dtype=bool)

    faces[1:, 1:, 0] = np.stack([index[1:, 1:], index[1:, :-1], index[:-1, 1:]], axis=-1)
    present[1:, 1:, 0] = True
    faces[:-1, :-1, 1] = np.stack([index[:-1, :-1], index[:-1, 1:], index[1:, :-1]], axis=-1)
    present[:-1, :-1, 1] = True
    return faces[present]


def build_vertices(grid: Grid) -> np.ndarray:
    """Flat row-major vertex positions, shape ``(width * height, 3)``."""
    return grid.positions()


def pointer_to_cell(
    px: float,
    py: float,
    viewport_width: float,
    viewport_height: float,
    config: WaveConfig,
) -> Tuple[int, int]:
    """
    Map a raw pointer position to a grid cell the brush can be centred on.

    The result is clamped to ``[radius, dimension - radius - 1]`` on each
    axis so a brush stroke never leaves the grid.
    """
    if viewport_width <= 0 or viewport_height <= 0:
        raise ValueError(
            f"Viewport must have positive size, got {viewport_width}x{viewport_height}"
        )
    r = config.brush_radius
    x = int(px / viewport_width * config.width)
    y = int(py / viewport_height * config.height)
    x = min(max(x, r), config.width - r - 1)
    y = min(max(y, r), config.height - r - 1)
    return x, y
