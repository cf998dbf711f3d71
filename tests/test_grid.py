import numpy as np
import pytest

from wavefield.config import WaveConfig
from wavefield.grid import Grid
from wavefield.particle import BehaviorKind, Fluid, Infinity, Oscillator, Solid


def make_grid(width=5, height=4):
    return Grid(WaveConfig(width=width, height=height, brush_radius=1, grid_scale=10.0))


def test_flat_index_is_row_major():
    grid = make_grid()
    assert grid.index(0, 0) == 0
    assert grid.index(0, 3) == 3
    assert grid.index(2, 1) == 2 * 4 + 1
    assert grid.index(4, 3) == len(grid) - 1


@pytest.mark.parametrize("x, y", [(-1, 0), (0, -1), (5, 0), (0, 4)])
def test_accessor_rejects_out_of_bounds(x, y):
    grid = make_grid()
    with pytest.raises(IndexError):
        grid.index(x, y)
    with pytest.raises(IndexError):
        grid.particle(x, y)


def test_particle_indices_match_container_position():
    grid = make_grid()
    for x in range(grid.width):
        for y in range(grid.height):
            particle = grid.particle(x, y)
            assert (particle.index_x, particle.index_y) == (x, y)


def test_world_layout_centres_grid():
    grid = make_grid(width=4, height=4)
    particle = grid.particle(2, 2)
    assert particle.position[0] == pytest.approx(0.0)
    assert particle.position[2] == pytest.approx(0.0)
    corner = grid.particle(0, 0)
    assert corner.position[0] == pytest.approx(-5.0)
    assert corner.position[2] == pytest.approx(-5.0)


def test_behavior_roundtrip_keeps_phase_payload():
    grid = make_grid()
    grid.set_behavior(1, 1, Oscillator(0.25))
    grid.set_behavior(2, 2, Solid())

    assert grid.behavior(1, 1) == Oscillator(0.25)
    assert grid.behavior(2, 2) == Solid()
    assert grid.behavior(0, 0) == Fluid()

    grid.set_behavior(1, 1, Fluid())
    assert grid.phases[1, 1] == 0.0


def test_fill_height_clamps_to_limit():
    grid = make_grid()
    grid.fill_height((1, 1), 50.0)
    assert grid.heights[1, 1] == grid.config.height_limit

    region = (slice(1, 3), slice(0, 2))
    grid.fill_height(region, -50.0)
    assert np.all(grid.heights[region] == -grid.config.height_limit)
    assert int(np.count_nonzero(grid.heights)) == 4


def test_perimeter_and_neighbor_counts():
    grid = make_grid()
    assert int(grid.perimeter.sum()) == 2 * 5 + 2 * 4 - 4
    assert grid.neighbor_counts[0, 0] == 4
    assert grid.neighbor_counts[0, 2] == 6
    assert grid.neighbor_counts[2, 2] == 9


def test_snapshot_is_read_only_and_detached():
    grid = make_grid()
    grid.heights[1, 1] = 0.5
    snapshot = grid.snapshot()

    with pytest.raises(ValueError):
        snapshot.heights[0, 0] = 1.0

    grid.heights[1, 1] = -0.5
    grid.fill_behavior(grid.perimeter, Infinity())
    assert snapshot.heights[1, 1] == 0.5
    assert snapshot.padded_heights[2, 2] == 0.5
    assert np.all(snapshot.kinds == BehaviorKind.FLUID)


def test_positions_are_flat_row_major():
    grid = make_grid()
    grid.heights[3, 2] = 0.75
    positions = grid.positions()

    assert positions.shape == (20, 3)
    row = positions[grid.index(3, 2)]
    particle = grid.particle(3, 2)
    assert tuple(row) == pytest.approx(particle.position)
    with pytest.raises(ValueError):
        positions[0, 1] = 1.0
