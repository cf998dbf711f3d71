import math

import numpy as np
import pytest

from wavefield.config import WaveConfig
from wavefield.particle import BehaviorKind, Fluid, Infinity, Oscillator, Solid
from wavefield.presets import get_preset
from wavefield.simulation import Simulation


def make_config(**overrides):
    base = WaveConfig(width=5, height=5, brush_radius=1, workers=1, preset="flat")
    data = base.as_dict()
    data.update(overrides)
    return WaveConfig(**data)


@pytest.fixture
def simulation():
    sim = Simulation(make_config())
    yield sim
    sim.close()


def test_set_boundary_infinity_marks_exactly_the_perimeter(simulation):
    simulation.grid.set_behavior(2, 2, Solid())
    simulation.grid.set_behavior(1, 3, Oscillator(0.5))

    simulation.set_boundary(Infinity())

    kinds = simulation.grid.kinds
    assert simulation.grid.count(BehaviorKind.INFINITY) == 16
    assert np.all(kinds[simulation.grid.perimeter] == BehaviorKind.INFINITY)
    assert kinds[2, 2] == BehaviorKind.SOLID
    assert simulation.grid.behavior(1, 3) == Oscillator(0.5)
    assert int(np.count_nonzero(kinds[1:4, 1:4] == BehaviorKind.FLUID)) == 7


@pytest.mark.parametrize("kind", [Solid(), Oscillator(0.0)])
def test_set_boundary_rejects_other_kinds(simulation, kind):
    with pytest.raises(ValueError):
        simulation.set_boundary(kind)


def test_toggle_boundary_alternates(simulation):
    assert simulation.toggle_boundary() == Infinity()
    assert simulation.grid.behavior(0, 0) == Infinity()
    assert simulation.toggle_boundary() == Fluid()
    assert simulation.grid.behavior(4, 2) == Fluid()


def test_reset_oscillators_only_touches_interior(simulation):
    simulation.set_boundary(Infinity())
    simulation.set_oscillator(1, 1)
    simulation.set_oscillator(3, 2)
    simulation.run(3)

    simulation.reset_oscillators()

    assert simulation.grid.count(BehaviorKind.OSCILLATOR) == 0
    assert simulation.grid.count(BehaviorKind.INFINITY) == 16
    assert np.all(simulation.grid.phases == 0.0)


def test_brush_sets_exact_block_on_large_grid():
    sim = Simulation(make_config(width=200, height=200, brush_radius=2))
    sim.set_oscillator(9, 11)
    height = sim.config.brush_height

    sim.apply_brush(10, 10, 2, height)

    heights = sim.grid.heights
    assert np.all(heights[8:13, 8:13] == height)
    assert int(np.count_nonzero(heights)) == 25
    assert np.all(sim.grid.kinds == BehaviorKind.FLUID)
    sim.close()


def test_brush_clamps_height(simulation):
    simulation.apply_brush(2, 2, 1, 99.0)
    assert simulation.grid.heights[2, 2] == simulation.config.height_limit


@pytest.mark.parametrize("center", [(0, 2), (2, 4), (5, 5)])
def test_brush_outside_grid_raises(simulation, center):
    with pytest.raises(ValueError):
        simulation.apply_brush(center[0], center[1], 1, 0.2)


def test_set_oscillator_out_of_bounds_raises(simulation):
    with pytest.raises(IndexError):
        simulation.set_oscillator(5, 0)


def test_oscillator_drives_neighbours(simulation):
    simulation.set_oscillator(2, 2)

    for n in range(1, 6):
        simulation.step()
        expected = math.sin(n * simulation.config.oscillator_speed) * simulation.config.height_limit
        assert simulation.grid.heights[2, 2] == pytest.approx(expected)

    assert simulation.grid.heights[1, 1] != 0.0
    assert simulation.generation == 5


def test_multi_worker_simulation_matches_serial():
    serial = Simulation(make_config(width=30, height=30, preset="center_drop"))
    parallel = Simulation(make_config(width=30, height=30, preset="center_drop", workers=4))
    for sim in (serial, parallel):
        sim.set_boundary(Infinity())
        sim.set_solid(5, 5)
        sim.run(40)

    assert np.array_equal(serial.heights(), parallel.heights())
    serial.close()
    parallel.close()


def test_center_drop_preset_raises_middle_block():
    sim = Simulation(make_config(width=9, height=9, preset="center_drop"))
    heights = sim.grid.heights
    assert np.all(heights[3:6, 3:6] == sim.config.height_limit)
    assert int(np.count_nonzero(heights)) == 9
    sim.close()


def test_pool_preset_uses_solid_walls():
    sim = Simulation(make_config(width=9, height=9), preset=get_preset("pool"))
    assert sim.grid.count(BehaviorKind.SOLID) == 32
    sim.close()


def test_unknown_preset_raises():
    with pytest.raises(ValueError):
        Simulation(make_config(preset="tsunami"))


def test_reset_restores_initial_condition():
    sim = Simulation(make_config(width=9, height=9, preset="center_drop"))
    initial = sim.heights()
    sim.set_boundary(Infinity())
    sim.run(10)

    sim.reset()

    assert np.array_equal(sim.heights(), initial)
    assert sim.generation == 0
    assert sim.boundary == Fluid()
    assert sim.grid.count(BehaviorKind.INFINITY) == 0
    sim.close()


def test_get_state_reports_flat_heights(simulation):
    simulation.set_oscillator(2, 2)
    simulation.step()

    state = simulation.get_state()

    assert state["generation"] == 1
    assert state["oscillators"] == 1
    assert state["boundary"] == "fluid"
    assert len(state["heights"]) == 25
    assert state["heights"][2 * 5 + 2] == pytest.approx(simulation.grid.heights[2, 2])


def test_pool_preset_reports_solid_boundary():
    sim = Simulation(make_config(width=9, height=9, preset="pool"))
    assert sim.boundary == Solid()
    assert sim.get_state()["boundary"] == "solid"

    assert sim.toggle_boundary() == Infinity()
    assert sim.get_state()["boundary"] == "infinity"

    sim.reset()
    assert sim.get_state()["boundary"] == "solid"
    sim.close()


def test_boundary_reports_mixed_perimeter(simulation):
    simulation.set_solid(0, 2)

    assert simulation.boundary is None
    assert simulation.get_state()["boundary"] == "mixed"
    assert simulation.toggle_boundary() == Infinity()
