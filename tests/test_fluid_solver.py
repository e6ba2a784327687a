from stable_fluids.exceptions import SettingsError, SimulationDivergedError, SolverStateError
from stable_fluids.solvers import FluidSolver2D, FluidSolver3D
from stable_fluids.configurations import Settings
from stable_fluids.constants import SolverState

import numpy as np
import pytest


def interior(array: np.ndarray) -> np.ndarray:
    return array[(slice(1, -1),) * array.ndim]


def test_construction_zeroes_every_buffer():
    solver = FluidSolver2D((12, 10))
    assert solver.get_dimensions() == (12, 10)
    assert solver.state == SolverState.Idle
    for field in solver.fields().values():
        arrays = field.to_numpy()
        for array in arrays if isinstance(arrays, list) else [arrays]:
            assert np.all(array == 0.0)


def test_wrong_number_of_dimensions_is_rejected():
    with pytest.raises(ValueError):
        FluidSolver2D((8, 8, 8))
    with pytest.raises(ValueError):
        FluidSolver3D((8, 8))


def test_add_calls_accumulate_exactly():
    solver = FluidSolver2D((16, 16))
    solver.add_density((3, 4), 1.5)
    solver.add_density((3, 4), 2.25)
    solver.add_velocity((3, 4), (0.5, -0.25))
    solver.add_velocity((3, 4), (0.5, -0.25))
    solver.add_temperature((5, 6), 0.125)
    solver.add_temperature((5, 6), 0.125)

    assert solver.density_src.load((3, 4)) == 3.75
    assert solver.velocity_src.load((3, 4)) == (1.0, -0.5)
    assert solver.temperature_src.load((5, 6)) == 0.25


def test_out_of_range_coordinates_are_ignored():
    solver = FluidSolver2D((16, 16))
    for coord in [(-1, 0), (16, 0), (0, 16), (100, -100)]:
        solver.add_density(coord, 1.0)
        solver.add_velocity(coord, (1.0, 1.0))
        solver.add_temperature(coord, 1.0)

    assert solver.density_src.to_numpy().sum() == 0.0
    assert solver.temperature_src.to_numpy().sum() == 0.0
    for component in solver.velocity_src.to_numpy():
        assert component.sum() == 0.0


def test_end_to_end_density_diffuses_outward():
    solver = FluidSolver2D((32, 32))
    settings = Settings()
    solver.add_density((16, 16), 100.0)

    solver.tick(settings=settings)

    density = interior(solver.export_buffers()["density"])
    assert density[16, 16] < 100.0
    assert density[16, 16] < 100.0 * settings.delta_time
    for dx in (-1, 0, 1):
        for dy in (-1, 0, 1):
            if dx or dy:
                assert density[16 + dx, 16 + dy] > 0.0

    # Sources are rates, a tick injects amount * delta_time.
    assert density.sum() == pytest.approx(100.0 * settings.delta_time, rel=1e-3)


def test_sources_are_cleared_after_a_tick():
    solver = FluidSolver2D((16, 16))
    solver.add_density((8, 8), 10.0)
    solver.add_velocity((8, 8), (1.0, 0.0))
    solver.add_temperature((8, 8), 10.0)

    solver.tick()

    for source in solver.sources():
        arrays = source.to_numpy()
        for array in arrays if isinstance(arrays, list) else [arrays]:
            assert np.all(array == 0.0)


def test_diffusion_matrices_are_reused_between_ticks():
    solver = FluidSolver2D((16, 16))
    settings = Settings()
    solver.add_density((8, 8), 10.0)

    solver.tick(settings=settings)
    solver.tick(settings=settings)

    assert solver.velocity_diffusion.build_count == 1
    assert solver.density_diffusion.build_count == 1
    assert solver.temperature_diffusion.build_count == 1
    assert solver.density_diffusion.solve_count == 2
    assert solver.velocity_diffusion.solve_count == 4

    solver.tick(settings=settings.copy(viscosity=0.1))

    assert solver.velocity_diffusion.build_count == 2
    assert solver.density_diffusion.build_count == 1


def test_changing_delta_time_rebuilds_the_matrices():
    solver = FluidSolver2D((8, 8))
    solver.tick(1.0 / 60.0)
    solver.tick(1.0 / 30.0)
    assert solver.density_diffusion.build_count == 2


def test_heat_rises():
    solver = FluidSolver2D((24, 24))
    settings = Settings(vorticity_confinement=0.0)
    solver.add_temperature((12, 12), 100.0)

    solver.tick(settings=settings)
    solver.tick(settings=settings)

    assert solver.velocity_t1[1].load((12, 12)) > 0.0


def test_dense_smoke_sinks():
    solver = FluidSolver2D((24, 24))
    settings = Settings(vorticity_confinement=0.0)
    solver.add_density((12, 12), 100.0)

    solver.tick(settings=settings)
    solver.tick(settings=settings)

    assert solver.velocity_t1[1].load((12, 12)) < 0.0


def test_velocity_stays_divergence_free():
    solver = FluidSolver2D((32, 32))
    for x in range(8, 25):
        for y in range(8, 25):
            weight = np.exp(-((x - 16) ** 2 + (y - 16) ** 2) / 16.0)
            solver.add_velocity((x, y), (weight, 0.0))

    solver.tick()

    assert solver.last_tick["projection"][0].converged
    assert solver.projection.mean_absolute_divergence(solver.velocity_t1) < 1e-3


def test_last_tick_holds_the_solve_results():
    solver = FluidSolver2D((16, 16))
    solver.add_density((8, 8), 1.0)

    results = solver.tick()

    assert results is solver.last_tick
    assert set(results) == {"velocity", "projection", "density", "temperature"}
    assert len(results["velocity"]) == 2
    assert all(result.converged for stage in results.values() for result in stage)


def test_export_buffers_are_copies():
    solver = FluidSolver2D((8, 6))
    buffers = solver.export_buffers()

    assert buffers["density"].shape == (10, 8)
    assert buffers["temperature"].shape == (10, 8)
    assert [u.shape for u in buffers["velocity"]] == [(10, 8), (10, 8)]

    buffers["density"][1, 1] = 42.0
    assert solver.density_t1.load((0, 0)) == 0.0


def test_mutations_during_a_tick_are_rejected():
    solver = FluidSolver2D((8, 8))
    solver.state = SolverState.Ticking

    with pytest.raises(SolverStateError):
        solver.add_density((1, 1), 1.0)
    with pytest.raises(SolverStateError):
        solver.add_velocity((1, 1), (1.0, 1.0))
    with pytest.raises(SolverStateError):
        solver.add_temperature((1, 1), 1.0)
    with pytest.raises(SolverStateError):
        solver.tick()


def test_failed_tick_returns_to_idle(monkeypatch):
    solver = FluidSolver2D((8, 8))
    solver.add_density((4, 4), 1.0)

    def fail(delta_time, settings):
        assert solver.state == SolverState.Ticking
        raise RuntimeError("stage failed")

    monkeypatch.setattr(solver, "step", fail)
    with pytest.raises(RuntimeError):
        solver.tick()

    assert solver.state == SolverState.Idle
    assert solver.density_src.to_numpy().sum() == 0.0


def test_invalid_settings_are_rejected_before_ticking():
    solver = FluidSolver2D((8, 8))
    with pytest.raises(SettingsError):
        solver.tick(settings=Settings(viscosity=-1.0))
    with pytest.raises(SettingsError):
        solver.tick(delta_time=float("inf"))
    assert solver.state == SolverState.Idle


def test_non_finite_values_are_detected():
    solver = FluidSolver2D((8, 8))
    solver.density_t1.write((4, 4), float("nan"))

    with pytest.raises(SimulationDivergedError):
        solver.tick()
    assert solver.state == SolverState.Idle


def test_finite_check_can_be_disabled():
    solver = FluidSolver2D((8, 8))
    solver.density_t1.write((4, 4), float("nan"))
    solver.tick(settings=Settings(check_finite=False))


def test_reset_zeroes_the_state():
    solver = FluidSolver2D((8, 8))
    solver.add_density((4, 4), 10.0)
    solver.tick()
    solver.reset()
    assert solver.density_t1.to_numpy().sum() == 0.0


def test_three_dimensional_tick():
    solver = FluidSolver3D((8, 8, 8))
    assert not hasattr(solver, "add_temperature")
    solver.add_density((4, 4, 4), 50.0)
    solver.add_velocity((4, 4, 4), (0.0, 1.0, 0.0))

    solver.tick()
    solver.tick()

    buffers = solver.export_buffers()
    assert buffers["density"].shape == (10, 10, 10)
    assert len(buffers["velocity"]) == 3
    assert "temperature" not in buffers
    assert np.all(np.isfinite(buffers["density"]))
    assert interior(buffers["density"]).sum() > 0.0
    assert solver.last_tick["projection"][0].converged


def test_fractional_coordinates_are_not_truncated():
    solver = FluidSolver2D((8, 8))
    with pytest.raises(ValueError):
        solver.add_density((3.7, 2), 1.0)
    with pytest.raises(ValueError):
        solver.add_velocity((3, 2.5), (1.0, 0.0))
    assert solver.density_src.to_numpy().sum() == 0.0
