from stable_fluids.geometries import Circle, Rectangle
from stable_fluids.configurations import Settings
from stable_fluids.solvers import FluidSolver2D, FluidSolver3D

import numpy as np


def test_circle_covers_the_cells_around_its_center():
    circle = Circle(center=(0.5, 0.5), radius=0.1)
    cells = circle.covered_cells((20, 20))

    assert len(cells) > 0
    centers = (cells + 0.5) / 20.0
    assert np.all(np.sum((centers - 0.5) ** 2, axis=1) <= 0.01)
    assert [9, 9] in cells.tolist()
    assert [0, 0] not in cells.tolist()

    # Cached per grid extent.
    assert circle.covered_cells((20, 20)) is cells


def test_circle_is_a_sphere_in_3d():
    circle = Circle(center=(0.5, 0.5), radius=0.2)
    cells = circle.covered_cells((10, 10, 10))
    assert cells.shape[1] == 3
    assert [5, 5, 5] in cells.tolist()
    assert [5, 5, 0] not in cells.tolist()


def test_rectangle_covers_its_box():
    rectangle = Rectangle(lower_left=(0.0, 0.0), size=(0.5, 0.25))
    cells = rectangle.covered_cells((8, 8))

    assert len(cells) == 4 * 2
    assert cells[:, 0].max() == 3
    assert cells[:, 1].max() == 1

    # Full depth in 3D.
    assert len(rectangle.covered_cells((8, 8, 4))) == 4 * 2 * 4


def test_emitter_activity_window():
    emitter = Circle(center=(0.5, 0.5), radius=0.1, frame_threshold=3, last_frame=5)
    assert [emitter.is_active(frame) for frame in range(1, 8)] == [False, False, True, True, True, False, False]
    assert Circle(center=(0.5, 0.5), radius=0.1).is_active(10_000)


def test_emit_adds_scaled_sources():
    solver = FluidSolver2D((10, 10))
    settings = Settings(add_density=2.0, add_temperature=0.5)
    rectangle = Rectangle(lower_left=(0.0, 0.0), size=(0.2, 0.2), velocity=(1.0, -1.0), density=3.0, temperature=4.0)

    rectangle.emit(solver, settings)

    density = solver.density_src.to_numpy()
    temperature = solver.temperature_src.to_numpy()
    u, v = solver.velocity_src.to_numpy()
    for x, y in rectangle.covered_cells((10, 10)):
        assert density[x + 1, y + 1] == 6.0
        assert temperature[x + 1, y + 1] == 2.0
        assert u[x + 1, y + 1] == 1.0
        assert v[x + 1, y + 1] == -1.0
    assert density.sum() == 6.0 * 4


def test_emit_into_a_3d_solver_skips_temperature():
    solver = FluidSolver3D((6, 6, 6))
    circle = Circle(center=(0.5, 0.5, 0.5), radius=0.2, velocity=(0.0, 1.0), temperature=1.0)

    circle.emit(solver, Settings())

    assert solver.density_src.to_numpy().sum() == len(circle.covered_cells((6, 6, 6)))
    assert solver.velocity_src[1].to_numpy().sum() == len(circle.covered_cells((6, 6, 6)))
    assert solver.velocity_src[2].to_numpy().sum() == 0.0
