from stable_fluids.solvers import PoissonSolver, Projection
from stable_fluids.constants import SolverMethod
from stable_fluids.grid import VectorField, padded_shape, reflect

import numpy as np
import logging
import pytest


def radial_velocity(dimensions, amplitude=0.01, sigma=0.15) -> VectorField:
    """An outflow from the middle of the domain, in domain units."""
    velocity = VectorField(dimensions)
    shape = padded_shape(dimensions)
    axes = np.meshgrid(*[(np.arange(s) - 0.5) / n for s, n in zip(shape, dimensions)], indexing="ij")
    offsets = [axis - 0.5 for axis in axes]
    envelope = np.exp(-sum(o**2 for o in offsets) / sigma**2)
    for component, offset in zip(velocity, offsets):
        component.from_numpy(amplitude * offset * envelope)
    reflect(velocity)
    return velocity


@pytest.mark.parametrize("method", [SolverMethod.PreconCG, SolverMethod.PlainCG, SolverMethod.GaussSeidel])
def test_projection_removes_divergence(method):
    solver = PoissonSolver(padded_shape((32, 32)), max_iterations=4000)
    projection = Projection(solver, (32, 32))
    velocity = radial_velocity((32, 32))

    before = projection.mean_absolute_divergence(velocity)
    result = projection.enforce_incompressibility(velocity, method)
    after = projection.mean_absolute_divergence(velocity)

    assert result.converged
    assert after < 1e-3
    assert after < 0.25 * before


def test_projection_in_three_dimensions():
    solver = PoissonSolver(padded_shape((12, 12, 12)))
    projection = Projection(solver, (12, 12, 12))
    velocity = radial_velocity((12, 12, 12), sigma=0.25)

    before = projection.mean_absolute_divergence(velocity)
    result = projection.enforce_incompressibility(velocity)

    assert result.converged
    assert projection.mean_absolute_divergence(velocity) < 0.5 * before


def test_divergence_free_field_is_left_alone():
    solver = PoissonSolver(padded_shape((16, 16)))
    projection = Projection(solver, (16, 16))
    velocity = VectorField((16, 16))

    result = projection.enforce_incompressibility(velocity)

    assert result.iterations == 0
    for component in velocity:
        assert np.all(component.to_numpy() == 0.0)


def test_projection_logs_its_iterations(caplog):
    solver = PoissonSolver(padded_shape((16, 16)))
    projection = Projection(solver, (16, 16))
    velocity = radial_velocity((16, 16))

    with caplog.at_level(logging.INFO, logger="stable_fluids.solvers.projection"):
        result = projection.enforce_incompressibility(velocity)

    assert f"EnforceIncompressibility took: {result.iterations} iterations." in caplog.text
    assert projection.solve_count == 1


def outflow_in_cells(dimensions, sigma=8.0, amplitude=0.01) -> VectorField:
    """A radial outflow around the middle cell, its width given in cells."""
    velocity = VectorField(dimensions)
    shape = padded_shape(dimensions)
    offsets = np.meshgrid(*[np.arange(s) - 0.5 * (s - 1) for s in shape], indexing="ij")
    envelope = np.exp(-sum(o**2 for o in offsets) / sigma**2)
    for component, offset in zip(velocity, offsets):
        component.from_numpy(amplitude * offset / dimensions[0] * envelope)
    reflect(velocity)
    return velocity


def divergence_ratio(dimensions) -> float:
    solver = PoissonSolver(padded_shape(dimensions), max_iterations=4000)
    projection = Projection(solver, dimensions)
    velocity = outflow_in_cells(dimensions)

    before = projection.mean_absolute_divergence(velocity)
    result = projection.enforce_incompressibility(velocity)

    assert result.converged
    return projection.mean_absolute_divergence(velocity) / before


@pytest.mark.parametrize("dimensions", [(96, 48), (48, 96)])
def test_rectangular_grids_project_like_square_ones(dimensions):
    square = divergence_ratio((48, 48))
    rectangular = divergence_ratio(dimensions)

    assert square < 0.05
    assert rectangular < 2.0 * square + 1e-3
