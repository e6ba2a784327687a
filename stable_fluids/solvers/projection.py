from stable_fluids.solvers.poisson_solver import PoissonSolver, SolveResult
from stable_fluids.grid import ScalarField, VectorField, reflect, smear
from stable_fluids.constants import SolverMethod

from typing import Sequence

import taichi as ti
import logging

logger = logging.getLogger(__name__)


@ti.data_oriented
class Projection:
    def __init__(self, poisson_solver: PoissonSolver, dimensions: Sequence[int]) -> None:
        """
        Helmholtz-Hodge projection, removes the gradient part of a velocity field.
        ---
        Parameters:
            poisson_solver: the solver owned by the fluid simulation
            dimensions: interior cell counts of the velocity field
        """
        self.poisson_solver = poisson_solver
        self.dimensions = tuple(int(d) for d in dimensions)
        self.n_dimensions = len(self.dimensions)

        # Cells are square, one domain length spans the grid along x.
        self.cells_per_unit = float(self.dimensions[0])

        self.divergence = ScalarField(self.dimensions, name="divergence")
        self.potential = ScalarField(self.dimensions, name="potential")
        self.sum = ti.field(dtype=ti.f32, shape=())

        # The operator only depends on the grid, it is prepared once.
        self.matrix = poisson_solver.prepare_divergence_matrix(SolverMethod.PreconCG)
        self.solve_count = 0

    @ti.func
    def is_interior(self, I):
        result = True
        for d in ti.static(range(self.n_dimensions)):
            if I[d] < 1 or I[d] > self.dimensions[d]:
                result = False
        return result

    @ti.func
    def centered_divergence(self, velocity: ti.template(), I):  # pyright: ignore
        # Sum of centered differences, in index units.
        total = 0.0
        for d in ti.static(range(self.n_dimensions)):
            offset = ti.Vector.unit(self.n_dimensions, d, ti.i32)
            u_plus = velocity.components[d].values[I + offset]
            u_minus = velocity.components[d].values[I - offset]
            total += 0.5 * (u_plus - u_minus) / self.cells_per_unit
        return total

    @ti.kernel
    def compute_divergence(self, velocity: ti.template()):  # pyright: ignore
        for I in ti.grouped(self.divergence.values):
            self.potential.values[I] = 0.0
            if self.is_interior(I):
                self.divergence.values[I] = -self.centered_divergence(velocity, I)
            else:
                self.divergence.values[I] = 0.0

    @ti.kernel
    def subtract_gradient(self, velocity: ti.template()):  # pyright: ignore
        for I in ti.grouped(self.potential.values):
            if self.is_interior(I):
                for d in ti.static(range(self.n_dimensions)):
                    offset = ti.Vector.unit(self.n_dimensions, d, ti.i32)
                    gradient = self.potential.values[I + offset] - self.potential.values[I - offset]
                    velocity.components[d].values[I] -= 0.5 * self.cells_per_unit * gradient

    @ti.kernel
    def sum_absolute_divergence(self, velocity: ti.template()):  # pyright: ignore
        self.sum[None] = 0.0
        for I in ti.grouped(self.divergence.values):
            if self.is_interior(I):
                total = 0.0
                for d in ti.static(range(self.n_dimensions)):
                    offset = ti.Vector.unit(self.n_dimensions, d, ti.i32)
                    u_plus = velocity.components[d].values[I + offset]
                    u_minus = velocity.components[d].values[I - offset]
                    total += 0.5 * self.cells_per_unit * (u_plus - u_minus)
                self.sum[None] += ti.abs(total)

    def enforce_incompressibility(self, velocity: VectorField, method: int = SolverMethod.PreconCG) -> SolveResult:
        """
        Makes velocity (approximately) divergence free, in place.
        ---
        Parameters:
            velocity: the field to project, its borders are reflected afterwards
            method: one of SolverMethod
        """
        self.compute_divergence(velocity)
        smear(self.divergence)

        result = self.poisson_solver.solve(self.potential, self.matrix, self.divergence, method)
        self.solve_count += 1
        smear(self.potential)

        self.subtract_gradient(velocity)
        reflect(velocity)

        logger.info("EnforceIncompressibility took: %d iterations.", result.iterations)
        return result

    def mean_absolute_divergence(self, velocity: VectorField) -> float:
        """Mean of |div u| over the interior, in domain units."""
        self.sum_absolute_divergence(velocity)
        n_cells = 1
        for d in self.dimensions:
            n_cells *= d
        return float(self.sum[None]) / n_cells
