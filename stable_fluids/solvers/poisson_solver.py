from stable_fluids.constants import SolverMethod
from stable_fluids.grid import ScalarField

from dataclasses import dataclass
from functools import reduce
from typing import Sequence

import taichi as ti
import logging
import math

logger = logging.getLogger(__name__)

# Squared residuals below this are treated as an exact solution.
RESIDUAL_FLOOR = 1e-30


@dataclass(frozen=True)
class SolveResult:
    iterations: int
    residual: float  # residual norm relative to the right-hand side
    converged: bool


@ti.data_oriented
class PreparedMatrix:
    def __init__(self, shape: Sequence[int], a0: float, a1: float, method: int, preconditioner=None) -> None:
        """
        The sparse operator a0 * x_i - a1 * sum(neighbours of x_i) over the interior of a padded grid.
        ---
        Parameters:
            shape: padded grid shape this operator was built for
            a0: diagonal coefficient
            a1: coefficient of each of the 2 * dims neighbours
            method: the solver method this matrix was prepared for
            preconditioner: diagonal of the incomplete Cholesky factor, or None
        """
        self.shape = tuple(shape)
        self.a0 = float(a0)
        self.a1 = float(a1)
        self.method = method
        self.preconditioner = preconditioner

    @property
    def is_preconditioned(self) -> bool:
        return self.preconditioner is not None

    def __repr__(self) -> str:
        return f"PreparedMatrix(shape={self.shape}, a0={self.a0}, a1={self.a1}, method={self.method})"


@ti.data_oriented
class PoissonSolver:
    def __init__(self, shape: Sequence[int], tolerance: float = 1e-5, max_iterations: int = 500) -> None:
        """
        Builds and solves the linear systems arising from implicit diffusion and the pressure projection.
        ---
        Parameters:
            shape: padded grid shape, 2D or 3D
            tolerance: stop once the residual norm falls below tolerance * norm of the right-hand side
            max_iterations: iteration cap for every solve
        """
        self.shape = tuple(int(s) for s in shape)
        self.n_dimensions = len(self.shape)
        if self.n_dimensions not in (2, 3):
            raise ValueError(f"Only 2D and 3D grids are supported, got shape {self.shape}")
        if any(s < 3 for s in self.shape):
            raise ValueError(f"Padded shape {self.shape} leaves no interior cells")

        self.n_cells = reduce(lambda a, b: a * b, self.shape, 1)
        self.tolerance = tolerance
        self.max_iterations = max_iterations
        self.unconverged_solves = 0

        # rhs, residual, preconditioned residual, search direction and its image.
        self.b = ti.field(dtype=ti.f32, shape=self.shape)
        self.r = ti.field(dtype=ti.f32, shape=self.shape)
        self.z = ti.field(dtype=ti.f32, shape=self.shape)
        self.s = ti.field(dtype=ti.f32, shape=self.shape)
        self.As = ti.field(dtype=ti.f32, shape=self.shape)

        # Intermediate result of the forward substitution.
        self.q = ti.field(dtype=ti.f32, shape=self.shape)

        self.sum = ti.field(dtype=ti.f32, shape=())
        self.alpha = ti.field(dtype=ti.f32, shape=())
        self.beta = ti.field(dtype=ti.f32, shape=())

    @ti.func
    def is_interior(self, I):
        result = True
        for d in ti.static(range(self.n_dimensions)):
            if I[d] < 1 or I[d] > self.shape[d] - 2:
                result = False
        return result

    @ti.func
    def unravel(self, k):
        # Row-major, the last axis varies fastest.
        I = ti.Vector.zero(ti.i32, self.n_dimensions)
        index = k
        for d in ti.static(range(self.n_dimensions - 1, -1, -1)):
            I[d] = index % self.shape[d]
            index = index // self.shape[d]
        return I

    @ti.func
    def neighbor_sum(self, x: ti.template(), I):  # pyright: ignore
        total = 0.0
        for d in ti.static(range(self.n_dimensions)):
            offset = ti.Vector.unit(self.n_dimensions, d, ti.i32)
            total += x[I + offset] + x[I - offset]
        return total

    def prepare_matrix(self, a0: float, a1: float, method: int = SolverMethod.PreconCG) -> PreparedMatrix:
        """
        Builds the operator a0 * x_i - a1 * sum(neighbours), with its preconditioner when needed.
        ---
        Parameters:
            a0: diagonal coefficient
            a1: neighbour coefficient
            method: the method the matrix will mostly be solved with
        """
        if not (math.isfinite(a0) and math.isfinite(a1)):
            raise ValueError(f"Matrix coefficients must be finite, got a0={a0}, a1={a1}")
        if a1 < 0 or a0 <= 0 or a0 < 2 * self.n_dimensions * a1:
            raise ValueError(f"Matrix with a0={a0}, a1={a1} is not diagonally dominant")

        preconditioner = None
        if method == SolverMethod.PreconCG:
            preconditioner = ti.field(dtype=ti.f32, shape=self.shape)
            self.factorize(preconditioner, a0, a1)

        return PreparedMatrix(self.shape, a0, a1, method, preconditioner)

    def prepare_diffusion_matrix(self, a0: float, a1: float, method: int = SolverMethod.PreconCG) -> PreparedMatrix:
        """The implicit diffusion stencil, a0 = 1 + 2 * dims * k and a1 = k for a diffusion coefficient k."""
        return self.prepare_matrix(a0, a1, method)

    def prepare_divergence_matrix(self, method: int = SolverMethod.PreconCG) -> PreparedMatrix:
        """The discrete Laplacian solved for the pressure potential during the projection."""
        return self.prepare_matrix(2.0 * self.n_dimensions, 1.0, method)

    @ti.kernel
    def factorize(self, precon: ti.template(), a0: ti.f32, a1: ti.f32):  # pyright: ignore
        # Incomplete Cholesky IC(0), restricted to the bands of the stencil. Only
        # the inverse diagonal of the factor is stored, an off-diagonal entry
        # L[i, j] equals -a1 / L[j, j].
        ti.loop_config(serialize=True)
        for k in range(self.n_cells):
            I = self.unravel(k)
            if self.is_interior(I):
                e = a0
                for d in ti.static(range(self.n_dimensions)):
                    J = I - ti.Vector.unit(self.n_dimensions, d, ti.i32)
                    if self.is_interior(J):
                        e -= (a1 * precon[J]) ** 2
                if e < 0.25 * a0:
                    e = a0
                precon[I] = 1.0 / ti.sqrt(e)
            else:
                precon[I] = 0.0

    @ti.kernel
    def apply_preconditioner(self, precon: ti.template(), a1: ti.f32):  # pyright: ignore
        # Solve L q = r:
        ti.loop_config(serialize=True)
        for k in range(self.n_cells):
            I = self.unravel(k)
            if self.is_interior(I):
                t = self.r[I]
                for d in ti.static(range(self.n_dimensions)):
                    J = I - ti.Vector.unit(self.n_dimensions, d, ti.i32)
                    if self.is_interior(J):
                        t += a1 * precon[J] * self.q[J]
                self.q[I] = t * precon[I]

        # Solve L^T z = q:
        ti.loop_config(serialize=True)
        for k in range(self.n_cells):
            I = self.unravel(self.n_cells - 1 - k)
            if self.is_interior(I):
                t = self.q[I]
                for d in ti.static(range(self.n_dimensions)):
                    J = I + ti.Vector.unit(self.n_dimensions, d, ti.i32)
                    if self.is_interior(J):
                        t += a1 * precon[I] * self.z[J]
                self.z[I] = t * precon[I]

    @ti.kernel
    def load_rhs(self, source: ti.template()):  # pyright: ignore
        for I in ti.grouped(self.b):
            if self.is_interior(I):
                self.b[I] = source[I]
            else:
                self.b[I] = 0.0

    @ti.kernel
    def compute_residual(self, x: ti.template(), a0: ti.f32, a1: ti.f32):  # pyright: ignore
        # Border cells of x are known boundary values and take part in the stencil.
        for I in ti.grouped(self.r):
            if self.is_interior(I):
                self.r[I] = self.b[I] - (a0 * x[I] - a1 * self.neighbor_sum(x, I))
            else:
                self.r[I] = 0.0

    @ti.kernel
    def compute_As(self, a0: ti.f32, a1: ti.f32):  # pyright: ignore
        # The search direction is zero on the border.
        for I in ti.grouped(self.As):
            if self.is_interior(I):
                self.As[I] = a0 * self.s[I] - a1 * self.neighbor_sum(self.s, I)

    @ti.kernel
    def reduce(self, p: ti.template(), q: ti.template()):  # pyright: ignore
        self.sum[None] = 0.0
        for I in ti.grouped(p):
            if self.is_interior(I):
                self.sum[None] += p[I] * q[I]

    @ti.kernel
    def update_x(self, x: ti.template()):  # pyright: ignore
        for I in ti.grouped(x):
            if self.is_interior(I):
                x[I] = x[I] + self.alpha[None] * self.s[I]

    @ti.kernel
    def update_r(self):
        for I in ti.grouped(self.r):
            if self.is_interior(I):
                self.r[I] = self.r[I] - self.alpha[None] * self.As[I]

    @ti.kernel
    def update_s(self):
        for I in ti.grouped(self.s):
            if self.is_interior(I):
                self.s[I] = self.z[I] + self.beta[None] * self.s[I]

    @ti.kernel
    def relax(self, x: ti.template(), a0: ti.f32, a1: ti.f32, phase: ti.i32):  # pyright: ignore
        # phase: red/black Gauss-Seidel phase
        for I in ti.grouped(x):
            if self.is_interior(I) and (I.sum() & 1) == phase:
                x[I] = (self.b[I] + a1 * self.neighbor_sum(x, I)) / a0

    def precondition(self, matrix: PreparedMatrix, method: int) -> None:
        if method == SolverMethod.PreconCG:
            self.apply_preconditioner(matrix.preconditioner, matrix.a1)
        else:
            self.z.copy_from(self.r)

    def residual_norm(self) -> float:
        self.reduce(self.r, self.r)
        return self.sum[None]

    def check_arguments(self, dest: ScalarField, matrix: PreparedMatrix, source: ScalarField, method: int) -> None:
        for name, shape in (("matrix", matrix.shape), ("destination", dest.shape), ("source", source.shape)):
            if tuple(shape) != self.shape:
                raise ValueError(f"The {name} has shape {tuple(shape)}, but this solver works on {self.shape}")
        if method == SolverMethod.PreconCG and not matrix.is_preconditioned:
            raise ValueError(f"{matrix} was not prepared for preconditioned conjugate gradient")
        if method not in (SolverMethod.PlainCG, SolverMethod.PreconCG, SolverMethod.GaussSeidel):
            raise ValueError(f"Unknown solver method {method}")

    def solve(
        self,
        dest: ScalarField,
        matrix: PreparedMatrix,
        source: ScalarField,
        method: int = SolverMethod.PreconCG,
    ) -> SolveResult:
        """
        Solves matrix * dest = source for the interior of dest, in place.
        ---
        Parameters:
            dest: initial guess and result, its border cells are held fixed
            matrix: a matrix prepared by this solver
            source: right-hand side, may be the same field as dest
            method: one of SolverMethod
        """
        self.check_arguments(dest, matrix, source, method)

        # Copy first, dest and source might be the same field.
        self.load_rhs(source.values)
        self.reduce(self.b, self.b)
        rhs_rTr = self.sum[None]

        self.compute_residual(dest.values, matrix.a0, matrix.a1)
        init_rTr = self.residual_norm()
        reference = max(rhs_rTr, init_rTr)
        threshold = self.tolerance * self.tolerance * reference

        if not (math.isfinite(rhs_rTr) and math.isfinite(init_rTr)):
            self.unconverged_solves += 1
            logger.warning("Solve skipped, the right-hand side or initial guess holds non-finite values")
            return SolveResult(iterations=0, residual=math.nan, converged=False)

        if init_rTr <= threshold or init_rTr < RESIDUAL_FLOOR:
            residual = math.sqrt(init_rTr / reference) if reference > 0.0 else 0.0
            return SolveResult(iterations=0, residual=residual, converged=True)

        if method == SolverMethod.GaussSeidel:
            iterations, rTr = self.gauss_seidel(dest, matrix, threshold)
        else:
            iterations, rTr = self.conjugate_gradient(dest, matrix, method, threshold, init_rTr)

        converged = rTr <= threshold or rTr < RESIDUAL_FLOOR
        residual = math.sqrt(max(rTr, 0.0) / reference)
        if not converged:
            self.unconverged_solves += 1
            logger.warning(
                "Solve did not converge after %d iterations (relative residual %.3e, tolerance %.1e)",
                iterations,
                residual,
                self.tolerance,
            )
        else:
            logger.debug("Solve converged to %.3e in %d iterations", residual, iterations)

        return SolveResult(iterations=iterations, residual=residual, converged=converged)

    def conjugate_gradient(self, dest: ScalarField, matrix: PreparedMatrix, method: int, threshold: float, rTr: float):
        # s0 = z0 = M^-1 r0, the border of z stays zero.
        self.z.fill(0.0)
        self.s.fill(0.0)
        self.As.fill(0.0)
        self.precondition(matrix, method)
        self.s.copy_from(self.z)

        self.reduce(self.z, self.r)
        old_zTr = self.sum[None]

        iterations = 0
        for i in range(self.max_iterations):
            # alpha = zTr / sAs
            self.compute_As(matrix.a0, matrix.a1)
            self.reduce(self.s, self.As)
            sAs = self.sum[None]
            if sAs <= 0.0:
                break
            self.alpha[None] = old_zTr / sAs

            # x = x + alpha * s
            self.update_x(dest.values)

            # r = r - alpha * As
            self.update_r()
            iterations = i + 1

            # check for convergence
            rTr = self.residual_norm()
            if rTr <= threshold or rTr < RESIDUAL_FLOOR:
                break

            # z = M^-1 r
            self.precondition(matrix, method)
            self.reduce(self.z, self.r)
            new_zTr = self.sum[None]

            # beta = zTrnew / zTrold
            self.beta[None] = new_zTr / old_zTr

            # s = z + beta * s
            self.update_s()
            old_zTr = new_zTr

        return iterations, rTr

    def gauss_seidel(self, dest: ScalarField, matrix: PreparedMatrix, threshold: float):
        rTr = math.inf
        iterations = 0
        for i in range(self.max_iterations):
            self.relax(dest.values, matrix.a0, matrix.a1, 0)
            self.relax(dest.values, matrix.a0, matrix.a1, 1)
            iterations = i + 1

            self.compute_residual(dest.values, matrix.a0, matrix.a1)
            rTr = self.residual_norm()
            if rTr <= threshold or rTr < RESIDUAL_FLOOR:
                break

        return iterations, rTr
