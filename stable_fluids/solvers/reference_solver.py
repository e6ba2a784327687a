from stable_fluids.configurations import ReferenceSettings
from stable_fluids.exceptions import SolverStateError
from stable_fluids.constants import SolverState
from stable_fluids.grid import ScalarField

from typing import Sequence

import taichi as ti
import logging

logger = logging.getLogger(__name__)

# Gauss-Seidel sweeps per linear solve.
LIN_SOLVE_ITERATIONS = 20


# Jos Stam, "Real-Time Fluid Dynamics for Games", with the grid stored as [x, y].
# b selects the boundary: 0 scalar, 1 horizontal velocity, 2 vertical velocity.


@ti.kernel
def add_source(x: ti.template(), s: ti.template(), dt: ti.f32):  # pyright: ignore
    for I in ti.grouped(x):
        x[I] += dt * s[I]


@ti.kernel
def set_bnd(b: ti.i32, x: ti.template()):  # pyright: ignore
    N = x.shape[0] - 2
    for i in range(1, N + 1):
        x[0, i] = -x[1, i] if b == 1 else x[1, i]
        x[N + 1, i] = -x[N, i] if b == 1 else x[N, i]
        x[i, 0] = -x[i, 1] if b == 2 else x[i, 1]
        x[i, N + 1] = -x[i, N] if b == 2 else x[i, N]
    x[0, 0] = 0.5 * (x[1, 0] + x[0, 1])
    x[0, N + 1] = 0.5 * (x[1, N + 1] + x[0, N])
    x[N + 1, 0] = 0.5 * (x[N, 0] + x[N + 1, 1])
    x[N + 1, N + 1] = 0.5 * (x[N, N + 1] + x[N + 1, N])


@ti.kernel
def relax(x: ti.template(), x0: ti.template(), a: ti.f32, c: ti.f32):  # pyright: ignore
    N = x.shape[0] - 2
    ti.loop_config(serialize=True)
    for j in range(1, N + 1):
        for i in range(1, N + 1):
            x[i, j] = (x0[i, j] + a * (x[i - 1, j] + x[i + 1, j] + x[i, j - 1] + x[i, j + 1])) / c


def lin_solve(b: int, x, x0, a: float, c: float) -> None:
    for _ in range(LIN_SOLVE_ITERATIONS):
        relax(x, x0, a, c)
        set_bnd(b, x)


def diffuse(b: int, x, x0, diff: float, dt: float) -> None:
    N = x.shape[0] - 2
    a = dt * diff * N * N
    lin_solve(b, x, x0, a, 1 + 4 * a)


@ti.kernel
def backtrace(d: ti.template(), d0: ti.template(), u: ti.template(), v: ti.template(), dt: ti.f32):  # pyright: ignore
    N = d.shape[0] - 2
    dt0 = dt * N
    for i, j in ti.ndrange((1, N + 1), (1, N + 1)):
        x = ti.min(ti.max(i - dt0 * u[i, j], 0.5), N + 0.5)
        y = ti.min(ti.max(j - dt0 * v[i, j], 0.5), N + 0.5)
        i0 = ti.cast(ti.floor(x), ti.i32)
        i1 = i0 + 1
        j0 = ti.cast(ti.floor(y), ti.i32)
        j1 = j0 + 1
        s1 = x - i0
        s0 = 1 - s1
        t1 = y - j0
        t0 = 1 - t1
        d[i, j] = s0 * (t0 * d0[i0, j0] + t1 * d0[i0, j1]) + s1 * (t0 * d0[i1, j0] + t1 * d0[i1, j1])


def advect(b: int, d, d0, u, v, dt: float) -> None:
    backtrace(d, d0, u, v, dt)
    set_bnd(b, d)


@ti.kernel
def compute_divergence(u: ti.template(), v: ti.template(), p: ti.template(), div: ti.template()):  # pyright: ignore
    N = u.shape[0] - 2
    for i, j in ti.ndrange((1, N + 1), (1, N + 1)):
        div[i, j] = -0.5 * (u[i + 1, j] - u[i - 1, j] + v[i, j + 1] - v[i, j - 1]) / N
        p[i, j] = 0.0


@ti.kernel
def subtract_gradient(u: ti.template(), v: ti.template(), p: ti.template()):  # pyright: ignore
    N = u.shape[0] - 2
    for i, j in ti.ndrange((1, N + 1), (1, N + 1)):
        u[i, j] -= 0.5 * N * (p[i + 1, j] - p[i - 1, j])
        v[i, j] -= 0.5 * N * (p[i, j + 1] - p[i, j - 1])


def project(u, v, p, div) -> None:
    compute_divergence(u, v, p, div)
    set_bnd(0, div)
    set_bnd(0, p)
    lin_solve(0, p, div, 1, 4)
    subtract_gradient(u, v, p)
    set_bnd(1, u)
    set_bnd(2, v)


def dens_step(x, x0, u, v, diff: float, dt: float) -> None:
    # x0 is used as scratch, the result ends up in x.
    add_source(x, x0, dt)
    diffuse(0, x0, x, diff, dt)
    advect(0, x, x0, u, v, dt)


def vel_step(u, v, u0, v0, visc: float, dt: float) -> None:
    # u0 and v0 are used as scratch, the result ends up in u and v.
    add_source(u, u0, dt)
    add_source(v, v0, dt)
    diffuse(1, u0, u, visc, dt)
    diffuse(2, v0, v, visc, dt)
    project(u0, v0, u, v)
    advect(1, u, u0, u0, v0, dt)
    advect(2, v, v0, u0, v0, dt)
    project(u, v, u0, v0)


class ReferenceFluidSolver2D:
    def __init__(self, dimensions: Sequence[int]) -> None:
        """
        Stam's solver from "Real-Time Fluid Dynamics for Games", kept to cross check FluidSolver2D.
        ---
        Parameters:
            dimensions: (N, N) interior cell counts, the grid must be square
        """
        if len(dimensions) != 2 or dimensions[0] != dimensions[1]:
            raise ValueError(f"ReferenceFluidSolver2D needs a square 2D grid, got {tuple(dimensions)}")
        self.dimensions = tuple(int(d) for d in dimensions)
        self.state = SolverState.Idle

        self.velocity_u = ScalarField(self.dimensions, name="reference.u")
        self.velocity_v = ScalarField(self.dimensions, name="reference.v")
        self.density = ScalarField(self.dimensions, name="reference.density")
        self.prev_velocity_u = ScalarField(self.dimensions, name="reference.u0")
        self.prev_velocity_v = ScalarField(self.dimensions, name="reference.v0")
        self.prev_density = ScalarField(self.dimensions, name="reference.density0")

        self.sources = [self.prev_velocity_u, self.prev_velocity_v, self.prev_density]
        for field in self.sources + [self.velocity_u, self.velocity_v, self.density]:
            field.fill(0.0)

    def get_dimensions(self) -> tuple:
        return self.dimensions

    def add_density(self, coord: Sequence[int], amount: float) -> None:
        if self.state != SolverState.Idle:
            raise SolverStateError("Cannot add density while a tick is in progress")
        if self.prev_density.contains(coord):
            self.prev_density.add(coord, amount)

    def add_velocity(self, coord: Sequence[int], vector: Sequence[float]) -> None:
        if self.state != SolverState.Idle:
            raise SolverStateError("Cannot add velocity while a tick is in progress")
        if self.prev_velocity_u.contains(coord):
            self.prev_velocity_u.add(coord, vector[0])
            self.prev_velocity_v.add(coord, vector[1])

    def tick(self, settings: ReferenceSettings | None = None) -> None:
        if self.state != SolverState.Idle:
            raise SolverStateError("Cannot tick while a tick is in progress")
        settings = ReferenceSettings() if settings is None else settings
        settings.validate()

        self.state = SolverState.Ticking
        try:
            vel_step(
                self.velocity_u.values,
                self.velocity_v.values,
                self.prev_velocity_u.values,
                self.prev_velocity_v.values,
                settings.viscosity,
                settings.delta_time,
            )
            dens_step(
                self.density.values,
                self.prev_density.values,
                self.velocity_u.values,
                self.velocity_v.values,
                settings.diffusion_rate,
                settings.delta_time,
            )
        finally:
            for source in self.sources:
                source.fill(0.0)
            self.state = SolverState.Idle
        logger.debug("Reference tick with delta_time %g", settings.delta_time)

    def export_buffers(self) -> dict:
        return {
            "density": self.density.to_numpy(),
            "velocity": [self.velocity_u.to_numpy(), self.velocity_v.to_numpy()],
        }
