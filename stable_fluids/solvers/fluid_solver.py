from stable_fluids.exceptions import SimulationDivergedError, SolverStateError
from stable_fluids.solvers.vorticity import VorticityConfinement
from stable_fluids.solvers.poisson_solver import PoissonSolver
from stable_fluids.solvers.projection import Projection
from stable_fluids.solvers.diffusion import DiffusionStage
from stable_fluids.solvers.advection import Advection
from stable_fluids.grid import ScalarField, VectorField, padded_shape, reflect, smear
from stable_fluids.constants import SolverState
from stable_fluids.configurations import Settings

from typing import Sequence

import taichi as ti
import numpy as np
import logging

logger = logging.getLogger(__name__)


@ti.kernel
def combine(working: ti.template(), current: ti.template(), delta_time: ti.f32):  # pyright: ignore
    # Sources are rates, the working buffer becomes current + dt * source.
    for I in ti.grouped(working):
        working[I] = current[I] + delta_time * working[I]


@ti.kernel
def add_buoyancy(
    force: ti.template(),  # pyright: ignore
    density: ti.template(),  # pyright: ignore
    temperature: ti.template(),  # pyright: ignore
    alpha: ti.f32,
    beta: ti.f32,
):
    # Dense smoke sinks, hot smoke rises, +y points up.
    for I in ti.grouped(force):
        if 0 < I[0] < force.shape[0] - 1 and 0 < I[1] < force.shape[1] - 1:
            force[I] += -alpha * density[I] + beta * temperature[I]


class FluidSolver:
    n_dimensions = 0

    def __init__(self, dimensions: Sequence[int], tolerance: float = 1e-5, max_iterations: int = 500) -> None:
        """
        The shared tick pipeline of the stable fluids solvers.
        ---
        Parameters:
            dimensions: interior cell counts
            tolerance: relative residual tolerance of every linear solve
            max_iterations: iteration cap of every linear solve
        """
        if len(dimensions) != self.n_dimensions:
            raise ValueError(f"{type(self).__name__} needs {self.n_dimensions} dimensions, got {tuple(dimensions)}")
        self.shape = padded_shape(dimensions)
        self.dimensions = tuple(int(d) for d in dimensions)
        self.state = SolverState.Idle

        # Velocity keeps the previous and current step, and the source accumulator.
        self.velocity_t0 = VectorField(self.dimensions, name="velocity.t0")
        self.velocity_t1 = VectorField(self.dimensions, name="velocity.t1")
        self.velocity_src = VectorField(self.dimensions, name="velocity.src")

        self.density_t1 = ScalarField(self.dimensions, name="density.t1")
        self.density_src = ScalarField(self.dimensions, name="density.src")

        self.poisson_solver = PoissonSolver(self.shape, tolerance, max_iterations)
        self.projection = Projection(self.poisson_solver, self.dimensions)
        self.vorticity = VorticityConfinement(self.dimensions)

        # Diffusion matrices are cached per quantity, keyed by their coefficient.
        self.velocity_diffusion = DiffusionStage(self.poisson_solver, "velocity")
        self.density_diffusion = DiffusionStage(self.poisson_solver, "density")

        # Velocity is advected through itself, scalars through the projected velocity.
        self.velocity_advection = Advection(self.velocity_t0, self.velocity_src)
        self.scalar_advection = Advection(self.velocity_t0, self.velocity_t1)

        self.last_tick = {}
        self.tick_count = 0
        self.reset()

    def reset(self) -> None:
        """Zeroes every buffer."""
        self.ensure_idle("reset")
        for field in self.fields().values():
            field.fill(0.0)

    def fields(self) -> dict:
        return {
            "velocity.t0": self.velocity_t0,
            "velocity.t1": self.velocity_t1,
            "velocity.src": self.velocity_src,
            "density.t1": self.density_t1,
            "density.src": self.density_src,
        }

    def sources(self) -> list:
        return [self.velocity_src, self.density_src]

    def ensure_idle(self, operation: str) -> None:
        if self.state != SolverState.Idle:
            raise SolverStateError(f"Cannot {operation} while a tick is in progress")

    def get_dimensions(self) -> tuple:
        return self.dimensions

    def add_density(self, coord: Sequence[int], amount: float) -> None:
        self.ensure_idle("add density")
        if self.density_src.contains(coord):
            self.density_src.add(coord, amount)

    def add_velocity(self, coord: Sequence[int], vector: Sequence[float]) -> None:
        self.ensure_idle("add velocity")
        if len(vector) != self.n_dimensions:
            raise ValueError(f"Expected a {self.n_dimensions} component velocity, got {tuple(vector)}")
        if self.velocity_src.contains(coord):
            self.velocity_src.add(coord, vector)

    def export_buffers(self) -> dict:
        """Copies of the current density and velocity, padded and indexed [x, y(, z)]."""
        return {
            "density": self.density_t1.to_numpy(),
            "velocity": self.velocity_t1.to_numpy(),
        }

    def tick(self, delta_time: float | None = None, settings: Settings | None = None) -> dict:
        """
        Advances the simulation by one step and consumes the accumulated sources.
        ---
        Parameters:
            delta_time: step size, defaults to settings.delta_time
            settings: defaults to Settings()
        """
        self.ensure_idle("tick")
        settings = Settings() if settings is None else settings
        delta_time = settings.delta_time if delta_time is None else delta_time
        settings.validate(delta_time)

        self.state = SolverState.Ticking
        try:
            self.last_tick = self.step(float(delta_time), settings)
        finally:
            for source in self.sources():
                source.fill(0.0)
            self.state = SolverState.Idle

        self.tick_count += 1
        if settings.check_finite:
            self.check_finite()
        return self.last_tick

    def step(self, delta_time: float, settings: Settings) -> dict:
        results = {}

        # Forces, computed from the previous step.
        self.vorticity.confine(self.velocity_t1, self.velocity_src, delta_time, settings.vorticity_confinement)
        self.apply_buoyancy(settings)

        # Combine the current state with the sources into the working buffers.
        self.velocity_t0.copy_from(self.velocity_t1)
        for current, working in zip(self.velocity_t1, self.velocity_src):
            combine(working.values, current.values, delta_time)
        self.combine_scalars(delta_time)

        # Velocity step: diffuse, advect through itself, project.
        results["velocity"] = self.velocity_diffusion.diffuse(
            self.velocity_src, delta_time, settings.viscosity, settings.diffusion_method
        )
        reflect(self.velocity_src)
        self.velocity_advection.perform_advection(self.velocity_t1, self.velocity_src, delta_time, settings)
        reflect(self.velocity_t1)
        results["projection"] = [
            self.projection.enforce_incompressibility(self.velocity_t1, settings.enforce_incompressibility_method)
        ]

        # Scalar steps, through the projected velocity.
        results["density"] = self.transport(
            self.density_t1, self.density_src, self.density_diffusion, delta_time, settings.diffusion_rate, settings
        )
        self.transport_scalars(results, delta_time, settings)
        return results

    def apply_buoyancy(self, settings: Settings) -> None:
        pass

    def combine_scalars(self, delta_time: float) -> None:
        combine(self.density_src.values, self.density_t1.values, delta_time)

    def transport_scalars(self, results: dict, delta_time: float, settings: Settings) -> None:
        pass

    def transport(
        self,
        current: ScalarField,
        working: ScalarField,
        diffusion: DiffusionStage,
        delta_time: float,
        rate: float,
        settings: Settings,
    ) -> list:
        results = diffusion.diffuse(working, delta_time, rate, settings.diffusion_method)
        smear(working)
        self.scalar_advection.perform_advection(current, working, delta_time, settings)
        smear(current)
        return results

    def check_finite(self) -> None:
        for name, field in self.fields().items():
            arrays = field.to_numpy()
            if isinstance(field, ScalarField):
                arrays = [arrays]
            for array in arrays:
                if not np.isfinite(array).all():
                    raise SimulationDivergedError(f"Field '{name}' holds non-finite values after tick {self.tick_count}")


class FluidSolver2D(FluidSolver):
    n_dimensions = 2

    def __init__(self, dimensions: Sequence[int], tolerance: float = 1e-5, max_iterations: int = 500) -> None:
        """
        Smoke and fire in 2D, transports density and temperature.
        ---
        Parameters:
            dimensions: (width, height) interior cell counts
            tolerance: relative residual tolerance of every linear solve
            max_iterations: iteration cap of every linear solve
        """
        if len(dimensions) != 2:
            raise ValueError(f"FluidSolver2D needs 2 dimensions, got {tuple(dimensions)}")
        self.temperature_t1 = ScalarField(dimensions, name="temperature.t1")
        self.temperature_src = ScalarField(dimensions, name="temperature.src")
        super().__init__(dimensions, tolerance, max_iterations)
        self.temperature_diffusion = DiffusionStage(self.poisson_solver, "temperature")

    def fields(self) -> dict:
        fields = super().fields()
        fields["temperature.t1"] = self.temperature_t1
        fields["temperature.src"] = self.temperature_src
        return fields

    def sources(self) -> list:
        return super().sources() + [self.temperature_src]

    def add_temperature(self, coord: Sequence[int], amount: float) -> None:
        self.ensure_idle("add temperature")
        if self.temperature_src.contains(coord):
            self.temperature_src.add(coord, amount)

    def export_buffers(self) -> dict:
        buffers = super().export_buffers()
        buffers["temperature"] = self.temperature_t1.to_numpy()
        return buffers

    def apply_buoyancy(self, settings: Settings) -> None:
        add_buoyancy(
            self.velocity_src[1].values,
            self.density_t1.values,
            self.temperature_t1.values,
            settings.buoyancy_alpha,
            settings.buoyancy_beta,
        )

    def combine_scalars(self, delta_time: float) -> None:
        super().combine_scalars(delta_time)
        combine(self.temperature_src.values, self.temperature_t1.values, delta_time)

    def transport_scalars(self, results: dict, delta_time: float, settings: Settings) -> None:
        results["temperature"] = self.transport(
            self.temperature_t1,
            self.temperature_src,
            self.temperature_diffusion,
            delta_time,
            settings.temp_diffusion_rate,
            settings,
        )


class FluidSolver3D(FluidSolver):
    """Smoke in 3D, transports density only and has no buoyancy."""

    n_dimensions = 3
