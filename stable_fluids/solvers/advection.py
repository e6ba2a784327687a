from stable_fluids.constants import AdvectionMethod, InterpolationMethod
from stable_fluids.grid import ScalarField, VectorField, smear_border

from itertools import product

import taichi as ti


@ti.func
def monotonic_cubic(f0, f1, f2, f3, t):
    # Fedkiw's monotonic cubic, slopes are zeroed where they disagree with the secant.
    delta = f2 - f1
    d1 = 0.5 * (f2 - f0)
    d2 = 0.5 * (f3 - f1)
    if delta == 0.0:
        d1 = 0.0
        d2 = 0.0
    else:
        if d1 * delta < 0.0:
            d1 = 0.0
        if d2 * delta < 0.0:
            d2 = 0.0
    a3 = d1 + d2 - 2.0 * delta
    a2 = 3.0 * delta - 2.0 * d1 - d2
    result = ((a3 * t + a2) * t + d1) * t + f1
    return ti.min(ti.max(result, ti.min(f1, f2)), ti.max(f1, f2))


@ti.data_oriented
class Advection:
    def __init__(self, velocity_t0: VectorField, velocity_t1: VectorField) -> None:
        """
        Transports quantities backwards along the streamlines of a velocity field.
        ---
        Parameters:
            velocity_t0: velocity at the start of the step
            velocity_t1: velocity at the end of the step
        """
        self.velocity_t0 = velocity_t0
        self.velocity_t1 = velocity_t1
        self.shape = velocity_t1.shape
        self.dimensions = velocity_t1.dimensions
        self.n_dimensions = velocity_t1.n_dimensions

        # Cells are square, one domain length spans the grid along x.
        self.cells_per_unit = float(self.dimensions[0])

        # Corners of a grid cell, for multi-linear interpolation.
        self.corners = [list(corner) for corner in product((0, 1), repeat=self.n_dimensions)]

        # Traced positions in padded index space, and scratch fields for MacCormack.
        self.backward = ti.Vector.field(self.n_dimensions, dtype=ti.f32, shape=self.shape)
        self.forward = ti.Vector.field(self.n_dimensions, dtype=ti.f32, shape=self.shape)
        self.intermediate = ScalarField(self.dimensions, name="advection.intermediate")
        self.reversed = ScalarField(self.dimensions, name="advection.reversed")

    @ti.func
    def is_interior(self, I):
        result = True
        for d in ti.static(range(self.n_dimensions)):
            if I[d] < 1 or I[d] > self.shape[d] - 2:
                result = False
        return result

    @ti.func
    def clamp_index(self, I):
        J = I
        for d in ti.static(range(self.n_dimensions)):
            J[d] = ti.min(ti.max(I[d], 0), self.shape[d] - 1)
        return J

    @ti.func
    def clamp_position(self, p):
        q = p
        for d in ti.static(range(self.n_dimensions)):
            q[d] = ti.min(ti.max(p[d], 0.5), self.shape[d] - 1.5)
        return q

    @ti.func
    def sample_linear(self, f: ti.template(), p):  # pyright: ignore
        base = ti.floor(p, dtype=ti.i32)
        frac = p - base
        result = 0.0
        for corner in ti.static(self.corners):
            weight = 1.0
            for d in ti.static(range(self.n_dimensions)):
                weight *= frac[d] * corner[d] + (1.0 - frac[d]) * (1 - corner[d])
            result += weight * f[self.clamp_index(base + ti.Vector(corner))]
        return result

    @ti.func
    def sample_cubic(self, f: ti.template(), p):  # pyright: ignore
        base = ti.floor(p, dtype=ti.i32)
        frac = p - base
        result = 0.0
        if ti.static(self.n_dimensions == 2):
            rows = ti.Vector.zero(ti.f32, 4)
            for j in ti.static(range(4)):
                rows[j] = monotonic_cubic(
                    f[self.clamp_index(base + ti.Vector([-1, j - 1]))],
                    f[self.clamp_index(base + ti.Vector([0, j - 1]))],
                    f[self.clamp_index(base + ti.Vector([1, j - 1]))],
                    f[self.clamp_index(base + ti.Vector([2, j - 1]))],
                    frac[0],
                )
            result = monotonic_cubic(rows[0], rows[1], rows[2], rows[3], frac[1])
        else:
            planes = ti.Vector.zero(ti.f32, 4)
            for k in ti.static(range(4)):
                rows = ti.Vector.zero(ti.f32, 4)
                for j in ti.static(range(4)):
                    rows[j] = monotonic_cubic(
                        f[self.clamp_index(base + ti.Vector([-1, j - 1, k - 1]))],
                        f[self.clamp_index(base + ti.Vector([0, j - 1, k - 1]))],
                        f[self.clamp_index(base + ti.Vector([1, j - 1, k - 1]))],
                        f[self.clamp_index(base + ti.Vector([2, j - 1, k - 1]))],
                        frac[0],
                    )
                planes[k] = monotonic_cubic(rows[0], rows[1], rows[2], rows[3], frac[1])
            result = monotonic_cubic(planes[0], planes[1], planes[2], planes[3], frac[2])
        return result

    @ti.func
    def sample(self, f: ti.template(), p, interpolation: ti.template()):  # pyright: ignore
        result = 0.0
        if ti.static(interpolation == InterpolationMethod.MonotonicCubic):
            result = self.sample_cubic(f, p)
        else:
            result = self.sample_linear(f, p)
        return result

    @ti.func
    def velocity_at(self, p, t):
        # Velocity in cells per unit time, linearly interpolated between both time levels.
        q = self.clamp_position(p)
        velocity = ti.Vector.zero(ti.f32, self.n_dimensions)
        for d in ti.static(range(self.n_dimensions)):
            v0 = self.sample_linear(self.velocity_t0.components[d].values, q)
            v1 = self.sample_linear(self.velocity_t1.components[d].values, q)
            velocity[d] = ((1.0 - t) * v0 + t * v1) * self.cells_per_unit
        return velocity

    @ti.func
    def trace(self, p, delta_time, steps, direction, method: ti.template()):  # pyright: ignore
        # Backwards (direction = -1) runs from time 1 to 0, forwards from 0 to 1.
        h = direction * delta_time / steps
        dt_fraction = direction / steps
        t = 0.5 - 0.5 * direction
        position = p
        for _ in range(steps):
            if ti.static(method == AdvectionMethod.ForwardEuler):
                position = position + h * self.velocity_at(position, t)
            else:
                k1 = self.velocity_at(position, t)
                k2 = self.velocity_at(position + 0.5 * h * k1, t + 0.5 * dt_fraction)
                k3 = self.velocity_at(position + 0.5 * h * k2, t + 0.5 * dt_fraction)
                k4 = self.velocity_at(position + h * k3, t + dt_fraction)
                position = position + (h / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)
            position = self.clamp_position(position)
            t += dt_fraction
        return position

    @ti.kernel
    def trace_positions(
        self,
        positions: ti.template(),  # pyright: ignore
        delta_time: ti.f32,
        steps: ti.i32,
        direction: ti.f32,
        method: ti.template(),  # pyright: ignore
    ):
        for I in ti.grouped(positions):
            if self.is_interior(I):
                positions[I] = self.trace(ti.cast(I, ti.f32), delta_time, steps, direction, method)

    @ti.kernel
    def resample(
        self,
        dest: ti.template(),  # pyright: ignore
        src: ti.template(),  # pyright: ignore
        positions: ti.template(),  # pyright: ignore
        interpolation: ti.template(),  # pyright: ignore
    ):
        for I in ti.grouped(dest):
            if self.is_interior(I):
                dest[I] = self.sample(src, positions[I], interpolation)

    @ti.kernel
    def correct(self, dest: ti.template(), src: ti.template()):  # pyright: ignore
        # MacCormack: remove half of the round trip error, then clamp to the extrema
        # of the source values around the traced position to suppress overshoots.
        for I in ti.grouped(dest):
            if self.is_interior(I):
                p = self.backward[I]
                base = ti.floor(p, dtype=ti.i32)
                lower = src[self.clamp_index(base)]
                upper = lower
                for corner in ti.static(self.corners):
                    value = src[self.clamp_index(base + ti.Vector(corner))]
                    lower = ti.min(lower, value)
                    upper = ti.max(upper, value)
                corrected = self.intermediate.values[I] + 0.5 * (src[I] - self.reversed.values[I])
                dest[I] = ti.min(ti.max(corrected, lower), upper)

    def perform_advection(self, dest, src, delta_time: float, settings) -> None:
        """
        Advects a ScalarField or every component of a VectorField, writing into the interior of dest.
        ---
        Parameters:
            dest: output quantity, must not be the same field as src
            src: the quantity sampled along the streamlines
            delta_time: the step size
            settings: provides advection_method, interpolation_method and advection_steps
        """
        method = settings.advection_method
        interpolation = settings.interpolation_method
        steps = int(settings.advection_steps)

        dest_components = getattr(dest, "components", [dest])
        src_components = getattr(src, "components", [src])
        if len(dest_components) != len(src_components):
            raise ValueError("Cannot advect between quantities with a different number of components")
        for d, s in zip(dest_components, src_components):
            if d is s:
                raise ValueError(f"Advection of '{s.name}' into itself is not supported")

        if method == AdvectionMethod.MacCormackRK4:
            self.trace_positions(self.backward, delta_time, steps, -1.0, AdvectionMethod.RungeKutta)
            self.trace_positions(self.forward, delta_time, steps, 1.0, AdvectionMethod.RungeKutta)
            for d, s in zip(dest_components, src_components):
                self.resample(self.intermediate.values, s.values, self.backward, interpolation)
                smear_border(self.intermediate.values)
                self.resample(self.reversed.values, self.intermediate.values, self.forward, interpolation)
                self.correct(d.values, s.values)
        else:
            self.trace_positions(self.backward, delta_time, steps, -1.0, method)
            for d, s in zip(dest_components, src_components):
                self.resample(d.values, s.values, self.backward, interpolation)
