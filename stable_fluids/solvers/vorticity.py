from stable_fluids.grid import ScalarField, VectorField, smear_border

from typing import Sequence

import taichi as ti

# Gradients of |omega| with a smaller squared magnitude are not normalised.
GRADIENT_THRESHOLD = 1e-10


@ti.data_oriented
class VorticityConfinement:
    def __init__(self, dimensions: Sequence[int]) -> None:
        """
        Restores small scale rotation that diffusion and projection damp away.
        ---
        Parameters:
            dimensions: interior cell counts of the velocity field, 2D or 3D
        """
        self.dimensions = tuple(int(d) for d in dimensions)
        self.n_dimensions = len(self.dimensions)

        # Cells are square, one domain length spans the grid along x.
        self.cells_per_unit = float(self.dimensions[0])

        # In 2D the curl only has a z component.
        axes = "z" if self.n_dimensions == 2 else "xyz"
        self.curl = [ScalarField(self.dimensions, name=f"curl.{axis}") for axis in axes]
        self.magnitude = ScalarField(self.dimensions, name="curl.magnitude")

    @ti.func
    def is_interior(self, I):
        result = True
        for d in ti.static(range(self.n_dimensions)):
            if I[d] < 1 or I[d] > self.dimensions[d]:
                result = False
        return result

    @ti.func
    def derivative(self, f: ti.template(), I, axis: ti.template()):  # pyright: ignore
        offset = ti.Vector.unit(self.n_dimensions, axis, ti.i32)
        return 0.5 * (f[I + offset] - f[I - offset])

    @ti.kernel
    def compute_curl(self, velocity: ti.template()):  # pyright: ignore
        for I in ti.grouped(self.magnitude.values):
            if self.is_interior(I):
                if ti.static(self.n_dimensions == 2):
                    omega = self.derivative(velocity.components[1].values, I, 0) - self.derivative(
                        velocity.components[0].values, I, 1
                    )
                    self.curl[0].values[I] = omega
                    self.magnitude.values[I] = ti.abs(omega)
                else:
                    u = ti.static(velocity.components[0].values)
                    v = ti.static(velocity.components[1].values)
                    w = ti.static(velocity.components[2].values)
                    omega = ti.Vector(
                        [
                            self.derivative(w, I, 1) - self.derivative(v, I, 2),
                            self.derivative(u, I, 2) - self.derivative(w, I, 0),
                            self.derivative(v, I, 0) - self.derivative(u, I, 1),
                        ]
                    )
                    for d in ti.static(range(3)):
                        self.curl[d].values[I] = omega[d]
                    self.magnitude.values[I] = omega.norm()

    @ti.kernel
    def add_confinement(self, force: ti.template(), scale: ti.f32):  # pyright: ignore
        for I in ti.grouped(self.magnitude.values):
            if self.is_interior(I):
                eta = ti.Vector.zero(ti.f32, self.n_dimensions)
                for d in ti.static(range(self.n_dimensions)):
                    eta[d] = self.derivative(self.magnitude.values, I, d)

                magnitude_squared = eta.norm_sqr()
                if magnitude_squared > GRADIENT_THRESHOLD:
                    N = eta / ti.sqrt(magnitude_squared)
                    if ti.static(self.n_dimensions == 2):
                        # omega points along z, so N x omega stays in the plane.
                        omega = self.curl[0].values[I]
                        force.components[0].values[I] += scale * N[1] * omega
                        force.components[1].values[I] += -scale * N[0] * omega
                    else:
                        omega = ti.Vector(
                            [self.curl[0].values[I], self.curl[1].values[I], self.curl[2].values[I]]
                        )
                        additional = scale * N.cross(omega)
                        for d in ti.static(range(3)):
                            force.components[d].values[I] += additional[d]

    def confine(self, velocity: VectorField, force: VectorField, delta_time: float, strength: float) -> None:
        """
        Accumulates the confinement force computed from velocity into force.
        ---
        Parameters:
            velocity: the velocity of the previous step, read only
            force: the velocity source accumulator
            delta_time: the step size
            strength: restoring force strength, 0 disables the stage
        """
        if strength == 0.0:
            return

        self.compute_curl(velocity)
        for component in self.curl:
            smear_border(component.values)
        smear_border(self.magnitude.values)

        self.add_confinement(force, delta_time * strength * self.cells_per_unit)
