import taichi as ti


@ti.func
def on_border(I, shape: ti.template()):  # pyright: ignore
    result = False
    for d in ti.static(range(len(shape))):
        if I[d] == 0 or I[d] == shape[d] - 1:
            result = True
    return result


@ti.func
def nearest_interior(I, shape: ti.template()):  # pyright: ignore
    J = I
    for d in ti.static(range(len(shape))):
        J[d] = ti.min(ti.max(I[d], 1), shape[d] - 2)
    return J


@ti.kernel
def smear_border(f: ti.template()):  # pyright: ignore
    # Zero gradient (Neumann) condition: copy the innermost layer outwards.
    for I in ti.grouped(f):
        if on_border(I, f.shape):
            f[I] = f[nearest_interior(I, f.shape)]


@ti.kernel
def reflect_border(f: ti.template(), axis: ti.template()):  # pyright: ignore
    # No penetration condition for the velocity component along axis.
    for I in ti.grouped(f):
        if on_border(I, f.shape):
            value = f[nearest_interior(I, f.shape)]
            if I[axis] == 0 or I[axis] == f.shape[axis] - 1:
                value = -value
            f[I] = value


def smear(field) -> None:
    """Applies the zero gradient condition to a ScalarField or every component of a VectorField."""
    for component in getattr(field, "components", [field]):
        smear_border(component.values)


def reflect(velocity) -> None:
    """Negates the normal velocity component on every border of a VectorField."""
    for axis, component in enumerate(velocity.components):
        reflect_border(component.values, axis)
