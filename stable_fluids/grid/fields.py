from typing import Sequence

import taichi as ti
import numpy as np

# Number of ghost cells on each side of every axis.
BORDER = 1


def padded_shape(dimensions: Sequence[int]) -> tuple:
    """Returns the storage shape for a grid with the given interior extents."""
    if len(dimensions) not in (2, 3):
        raise ValueError(f"Only 2D and 3D grids are supported, got {len(dimensions)} dimensions")
    if any(int(d) != d or d < 1 for d in dimensions):
        raise ValueError(f"Grid dimensions must be positive integers, got {tuple(dimensions)}")
    return tuple(int(d) + 2 * BORDER for d in dimensions)


@ti.data_oriented
class ScalarField:
    def __init__(self, dimensions: Sequence[int], name: str = "") -> None:
        """
        A border padded scalar quantity on a regular grid.
        ---
        Parameters:
            dimensions: interior cell counts, (width, height) or (width, height, depth)
            name: used in log messages only
        """
        self.shape = padded_shape(dimensions)
        self.dimensions = tuple(int(d) for d in dimensions)
        self.n_dimensions = len(self.dimensions)
        self.name = name
        self.values = ti.field(dtype=ti.f32, shape=self.shape)

    def contains(self, coord: Sequence[int]) -> bool:
        """Is the interior coordinate inside the grid? Coordinates must be whole cell indices."""
        if any(int(c) != c for c in coord):
            raise ValueError(f"Grid coordinates must be integers, got {tuple(coord)}")
        if len(coord) != self.n_dimensions:
            return False
        return all(0 <= c < d for c, d in zip(coord, self.dimensions))

    def index(self, coord: Sequence[int]) -> tuple:
        """Converts an interior coordinate to an index into the padded storage."""
        if not self.contains(coord):
            raise IndexError(f"{tuple(coord)} lies outside of the interior {self.dimensions}")
        return tuple(int(c) + BORDER for c in coord)

    def load(self, coord: Sequence[int]) -> float:
        return float(self.values[self.index(coord)])

    def write(self, coord: Sequence[int], value: float) -> None:
        self.values[self.index(coord)] = value

    def add(self, coord: Sequence[int], value: float) -> None:
        index = self.index(coord)
        self.values[index] = self.values[index] + value

    def fill(self, value: float) -> None:
        self.values.fill(value)

    def copy_from(self, other: "ScalarField") -> None:
        self.values.copy_from(other.values)

    def to_numpy(self) -> np.ndarray:
        return self.values.to_numpy()

    def interior(self) -> np.ndarray:
        """Copy of the interior cells, without the border."""
        return self.to_numpy()[tuple(slice(BORDER, -BORDER) for _ in self.shape)]

    def from_numpy(self, array: np.ndarray) -> None:
        self.values.from_numpy(np.asarray(array, dtype=np.float32))


@ti.data_oriented
class VectorField:
    def __init__(self, dimensions: Sequence[int], name: str = "") -> None:
        """
        A border padded vector quantity, stored as one ScalarField per component.
        ---
        Parameters:
            dimensions: interior cell counts, (width, height) or (width, height, depth)
            name: used in log messages only
        """
        self.shape = padded_shape(dimensions)
        self.dimensions = tuple(int(d) for d in dimensions)
        self.n_dimensions = len(self.dimensions)
        self.name = name
        self.components = [
            ScalarField(dimensions, name=f"{name}.{axis}") for axis in "uvw"[: self.n_dimensions]
        ]

    def __getitem__(self, axis: int) -> ScalarField:
        return self.components[axis]

    def __iter__(self):
        return iter(self.components)

    def __len__(self) -> int:
        return len(self.components)

    def contains(self, coord: Sequence[int]) -> bool:
        return self.components[0].contains(coord)

    def load(self, coord: Sequence[int]) -> tuple:
        return tuple(c.load(coord) for c in self.components)

    def write(self, coord: Sequence[int], value: Sequence[float]) -> None:
        for component, v in zip(self.components, value, strict=True):
            component.write(coord, v)

    def add(self, coord: Sequence[int], value: Sequence[float]) -> None:
        for component, v in zip(self.components, value, strict=True):
            component.add(coord, v)

    def fill(self, value: float) -> None:
        for component in self.components:
            component.fill(value)

    def copy_from(self, other: "VectorField") -> None:
        for component, source in zip(self.components, other.components, strict=True):
            component.copy_from(source)

    def to_numpy(self) -> list:
        return [c.to_numpy() for c in self.components]
