from stable_fluids.configurations import Settings

from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np


class Emitter(ABC):
    def __init__(
        self,
        velocity: Sequence[float],
        density: float,
        temperature: float,
        frame_threshold: int,
        last_frame: int | None,
    ) -> None:
        self.velocity = tuple(velocity)
        self.density = density  # multiplier of Settings.add_density
        self.temperature = temperature  # multiplier of Settings.add_temperature
        self.frame_threshold = frame_threshold
        self.last_frame = last_frame

        # Covered interior cells, per grid extent.
        self.cells = {}

    @abstractmethod
    def in_bounds(self, positions: np.ndarray) -> np.ndarray:
        """Mask of the cell centers (normalized to [0, 1], one row per axis) inside this shape."""
        pass

    def is_active(self, frame: int) -> bool:
        if frame < self.frame_threshold:
            return False
        return self.last_frame is None or frame <= self.last_frame

    def covered_cells(self, dimensions: Sequence[int]) -> np.ndarray:
        dimensions = tuple(dimensions)
        if dimensions not in self.cells:
            axes = [(np.arange(n) + 0.5) / n for n in dimensions]
            positions = np.stack(np.meshgrid(*axes, indexing="ij"))
            self.cells[dimensions] = np.argwhere(self.in_bounds(positions))
        return self.cells[dimensions]

    def emit(self, solver, settings: Settings) -> None:
        """Adds density, temperature and velocity to every covered cell of the solver."""
        n_dimensions = len(solver.get_dimensions())
        velocity = (tuple(self.velocity) + (0.0, 0.0, 0.0))[:n_dimensions]
        density = self.density * settings.add_density
        temperature = self.temperature * settings.add_temperature
        for coord in self.covered_cells(solver.get_dimensions()):
            coord = tuple(int(c) for c in coord)
            if density != 0.0:
                solver.add_density(coord, density)
            if any(v != 0.0 for v in velocity):
                solver.add_velocity(coord, velocity)
            if temperature != 0.0 and hasattr(solver, "add_temperature"):
                solver.add_temperature(coord, temperature)


class Circle(Emitter):
    def __init__(
        self,
        center: Sequence[float],
        radius: float,
        velocity: Sequence[float] = (0.0, 0.0),
        density: float = 1.0,
        temperature: float = 0.0,
        frame_threshold: int = 0,
        last_frame: int | None = None,
    ) -> None:
        super().__init__(velocity, density, temperature, frame_threshold, last_frame)
        self.center = tuple(center)
        self.radius = radius
        self.squared_radius = radius * radius

    def in_bounds(self, positions: np.ndarray) -> np.ndarray:
        # A sphere in 3D, missing center coordinates default to the middle of the domain.
        center = (self.center + (0.5, 0.5, 0.5))[: positions.shape[0]]
        squared_distance = sum((positions[d] - c) ** 2 for d, c in enumerate(center))
        return squared_distance <= self.squared_radius


class Rectangle(Emitter):
    def __init__(
        self,
        lower_left: Sequence[float],
        size: Sequence[float],
        velocity: Sequence[float] = (0.0, 0.0),
        density: float = 1.0,
        temperature: float = 0.0,
        frame_threshold: int = 0,
        last_frame: int | None = None,
    ) -> None:
        super().__init__(velocity, density, temperature, frame_threshold, last_frame)
        self.lower_left = tuple(lower_left)
        self.size = tuple(size)

        # The bounding box, a full depth box in 3D unless given.
        self.lower = self.lower_left + (0.0,)
        self.upper = tuple(x + s for x, s in zip(self.lower_left, self.size)) + (1.0,)

    def in_bounds(self, positions: np.ndarray) -> np.ndarray:
        mask = np.ones(positions.shape[1:], dtype=bool)
        for d in range(positions.shape[0]):
            mask &= (self.lower[d] <= positions[d]) & (positions[d] <= self.upper[d])
        return mask
