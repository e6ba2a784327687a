from stable_fluids.constants import ColorHEX, ColorRGB, DebuggingMode
from stable_fluids.renderer.base import BaseRenderer
from stable_fluids.solvers import FluidSolver
from stable_fluids.presets import Preset

import taichi as ti
import numpy as np


def middle_slice(array: np.ndarray) -> np.ndarray:
    """The interior of a padded buffer, the middle depth slice for 3D buffers."""
    interior = array[(slice(1, -1),) * array.ndim]
    if interior.ndim == 3:
        interior = interior[:, :, interior.shape[2] // 2]
    return interior


def compose_image(buffers: dict, debugging_mode: int, scale: int = 1) -> np.ndarray:
    """
    Turns exported solver buffers into an RGB image, one block of scale x scale pixels per cell.
    ---
    Parameters:
        buffers: the result of export_buffers()
        debugging_mode: the quantity to show, one of DebuggingMode
        scale: pixels per cell along each axis
    """
    background = np.array(ColorRGB.Background, dtype=np.float32)

    if debugging_mode == DebuggingMode.Velocity:
        u, v = (middle_slice(component) for component in buffers["velocity"][:2])
        magnitude = np.sqrt(u**2 + v**2)
        normalization = max(float(magnitude.max()), 1e-6)
        image = np.stack([0.5 + 0.5 * u / normalization, 0.5 + 0.5 * v / normalization, magnitude / normalization])
        image = np.moveaxis(image, 0, -1)
    else:
        # 3D solvers have no temperature, they fall back to density.
        if debugging_mode == DebuggingMode.Temperature and "temperature" in buffers:
            values, color = middle_slice(buffers["temperature"]), ColorRGB.Fire
        else:
            values, color = middle_slice(buffers["density"]), ColorRGB.Smoke
        alpha = np.clip(values, 0.0, 1.0)[..., None]
        image = (1.0 - alpha) * background + alpha * np.array(color, dtype=np.float32)

    image = np.repeat(np.repeat(image, scale, axis=0), scale, axis=1)
    return np.clip(image, 0.0, 1.0).astype(np.float32)


class GUI(BaseRenderer):
    def __init__(
        self,
        name: str,
        solver: FluidSolver,
        presets: list[Preset],
        initial_preset: int = 0,
        debugging_mode: int = DebuggingMode.Density,
        max_resolution: int = 720,
    ) -> None:
        """
        Shows one quantity of the fluid solver in a ti.GUI window.
        ---
        Parameters:
            name: string displayed at the top of the window
            solver: FluidSolver2D or FluidSolver3D, 3D solvers show their middle slice
            presets: list of presets to choose from
            initial_preset: index of the first preset
            debugging_mode: the quantity to show, one of DebuggingMode
            max_resolution: the longer side of the window
        """
        super().__init__(solver=solver, presets=presets, initial_preset=initial_preset)
        self.debugging_mode = debugging_mode

        # Every cell is drawn as a square block of pixels.
        width, height = solver.get_dimensions()[:2]
        self.scale = max(1, max_resolution // max(width, height))
        self.res = (width * self.scale, height * self.scale)
        self.name = name

        # GUI.
        self.gui = ti.GUI(name, res=self.res, background_color=ColorHEX.Background)

    def image(self) -> np.ndarray:
        return compose_image(self.solver.export_buffers(), self.debugging_mode, self.scale)

    def render(self) -> None:
        """Renders the current state of the fluid solver."""
        self.gui.set_image(self.image())
        self.gui.text(f"{self.preset.name} [{self.current_frame}]", pos=(0.01, 0.99), color=0xFFFFFF)
        self.gui.show()

    def handle_mouse(self) -> None:
        # Inject at the cursor, into the middle slice of 3D grids.
        dimensions = self.solver.get_dimensions()
        x, y = self.gui.get_cursor_pos()
        coord = [int(x * dimensions[0]), int(y * dimensions[1])] + [d // 2 for d in dimensions[2:]]
        if self.gui.is_pressed(ti.GUI.LMB):
            self.solver.add_density(coord, 50.0 * self.settings.add_density)
            if hasattr(self.solver, "add_temperature"):
                self.solver.add_temperature(coord, 50.0 * self.settings.add_temperature)
        elif self.gui.is_pressed(ti.GUI.RMB):
            velocity = [0.0] * len(dimensions)
            velocity[1] = 2.0
            self.solver.add_velocity(coord, velocity)

    def run(self) -> None:
        """Runs this simulation."""
        while self.gui.running:
            if self.gui.get_event(ti.GUI.PRESS):
                if self.gui.event.key == "r":  # pyright: ignore
                    self.reset()
                elif self.gui.event.key == "n":  # pyright: ignore
                    self.next_preset()
                elif self.gui.event.key == "d":  # pyright: ignore
                    self.debugging_mode = DebuggingMode.Density
                elif self.gui.event.key == "v":  # pyright: ignore
                    self.debugging_mode = DebuggingMode.Velocity
                elif self.gui.event.key == "t":  # pyright: ignore
                    self.debugging_mode = DebuggingMode.Temperature
                elif self.gui.event.key in [ti.GUI.SPACE, "p"]:  # pyright: ignore
                    self.is_paused = not self.is_paused
                elif self.gui.event.key in [ti.GUI.ESCAPE, ti.GUI.EXIT]:  # pyright: ignore
                    break
            if not self.is_paused:
                self.handle_mouse()
                self.substep()
            self.render()
