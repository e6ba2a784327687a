from stable_fluids.renderer.base import BaseRenderer
from stable_fluids.solvers import FluidSolver
from stable_fluids.presets import Preset

import numpy as np
import logging

logger = logging.getLogger(__name__)


class HeadlessRenderer(BaseRenderer):
    def __init__(
        self,
        solver: FluidSolver,
        presets: list[Preset],
        initial_preset: int = 0,
        max_frames: int = 300,
    ) -> None:
        """
        Runs a fixed number of frames without a window and records statistics.
        ---
        Parameters:
            solver: FluidSolver2D or FluidSolver3D
            presets: list of presets to choose from
            initial_preset: index of the preset to run
            max_frames: number of frames run() advances
        """
        self.max_frames = max_frames
        self.statistics = []
        super().__init__(solver=solver, presets=presets, initial_preset=initial_preset)

    def render(self) -> None:
        """Records the statistics of the current frame."""
        buffers = self.solver.export_buffers()
        speed = np.sqrt(sum(component**2 for component in buffers["velocity"]))
        projection = self.solver.last_tick["projection"][0]
        frame_statistics = {
            "frame": self.current_frame,
            "total_density": float(buffers["density"][(slice(1, -1),) * speed.ndim].sum()),
            "max_speed": float(speed.max()),
            "projection_iterations": projection.iterations,
            "projection_converged": projection.converged,
        }
        self.statistics.append(frame_statistics)
        logger.info(
            "Frame %d: total density %.4f, max speed %.4f, projection took %d iterations",
            self.current_frame,
            frame_statistics["total_density"],
            frame_statistics["max_speed"],
            frame_statistics["projection_iterations"],
        )

    def run(self) -> list:
        """Runs this simulation, returns the statistics of every frame."""
        while self.current_frame < self.max_frames:
            self.substep()
            self.render()

        unconverged = self.solver.poisson_solver.unconverged_solves
        if unconverged > 0:
            logger.warning("%d linear solves did not converge", unconverged)
        return self.statistics
