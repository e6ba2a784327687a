from stable_fluids.solvers import FluidSolver
from stable_fluids.presets import Preset

from abc import abstractmethod

import logging

logger = logging.getLogger(__name__)


class BaseRenderer:
    def __init__(self, solver: FluidSolver, presets: list[Preset], initial_preset: int = 0) -> None:
        """
        Advances the fluid solver and feeds it from the emitters of the current preset.
        ---
        Parameters:
            solver: FluidSolver2D or FluidSolver3D
            presets: list of presets to choose from
            initial_preset: index of the first preset
        """
        # State.
        self.is_paused = False
        self.current_frame = 0

        self.solver = solver

        # Load the initial preset and reset the solver.
        self.presets = presets
        self.preset_id = initial_preset
        self.load_preset(presets[self.preset_id])

    @abstractmethod
    def render(self) -> None:
        pass

    @abstractmethod
    def run(self) -> None:
        pass

    def substep(self) -> dict:
        self.current_frame += 1

        # Emit from every emitter that is active in this frame:
        for emitter in self.preset.emitters:
            if emitter.is_active(self.current_frame):
                emitter.emit(self.solver, self.settings)

        return self.solver.tick(settings=self.settings)

    def load_preset(self, preset: Preset) -> None:
        """
        Loads the chosen preset and resets the solver.
        ---
        Parameters:
            preset: Preset
        """
        logger.info("Loading preset '%s'", preset.name)
        self.preset = preset
        self.settings = preset.settings
        self.reset()

    def next_preset(self) -> None:
        self.preset_id = (self.preset_id + 1) % len(self.presets)
        self.load_preset(self.presets[self.preset_id])

    def reset(self) -> None:
        """Reset the simulation."""
        self.solver.reset()
        self.current_frame = 0
