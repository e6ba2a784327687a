from stable_fluids.configurations import ReferenceSettings, Settings
from stable_fluids.exceptions import SettingsError, SimulationDivergedError, SolverStateError
from stable_fluids.solvers import FluidSolver2D, FluidSolver3D, ReferenceFluidSolver2D
