from stable_fluids.solvers.poisson_solver import PoissonSolver, PreparedMatrix, SolveResult
from stable_fluids.solvers.diffusion import DiffusionStage
from stable_fluids.solvers.advection import Advection
from stable_fluids.solvers.projection import Projection
from stable_fluids.solvers.vorticity import VorticityConfinement
from stable_fluids.solvers.fluid_solver import FluidSolver, FluidSolver2D, FluidSolver3D
from stable_fluids.solvers.reference_solver import ReferenceFluidSolver2D
