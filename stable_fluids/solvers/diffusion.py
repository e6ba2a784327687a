from stable_fluids.solvers.poisson_solver import PoissonSolver, PreparedMatrix, SolveResult
from stable_fluids.constants import SolverMethod

import logging

logger = logging.getLogger(__name__)


class DiffusionStage:
    def __init__(self, poisson_solver: PoissonSolver, name: str) -> None:
        """
        Implicit diffusion of one transported quantity, caching the matrix for the last coefficient.
        ---
        Parameters:
            poisson_solver: the solver owned by the fluid simulation
            name: quantity name, used for logging
        """
        self.poisson_solver = poisson_solver
        self.name = name

        self.prepared_coefficient = 0.0
        self.matrix: PreparedMatrix | None = None

        # Instrumentation, how often the matrix was built and solved against.
        self.build_count = 0
        self.solve_count = 0

    def build_matrix(self, coefficient: float) -> PreparedMatrix:
        n_dimensions = self.poisson_solver.n_dimensions
        a0 = 1.0 + 2.0 * n_dimensions * coefficient
        a1 = coefficient
        return self.poisson_solver.prepare_diffusion_matrix(a0, a1, SolverMethod.PreconCG)

    def prepare(self, delta_time: float, rate: float) -> PreparedMatrix:
        coefficient = delta_time * rate
        if self.matrix is None or self.prepared_coefficient != coefficient:
            self.prepared_coefficient = coefficient
            self.matrix = self.build_matrix(coefficient)
            self.build_count += 1
            logger.debug("Rebuilt %s diffusion matrix for coefficient %g", self.name, coefficient)
        return self.matrix

    def diffuse(self, field, delta_time: float, rate: float, method: int) -> list[SolveResult]:
        """
        Diffuses a ScalarField or every component of a VectorField in place.
        ---
        Parameters:
            field: the quantity, also used as the right-hand side
            delta_time: the step size
            rate: diffusion rate of this quantity
            method: one of SolverMethod
        """
        matrix = self.prepare(delta_time, rate)
        results = []
        for component in getattr(field, "components", [field]):
            results.append(self.poisson_solver.solve(component, matrix, component, method))
            self.solve_count += 1

        iterations = ", ".join(str(result.iterations) for result in results)
        logger.info("%s diffusion took: (%s) iterations.", self.name.capitalize(), iterations)
        return results
