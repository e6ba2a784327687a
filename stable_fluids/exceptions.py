class SettingsError(ValueError):
    """Raised when a Settings object holds values the solver cannot step with."""


class SolverStateError(RuntimeError):
    """Raised when a solver is mutated or ticked while a tick is in progress."""


class SimulationDivergedError(FloatingPointError):
    """Raised when a field holds NaN or Inf values after a tick."""
