class SolverMethod:
    PlainCG = 0
    PreconCG = 1
    GaussSeidel = 2


class AdvectionMethod:
    ForwardEuler = 0
    RungeKutta = 1
    MacCormackRK4 = 2


class InterpolationMethod:
    Bilinear = 0
    MonotonicCubic = 1


class SolverState:
    Idle = 0
    Ticking = 1


class DebuggingMode:
    Density = 0
    Velocity = 1
    Temperature = 2


class ColorHEX:
    Background = 0x171414
    Smoke = 0xEDF5FF
    Fire = 0xFF832B  # orange 40


class ColorRGB:
    Background = (0.09, 0.07, 0.07)
    Smoke = (0.93, 0.96, 1.0)
    Fire = (1.0, 0.51, 0.17)


# Selector values accepted by Settings.validate().
SOLVER_METHODS = (SolverMethod.PlainCG, SolverMethod.PreconCG, SolverMethod.GaussSeidel)
ADVECTION_METHODS = (AdvectionMethod.ForwardEuler, AdvectionMethod.RungeKutta, AdvectionMethod.MacCormackRK4)
INTERPOLATION_METHODS = (InterpolationMethod.Bilinear, InterpolationMethod.MonotonicCubic)
