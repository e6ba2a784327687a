from stable_fluids.constants import (
    ADVECTION_METHODS,
    INTERPOLATION_METHODS,
    SOLVER_METHODS,
    AdvectionMethod,
    InterpolationMethod,
    SolverMethod,
)
from stable_fluids.exceptions import SettingsError

import math


class Settings:
    """This class holds the configuration for one tick of the fluid solvers."""

    def __init__(
        self,
        name: str = "Default",
        delta_time=1.0 / 60.0,  # Step size
        viscosity=0.05,  # Velocity diffusion rate
        diffusion_rate=0.05,  # Density diffusion rate
        temp_diffusion_rate=2.0,  # Temperature diffusion rate (2D only)
        diffusion_method=SolverMethod.PreconCG,
        advection_method=AdvectionMethod.MacCormackRK4,
        interpolation_method=InterpolationMethod.Bilinear,
        enforce_incompressibility_method=SolverMethod.PreconCG,
        advection_steps=4,  # Sub-steps per advection
        buoyancy_alpha=2.0,  # Weight of density pulling smoke down (2D only)
        buoyancy_beta=2.2,  # Weight of temperature pushing smoke up (2D only)
        vorticity_confinement=0.75,  # Strength of the restoring force
        add_density=1.0,  # Default amount injected by emitters
        add_temperature=0.25,  # Default temperature injected by emitters
        check_finite=True,  # Raise if a tick produced NaN or Inf
    ):
        self.name = name
        self.delta_time = delta_time
        self.viscosity = viscosity
        self.diffusion_rate = diffusion_rate
        self.temp_diffusion_rate = temp_diffusion_rate
        self.diffusion_method = diffusion_method
        self.advection_method = advection_method
        self.interpolation_method = interpolation_method
        self.enforce_incompressibility_method = enforce_incompressibility_method
        self.advection_steps = advection_steps
        self.buoyancy_alpha = buoyancy_alpha
        self.buoyancy_beta = buoyancy_beta
        self.vorticity_confinement = vorticity_confinement
        self.add_density = add_density
        self.add_temperature = add_temperature
        self.check_finite = check_finite

    def copy(self, **overrides) -> "Settings":
        """Returns a copy of these settings, with the given attributes replaced."""
        values = dict(vars(self))
        for key in overrides:
            if key not in values:
                raise SettingsError(f"Unknown setting '{key}'")
        values.update(overrides)
        return Settings(**values)

    def validate(self, delta_time: float | None = None) -> None:
        """
        Checks that a tick can be run with these settings.
        ---
        Parameters:
            delta_time: the step size that will actually be used, defaults to self.delta_time
        """
        delta_time = self.delta_time if delta_time is None else delta_time
        if not math.isfinite(delta_time) or delta_time < 0:
            raise SettingsError(f"delta_time must be finite and non-negative, got {delta_time}")

        rates = {
            "viscosity": self.viscosity,
            "diffusion_rate": self.diffusion_rate,
            "temp_diffusion_rate": self.temp_diffusion_rate,
            "vorticity_confinement": self.vorticity_confinement,
        }
        for name, rate in rates.items():
            if not math.isfinite(rate) or rate < 0:
                raise SettingsError(f"{name} must be finite and non-negative, got {rate}")

        for name in ("buoyancy_alpha", "buoyancy_beta"):
            if not math.isfinite(getattr(self, name)):
                raise SettingsError(f"{name} must be finite, got {getattr(self, name)}")

        if int(self.advection_steps) != self.advection_steps or self.advection_steps < 1:
            raise SettingsError(f"advection_steps must be a positive integer, got {self.advection_steps}")

        if self.diffusion_method not in SOLVER_METHODS:
            raise SettingsError(f"Unknown diffusion_method {self.diffusion_method}")
        if self.enforce_incompressibility_method not in SOLVER_METHODS:
            raise SettingsError(f"Unknown enforce_incompressibility_method {self.enforce_incompressibility_method}")
        if self.advection_method not in ADVECTION_METHODS:
            raise SettingsError(f"Unknown advection_method {self.advection_method}")
        if self.interpolation_method not in INTERPOLATION_METHODS:
            raise SettingsError(f"Unknown interpolation_method {self.interpolation_method}")


class ReferenceSettings:
    """This class holds the configuration for one tick of the reference solver."""

    def __init__(
        self,
        name: str = "Reference",
        delta_time=1.0 / 60.0,  # Step size
        viscosity=0.0,  # Velocity diffusion rate
        diffusion_rate=0.0,  # Density diffusion rate
    ):
        self.name = name
        self.delta_time = delta_time
        self.viscosity = viscosity
        self.diffusion_rate = diffusion_rate

    def validate(self) -> None:
        if not math.isfinite(self.delta_time) or self.delta_time < 0:
            raise SettingsError(f"delta_time must be finite and non-negative, got {self.delta_time}")
        for name in ("viscosity", "diffusion_rate"):
            rate = getattr(self, name)
            if not math.isfinite(rate) or rate < 0:
                raise SettingsError(f"{name} must be finite and non-negative, got {rate}")
