from stable_fluids.constants import AdvectionMethod, InterpolationMethod
from stable_fluids.geometries import Circle, Emitter, Rectangle
from stable_fluids.configurations import Settings


class Preset:
    def __init__(self, name: str, settings: Settings, emitters: list[Emitter]) -> None:
        self.name = name
        self.settings = settings
        self.emitters = emitters


preset_list = [
    Preset(
        name="Rising Smoke",
        settings=Settings(name="Rising Smoke"),
        emitters=[
            Circle(center=(0.5, 0.1), radius=0.04, velocity=(0.0, 0.5), density=60.0, temperature=60.0),
        ],
    ),
    Preset(
        name="Campfire",
        settings=Settings(
            name="Campfire",
            interpolation_method=InterpolationMethod.MonotonicCubic,
            vorticity_confinement=1.5,  # More swirls (0.75)
            temp_diffusion_rate=0.5,  # Keeps the flame tight (2.0)
            buoyancy_alpha=0.5,  # Light smoke (2.0)
            buoyancy_beta=4.0,  # Hot air rises fast (2.2)
        ),
        emitters=[
            Rectangle(lower_left=(0.4, 0.04), size=(0.2, 0.03), density=40.0, temperature=200.0),
            Circle(center=(0.5, 0.08), radius=0.03, velocity=(0.0, 1.0), density=0.0, temperature=100.0),
        ],
    ),
    Preset(
        name="Colliding Jets",
        settings=Settings(
            name="Colliding Jets",
            buoyancy_alpha=0.0,
            buoyancy_beta=0.0,
            viscosity=0.0,  # Inviscid (0.05)
        ),
        emitters=[
            Circle(center=(0.15, 0.5), radius=0.04, velocity=(2.0, 0.1), density=60.0),
            Circle(center=(0.85, 0.5), radius=0.04, velocity=(-2.0, -0.1), density=60.0),
        ],
    ),
    Preset(
        name="Single Puff",
        settings=Settings(
            name="Single Puff",
            advection_method=AdvectionMethod.ForwardEuler,
            vorticity_confinement=0.0,
            advection_steps=1,
        ),
        emitters=[
            Circle(center=(0.5, 0.3), radius=0.08, velocity=(0.0, 1.0), density=100.0, last_frame=10),
        ],
    ),
]
