from stable_fluids.constants import AdvectionMethod, InterpolationMethod, SolverMethod
from stable_fluids.configurations import ReferenceSettings, Settings
from stable_fluids.exceptions import SettingsError
from stable_fluids.presets import preset_list

import pytest


def test_defaults_are_valid():
    settings = Settings()
    settings.validate()
    assert settings.delta_time == pytest.approx(1.0 / 60.0)
    assert settings.diffusion_method == SolverMethod.PreconCG
    assert settings.advection_method == AdvectionMethod.MacCormackRK4
    assert settings.interpolation_method == InterpolationMethod.Bilinear
    assert settings.advection_steps == 4


def test_zero_delta_time_is_valid():
    Settings(delta_time=0.0).validate()
    Settings().validate(delta_time=0.0)


@pytest.mark.parametrize(
    "overrides",
    [
        {"delta_time": -0.1},
        {"delta_time": float("inf")},
        {"viscosity": -1.0},
        {"diffusion_rate": float("nan")},
        {"temp_diffusion_rate": -0.5},
        {"vorticity_confinement": -1.0},
        {"buoyancy_alpha": float("inf")},
        {"buoyancy_beta": float("nan")},
        {"advection_steps": 0},
        {"advection_steps": 1.5},
        {"diffusion_method": 7},
        {"enforce_incompressibility_method": -1},
        {"advection_method": 3},
        {"interpolation_method": 2},
    ],
)
def test_invalid_settings_are_rejected(overrides):
    with pytest.raises(SettingsError):
        Settings(**overrides).validate()


def test_explicit_delta_time_is_validated():
    with pytest.raises(SettingsError):
        Settings().validate(delta_time=float("nan"))


def test_copy_replaces_only_the_given_values():
    settings = Settings(name="Original", viscosity=0.2)
    copy = settings.copy(viscosity=0.0)

    assert copy is not settings
    assert copy.viscosity == 0.0
    assert copy.name == "Original"
    assert settings.viscosity == 0.2

    with pytest.raises(SettingsError):
        settings.copy(unknown_setting=1.0)


def test_reference_settings():
    ReferenceSettings().validate()
    with pytest.raises(SettingsError):
        ReferenceSettings(delta_time=-1.0).validate()
    with pytest.raises(SettingsError):
        ReferenceSettings(diffusion_rate=float("inf")).validate()


@pytest.mark.parametrize("preset", preset_list, ids=lambda preset: preset.name)
def test_presets_are_valid(preset):
    preset.settings.validate()
    assert preset.settings.name == preset.name
    assert len(preset.emitters) > 0
