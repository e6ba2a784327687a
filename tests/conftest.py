import taichi as ti
import numpy as np
import pytest


@pytest.fixture(scope="session", autouse=True)
def taichi_runtime():
    # Fields can only be allocated after Taichi was initialized.
    ti.init(arch=ti.cpu, default_fp=ti.f32, random_seed=0)
    yield


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
