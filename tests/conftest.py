import numpy as np
import pytest

from luminet.blackhole import BlackHole
from luminet.sampling import SamplingSettings
from luminet.solvers import SolverSettings


@pytest.fixture
def blackhole():
    return BlackHole(mass=1.0, accretion_rate=1e-7, disk_outer_edge=50.0)


@pytest.fixture
def fast_settings():
    """Small, single-process settings so renders finish in seconds."""
    return SamplingSettings(samples=6000, workers=1, progress=False, seed=0,
                            solver=SolverSettings(max_order=1))


@pytest.fixture
def incl80():
    return np.deg2rad(80.0)
