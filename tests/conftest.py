import numpy as np
import pytest

from truncated_gompertz.data.loader import load_observations
from truncated_gompertz.data.simulation import simulate_cohorts

TRUE_MODE = 85.0
TRUE_BETA = 1 / 12
LOWER = 65.0
UPPER = 100.0


@pytest.fixture
def rng():
    return np.random.default_rng(20240728)


@pytest.fixture
def cohort_frame(rng):
    return simulate_cohorts([80.0, 86.0, 84.0], TRUE_BETA, [400, 150, 50], LOWER, UPPER, rng)


@pytest.fixture
def cohort_data(cohort_frame):
    return load_observations(cohort_frame)
