"""
Shared pytest fixtures for MCSim tests.
"""

import contextlib
import io

import matplotlib
import numpy as np
import pandas as pd
import pytest

matplotlib.use("Agg")

from tests.config import SEED  # noqa: E402


@pytest.fixture
def suppress_output():
    """Silence print-based reporting."""
    with contextlib.redirect_stdout(io.StringIO()), contextlib.redirect_stderr(io.StringIO()):
        yield


@pytest.fixture
def rng():
    return np.random.default_rng(SEED)


@pytest.fixture
def two_group_data(rng):
    """Two normal groups of 50, intervention shifted by 0.5."""
    from mcsim.stats import generate_two_groups

    return generate_two_groups(50, 0.0, 0.5, 1.0, 1.0, rng=rng)


@pytest.fixture
def two_group_params():
    """Grid parameters for the two-group generator."""
    return {
        "n_per_condition": 30,
        "mean_control": 0,
        "mean_intervention": 0.5,
        "sd_control": 1,
        "sd_intervention": 1,
    }


@pytest.fixture
def summary_table():
    """Small summary table with two condition columns."""
    return pd.DataFrame(
        {
            "n": [50, 50, 100, 100],
            "effect": ["small", "large", "small", "large"],
            "power": [0.30, 0.90, 0.55, 0.99],
            "lower": [0.25, 0.85, 0.50, 0.97],
            "upper": [0.35, 0.95, 0.60, 1.00],
            "n_iterations": [100, 100, 100, 100],
        }
    )


@pytest.fixture(autouse=True)
def _close_figures():
    yield
    import matplotlib.pyplot as plt

    plt.close("all")
