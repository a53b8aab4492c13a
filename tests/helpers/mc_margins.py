"""
Monte Carlo margin-of-error calculations.

Single source of truth for all MC tolerance computations.
"""

import numpy as np

from tests.config import ALLOWED_BIAS, MC_Z


def mc_margin(p, n_iterations, z=MC_Z):
    """
    MC margin of error for a proportion (0-1 scale).

    Returns half-width of an approximate (1 - 2*Phi(-z)) CI for a binomial
    proportion, widened by ``ALLOWED_BIAS`` percentage points.
    """
    return z * np.sqrt(p * (1 - p) / n_iterations) + ALLOWED_BIAS / 100


def mc_mean_margin(sd, n_iterations, z=MC_Z):
    """MC margin of error for a mean of *n_iterations* draws with SD *sd*."""
    return z * sd / np.sqrt(n_iterations)
