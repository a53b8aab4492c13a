"""
Binomial likelihoods for sets of studies with mixed results.

Given how many of a set of studies were significant, compares how likely
that count is when every study tests a true null (success probability =
alpha) versus a true effect (success probability = power).
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy import stats

from .analysis import _Record


@dataclass(frozen=True)
class LikelihoodRatioResult(_Record):
    """Likelihood ratio for a count of significant studies.

    Attributes:
        likelihood_ratio: The larger of ``L(H1)/L(H0)`` and ``L(H0)/L(H1)``,
            rounded to two decimals.
        favours: ``"H1"`` or ``"H0"``, whichever has the larger likelihood.
        likelihood_h0: Binomial likelihood at ``p_h0``.
        likelihood_h1: Binomial likelihood at ``p_h1``.
        observed_proportion: ``n_significant / n_studies``.
    """

    likelihood_ratio: float
    favours: str
    likelihood_h0: float
    likelihood_h1: float
    observed_proportion: float


def _check_counts(n_studies: int, n_significant: int):
    if n_studies < 1:
        raise ValueError(f"n_studies must be at least 1, got {n_studies}")
    if not 0 <= n_significant <= n_studies:
        raise ValueError(f"n_significant must be between 0 and n_studies ({n_studies}), got {n_significant}")


def mixed_results_likelihood(
    n_studies: int,
    n_significant: int,
    p_h0: float = 0.05,
    p_h1: float = 0.80,
) -> LikelihoodRatioResult:
    """Likelihood ratio of observing *n_significant* out of *n_studies*.

    Args:
        n_studies: Number of studies.
        n_significant: How many were significant.
        p_h0: Probability of a significant result under H0 (alpha).
        p_h1: Probability under H1 (power, assumed equal across studies).
    """
    _check_counts(n_studies, n_significant)
    for name, value in (("p_h0", p_h0), ("p_h1", p_h1)):
        if not 0 < value < 1:
            raise ValueError(f"{name} must be strictly between 0 and 1, got {value}")

    log_h0 = float(stats.binom.logpmf(n_significant, n_studies, p_h0))
    log_h1 = float(stats.binom.logpmf(n_significant, n_studies, p_h1))
    # likelihoods can underflow to 0 for many studies; the ratio is inf then
    with np.errstate(over="ignore"):
        ratio = float(np.exp(abs(log_h1 - log_h0)))
    like_h0, like_h1 = float(np.exp(log_h0)), float(np.exp(log_h1))

    return LikelihoodRatioResult(
        likelihood_ratio=round(ratio, 2),
        favours="H1" if log_h1 >= log_h0 else "H0",
        likelihood_h0=like_h0,
        likelihood_h1=like_h1,
        observed_proportion=n_significant / n_studies,
    )


def likelihood_curve(n_studies: int, n_significant: int, n_points: int = 1000) -> pd.DataFrame:
    """Binomial likelihood of the observed count over ``theta`` in [0, 1]."""
    _check_counts(n_studies, n_significant)
    theta = np.linspace(0, 1, n_points)
    return pd.DataFrame({"theta": theta, "likelihood": stats.binom.pmf(n_significant, n_studies, theta)})
