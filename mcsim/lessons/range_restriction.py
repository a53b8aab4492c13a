"""
Range restriction.

Sampling from a narrowed part of a population shrinks the observed SD. The
raw mean difference survives, but standardized effect sizes (Cohen's d,
Pearson's r) are distorted: d grows and r shrinks.
"""

from typing import Any, Dict, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from ..core import Bias, Mean, Proportion, simulate_once
from ..experiment import Experiment
from ..stats.analysis import analyze_cohens_d, analyze_correlation, correct_range_restriction
from ..stats.data_generation import generate_bivariate_normal, generate_preselected_two_groups, restrict_range

# Trait bounds (in population SD units) used for pre-selection.
SELECTIONS = {
    "none": (None, None),
    "moderate": (-1.0, 1.0),
    "strong": (-0.5, 0.5),
}


def _generate_preselected(n_per_condition, true_difference, selection, rng=None):
    if selection not in SELECTIONS:
        raise ValueError(f"Unknown selection '{selection}'. Use one of: {', '.join(SELECTIONS)}")
    lower, upper = SELECTIONS[selection]
    return generate_preselected_two_groups(n_per_condition, true_difference, lower=lower, upper=upper, rng=rng)


def range_restriction_effect_size(
    n_per_condition: int = 100,
    mean_difference: float = 0.5,
    selections: Sequence[str] = ("none", "moderate", "strong"),
    n_iterations: int = 1000,
    seed: int = 2137,
    print_results: bool = False,
) -> pd.DataFrame:
    """Cohen's d, pooled SD and raw difference under increasing pre-selection."""
    exp = Experiment(
        _generate_preselected,
        analyze_cohens_d,
        {
            "n_per_condition": n_per_condition,
            "true_difference": mean_difference,
            "selection": list(selections),
        },
    )
    exp.set_iterations(n_iterations).set_seed(seed)
    exp.run(print_results=print_results, progress_callback=False)
    return exp.summarize(
        print_results=print_results,
        mean_d=Mean("d"),
        mean_sd_pooled=Mean("sd_pooled"),
        mean_raw_difference=Mean("mean_difference"),
        power=Proportion("p"),
    )


def _restricted_correlation(data: pd.DataFrame, quantile: float) -> Dict[str, float]:
    cutoff = stats.norm.ppf(quantile)
    restricted = restrict_range(data, "x", lower=cutoff)
    u = float(np.std(restricted["x"], ddof=1) / np.std(data["x"], ddof=1))
    r_observed = analyze_correlation(restricted).r
    return {
        "r_unrestricted": analyze_correlation(data).r,
        "r_observed": r_observed,
        "u": u,
        "r_corrected": correct_range_restriction(r_observed, u, method="simple"),
        "r_corrected_thorndike": correct_range_restriction(r_observed, u, method="thorndike"),
        "n_restricted": len(restricted),
    }


def correlation_attenuation(
    n: int = 10000,
    rho: float = 0.6,
    quantile: float = 0.75,
    seed: int = 2137,
) -> Dict[str, Any]:
    """One large sample: keep only ``x > qnorm(quantile)`` and compare the
    observed correlation with its corrected value.

    Returns:
        Dict with ``rho``, ``r_unrestricted``, ``r_observed``, ``u``,
        ``r_corrected``, ``r_corrected_thorndike`` and ``n_restricted``.
    """
    data = simulate_once(generate_bivariate_normal, {"n": n, "rho": rho}, seed=seed)
    out: Dict[str, Any] = {"rho": rho}
    out.update(_restricted_correlation(data, quantile))
    return out


def attenuation_experiment(
    n: int = 1000,
    rhos: Sequence[float] = (0.2, 0.4, 0.6),
    quantile: float = 0.75,
    n_iterations: int = 500,
    seed: int = 2137,
    print_results: bool = False,
) -> pd.DataFrame:
    """Bias of observed and corrected correlations across population values."""
    exp = Experiment(
        generate_bivariate_normal,
        _restricted_correlation,
        {"n": n, "rho": list(rhos), "quantile": quantile},
    )
    exp.set_iterations(n_iterations).set_seed(seed)
    exp.run(print_results=print_results, progress_callback=False)
    return exp.summarize(
        print_results=print_results,
        bias_observed=Bias("r_observed", truth="rho"),
        bias_corrected=Bias("r_corrected", truth="rho"),
        bias_thorndike=Bias("r_corrected_thorndike", truth="rho"),
    )
