"""
False positives and power of the independent-samples t-test.

Under a true null the proportion of significant results converges to alpha;
under a true effect it grows with sample size.
"""

from typing import Sequence

import pandas as pd

from ..core import Mean, Proportion
from ..experiment import Experiment
from ..stats.analysis import analyze_independent_t_test
from ..stats.data_generation import generate_two_groups


def false_positive_rate(
    n_per_condition: int = 100,
    n_iterations: int = 1000,
    seed: int = 42,
    alpha: float = 0.05,
    print_results: bool = False,
) -> pd.DataFrame:
    """Proportion of significant Welch t-tests when both groups are N(0, 1)."""
    exp = Experiment(generate_two_groups, analyze_independent_t_test)
    exp.set_parameters(
        {
            "n_per_condition": n_per_condition,
            "mean_control": 0,
            "mean_intervention": 0,
            "sd_control": 1,
            "sd_intervention": 1,
        }
    )
    exp.set_iterations(n_iterations).set_seed(seed).set_alpha(alpha)
    exp.run(print_results=print_results, progress_callback=False)
    return exp.summarize(
        print_results=print_results,
        false_positive_rate=Proportion("p", below=alpha),
        mean_estimate=Mean("estimate"),
    )


def power_by_sample_size(
    sample_sizes: Sequence[int] = (25, 50, 100, 200),
    effect_sizes: Sequence[float] = (0.2, 0.5, 0.8),
    n_iterations: int = 1000,
    seed: int = 2137,
    alpha: float = 0.05,
    print_results: bool = False,
) -> pd.DataFrame:
    """Power of the t-test across sample sizes and true mean differences
    (SD 1 in both groups, so the mean difference is Cohen's d)."""
    exp = Experiment(generate_two_groups, analyze_independent_t_test)
    exp.set_parameters(
        {
            "n_per_condition": list(sample_sizes),
            "mean_control": 0,
            "mean_intervention": list(effect_sizes),
            "sd_control": 1,
            "sd_intervention": 1,
        }
    )
    exp.set_iterations(n_iterations).set_seed(seed).set_alpha(alpha)
    exp.run(print_results=print_results, progress_callback=False)
    return exp.summarize(print_results=print_results, power=Proportion("p", below=alpha))
