"""
Just noise: a negative control.

Both groups come from the same population, so every estimate should centre
on zero and significant results should occur at the nominal rate. The
truth each estimate is compared with is derived from the grid parameters,
not assumed.
"""

from typing import Sequence

import pandas as pd

from ..core import Bias, Mean, Proportion
from ..experiment import Experiment
from ..stats.analysis import analyze_cohens_d
from ..stats.data_generation import generate_two_groups


def _population_d(group: pd.DataFrame) -> pd.Series:
    pooled = ((group["sd_control"] ** 2 + group["sd_intervention"] ** 2) / 2) ** 0.5
    return (group["mean_intervention"] - group["mean_control"]) / pooled


def just_noise(
    sample_sizes: Sequence[int] = (20, 50, 100),
    n_iterations: int = 1000,
    seed: int = 2137,
    print_results: bool = False,
) -> pd.DataFrame:
    """Cohen's d under a true null: signed and absolute bias, and the
    false-positive rate."""
    exp = Experiment(
        generate_two_groups,
        analyze_cohens_d,
        {
            "n_per_condition": list(sample_sizes),
            "mean_control": 0,
            "mean_intervention": 0,
            "sd_control": 1,
            "sd_intervention": 1,
        },
    )
    exp.set_iterations(n_iterations).set_seed(seed)
    exp.run(print_results=print_results, progress_callback=False)
    return exp.summarize(
        print_results=print_results,
        mean_d=Mean("d"),
        bias=Bias("d", truth=_population_d),
        mean_absolute_error=Bias("d", truth=_population_d, absolute=True),
        false_positive_rate=Proportion("p"),
    )
