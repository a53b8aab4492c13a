"""
Checking assumptions before choosing a test.

Testing normality first and switching to a rank test when it fails is a
common recipe. Normality tests have low power in small samples and
excessive power in large ones, so the path taken depends on sample size as
much as on the data.
"""

from typing import Sequence

import pandas as pd

from ..core import Mean, Proportion
from ..experiment import Experiment
from ..stats.analysis import NONPARAMETRIC, analyze_with_assumption_check
from ..stats.data_generation import generate_two_groups


def _generate_same_shape(n_per_condition, mean_difference, skew, rng=None):
    # both groups share one skew-normal shape; only the location differs
    return generate_two_groups(
        n_per_condition=n_per_condition,
        mean_control=0.0,
        mean_intervention=mean_difference,
        sd_control=1.0,
        sd_intervention=1.0,
        skew_control=skew,
        skew_intervention=skew,
        rng=rng,
    )


def _is_nonparametric(path: pd.Series) -> pd.Series:
    return path == NONPARAMETRIC


def assumption_check_dispatch(
    sample_sizes: Sequence[int] = (20, 50, 200),
    skews: Sequence[float] = (0.0, 4.0),
    mean_difference: float = 0.0,
    n_iterations: int = 1000,
    seed: int = 2137,
    print_results: bool = False,
) -> pd.DataFrame:
    """How often each path is taken, and the resulting rejection rates.

    With *mean_difference* 0 the rejection rates are false-positive rates.
    """
    exp = Experiment(
        _generate_same_shape,
        analyze_with_assumption_check,
        {
            "n_per_condition": list(sample_sizes),
            "mean_difference": mean_difference,
            "skew": list(skews),
        },
    )
    exp.set_iterations(n_iterations).set_seed(seed)
    exp.run(print_results=print_results, progress_callback=False)
    return exp.summarize(
        print_results=print_results,
        proportion_nonparametric=Proportion("path", where=_is_nonparametric),
        rejection_rate_dispatched=Proportion("p"),
        rejection_rate_t_test=Proportion("p_parametric"),
        rejection_rate_rank_test=Proportion("p_nonparametric"),
        mean_p_normality=Mean("p_normality_control"),
    )
