"""
Pre/post designs.

The same change is easier to detect within people than between groups,
because stable individual differences cancel out of the difference score.
How much easier depends on how consistent the change is across people.
"""

from typing import Sequence

import pandas as pd

from ..core import Mean, Proportion
from ..experiment import Experiment
from ..stats.analysis import analyze_paired_t_test
from ..stats.data_generation import generate_pre_post


def pre_post_power(
    n: int = 30,
    mean_change: float = 0.3,
    sds_change: Sequence[float] = (0.25, 0.5, 1.0),
    n_iterations: int = 1000,
    seed: int = 2137,
    print_results: bool = False,
) -> pd.DataFrame:
    """Power of the paired t-test as the change becomes less consistent."""
    exp = Experiment(
        generate_pre_post,
        analyze_paired_t_test,
        {
            "n": n,
            "mean_pre": 0,
            "sd_pre": 1,
            "mean_change": mean_change,
            "sd_change": list(sds_change),
        },
    )
    exp.set_iterations(n_iterations).set_seed(seed)
    exp.run(print_results=print_results, progress_callback=False)
    return exp.summarize(
        print_results=print_results,
        mean_change_estimate=Mean("estimate"),
        power=Proportion("p"),
    )
