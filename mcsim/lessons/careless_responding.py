"""
Careless responding.

Respondents who answer at random add uncorrelated noise to a correlational
study. The more of them, the further the observed correlation is pulled
towards zero.
"""

from typing import Sequence

import pandas as pd

from ..core import Bias, Mean, Proportion
from ..experiment import Experiment
from ..stats.analysis import analyze_correlation
from ..stats.data_generation import generate_careless_mixture


def careless_responding(
    n: int = 200,
    rho: float = 0.3,
    proportions_careless: Sequence[float] = (0.0, 0.1, 0.2, 0.3),
    n_iterations: int = 1000,
    seed: int = 2137,
    print_results: bool = False,
) -> pd.DataFrame:
    """Observed correlation, its bias and power as careless responding grows."""
    exp = Experiment(
        generate_careless_mixture,
        analyze_correlation,
        {
            "n": n,
            "rho": rho,
            "proportion_careless": list(proportions_careless),
        },
    )
    exp.set_iterations(n_iterations).set_seed(seed)
    exp.run(print_results=print_results, progress_callback=False)
    return exp.summarize(
        print_results=print_results,
        mean_r=Mean("r"),
        bias=Bias("r", truth="rho"),
        power=Proportion("p"),
    )
