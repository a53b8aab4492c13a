"""
A collider can look like a mediator.

When M is caused by both X and Y, controlling for M biases the estimate of
Y ~ X. With a true direct effect the estimate shrinks after adding M,
exactly the pattern usually read as partial mediation.
"""

from typing import Optional, Sequence, Tuple

import pandas as pd

from ..core import Mean, Proportion, simulate_once
from ..experiment import Experiment
from ..stats.data_generation import simulate_path_model
from ..stats.path_models import analyze_path_model

# (label, data-generating model, analysis model)
SCENARIOS: Sequence[Tuple[str, str, str]] = (
    ("null effect, controlling for collider", "M ~ 0.5*X + 0.5*Y; Y ~ 0.0*X", "Y ~ X + M"),
    ("positive effect, controlling for collider", "M ~ 0.5*X + 0.5*Y; Y ~ 0.5*X", "Y ~ X + M"),
    ("positive effect, total effect c", "M ~ 0.5*X + 0.5*Y; Y ~ 0.5*X", "Y ~ X"),
    ("positive effect, direct effect c'", "M ~ 0.5*X + 0.5*Y; Y ~ 0.5*X", "Y ~ X + M; M ~ X"),
)


def collider_demo(n: int = 10000, seed: Optional[int] = 2137) -> pd.DataFrame:
    """Fit each scenario once on a large sample.

    Returns:
        DataFrame with ``scenario``, ``true_model``, ``analysis_model`` and
        the ``Y~X`` ``estimate``, ``se`` and ``p``.
    """
    rows = []
    for label, true_model, analysis_model in SCENARIOS:
        data = simulate_once(simulate_path_model, {"model": true_model, "n": n}, seed=seed)
        fit = analyze_path_model(data, analysis_model, effect="Y~X")
        rows.append(
            {
                "scenario": label,
                "true_model": true_model,
                "analysis_model": analysis_model,
                "estimate": fit.estimate,
                "se": fit.se,
                "p": fit.p,
            }
        )
    return pd.DataFrame(rows)


def _generate(true_model, n, rng=None):
    return simulate_path_model(true_model, n, rng=rng)


def _analyze(data, analysis_model):
    return analyze_path_model(data, analysis_model, effect="Y~X")


def collider_experiment(
    n: int = 200,
    n_iterations: int = 500,
    seed: int = 2137,
    print_results: bool = False,
) -> pd.DataFrame:
    """Sampling distribution of the ``Y~X`` estimate with and without the
    collider in the model, under a true null."""
    exp = Experiment(
        _generate,
        _analyze,
        {
            "true_model": "M ~ 0.5*X + 0.5*Y; Y ~ 0.0*X",
            "analysis_model": ["Y ~ X", "Y ~ X + M"],
            "n": n,
        },
    )
    exp.set_iterations(n_iterations).set_seed(seed)
    exp.run(print_results=print_results, progress_callback=False)
    return exp.summarize(
        print_results=print_results,
        mean_estimate=Mean("estimate"),
        false_positive_rate=Proportion("p"),
    )
