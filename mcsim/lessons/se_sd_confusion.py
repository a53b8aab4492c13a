"""
Standard errors reported as standard deviations.

A study that reports the SE where the SD belongs makes its standardized
effect look sqrt(n) times larger. A handful of such errors is enough to
distort a meta-analysis.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd

from ..experiment import Experiment
from ..stats.data_generation import generate_two_groups_random_n
from ..stats.meta_analysis import (
    MetaAnalysisResult,
    random_effects_meta,
    standardized_mean_difference,
    summarize_study,
    swap_sd_for_se,
)


@dataclass(frozen=True)
class SEConfusionResult:
    """Study table and the pooled estimates with and without reporting errors.

    Attributes:
        studies: One row per study with true summaries, the reported ones and
            ``yi``/``vi`` (as reported) plus ``yi_correct``/``vi_correct``.
        meta_correct: Random-effects estimate from the correct summaries.
        meta_reported: Random-effects estimate from the reported summaries.
    """

    studies: pd.DataFrame
    meta_correct: MetaAnalysisResult
    meta_reported: MetaAnalysisResult


def _generate_study(n_minimum, n_maximum, mean_difference, rng=None):
    # grid names must not clash with the summary fields of summarize_study
    return generate_two_groups_random_n(n_minimum, n_maximum, 0.0, mean_difference, 1.0, 1.0, rng=rng)


def se_sd_meta_analysis(
    n_studies: int = 30,
    probability: float = 0.1,
    n_minimum: int = 10,
    n_maximum: int = 250,
    mean_difference: float = 0.2,
    seed: int = 123,
    print_results: bool = False,
) -> SEConfusionResult:
    """Simulate *n_studies* studies, corrupt some reports and meta-analyse.

    Each study has a per-condition size drawn uniformly between *n_minimum*
    and *n_maximum* and a true standardized effect of *mean_difference*.
    """
    exp = Experiment(
        _generate_study,
        summarize_study,
        {"n_minimum": n_minimum, "n_maximum": n_maximum, "mean_difference": mean_difference},
    )
    exp.set_iterations(n_studies).set_seed(seed)
    exp.run(print_results=print_results, progress_callback=False)
    summaries = exp.results.to_frame()

    correct = standardized_mean_difference(summaries)
    reported = standardized_mean_difference(swap_sd_for_se(summaries, probability, np.random.default_rng(seed)))
    reported["yi_correct"] = correct["yi"].to_numpy()
    reported["vi_correct"] = correct["vi"].to_numpy()

    result = SEConfusionResult(
        studies=reported,
        meta_correct=random_effects_meta(correct["yi"], correct["vi"]),
        meta_reported=random_effects_meta(reported["yi"], reported["vi"]),
    )
    if print_results:
        n_swapped = int(reported["se_reported_as_sd"].sum())
        print(f"Studies reporting SE as SD: {n_swapped}/{n_studies}")
        print(f"Pooled d (correct):  {result.meta_correct.estimate:.3f} (tau^2 = {result.meta_correct.tau2:.3f})")
        print(f"Pooled d (reported): {result.meta_reported.estimate:.3f} (tau^2 = {result.meta_reported.tau2:.3f})")
    return result
