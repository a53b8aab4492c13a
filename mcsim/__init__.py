"""MCSim - Monte Carlo simulation for statistical inference.

A small framework for classroom simulation studies: declare a grid of
conditions, generate data under known population parameters, analyze every
dataset with an off-the-shelf test and summarise across iterations.

Example:
    >>> from mcsim import Experiment, Proportion
    >>> from mcsim.stats import generate_two_groups, analyze_independent_t_test
    >>>
    >>> exp = Experiment(generate_two_groups, analyze_independent_t_test)
    >>> exp.set_parameters("n_per_condition=(50, 100), mean_control=0, "
    ...                    "mean_intervention=(0, 0.5), sd_control=1, sd_intervention=1")
    >>> exp.run()
    >>> exp.summarize(power=Proportion("p"))
"""

from importlib.metadata import version as _get_version

from .core import (
    Bias,
    ConditionGrid,
    ExperimentCancelled,
    ExperimentResults,
    ExperimentRunner,
    Mean,
    Proportion,
    Quantile,
)
from .experiment import Experiment
from .progress import PrintReporter, ProgressReporter, TqdmReporter
from .utils.validators import ConfigurationError

__version__ = _get_version("MCSim")

__all__ = [
    "Experiment",
    "ConditionGrid",
    "ExperimentRunner",
    "ExperimentResults",
    "Mean",
    "Proportion",
    "Bias",
    "Quantile",
    "ConfigurationError",
    "ExperimentCancelled",
    "ProgressReporter",
    "PrintReporter",
    "TqdmReporter",
]
