"""Core components for the MCSim framework.

Re-exports the foundational building blocks:

- ``ConditionGrid``, ``ConditionRow``: enumeration of condition rows.
- ``ExperimentRunner``, ``RowFailure``, ``RowTimeoutError``, ``ExperimentCancelled``,
  ``simulate_once``: Monte Carlo execution.
- ``ExperimentResults``, ``summarize``, ``pivot_wider`` and the summary
  metrics ``Mean``, ``Proportion``, ``Bias``, ``Quantile``: aggregation.
"""

from .grid import ConditionGrid, ConditionRow
from .results import (
    Bias,
    ExperimentResults,
    Mean,
    Proportion,
    Quantile,
    flatten_record,
    pivot_wider,
    summarize,
)
from .simulation import (
    ExperimentCancelled,
    ExperimentRunner,
    RowFailure,
    RowTimeoutError,
    simulate_once,
    spawn_row_seeds,
)

__all__ = [
    # Grid
    "ConditionGrid",
    "ConditionRow",
    # Simulation
    "ExperimentCancelled",
    "ExperimentRunner",
    "RowFailure",
    "RowTimeoutError",
    "simulate_once",
    "spawn_row_seeds",
    # Results
    "ExperimentResults",
    "summarize",
    "pivot_wider",
    "flatten_record",
    "Mean",
    "Proportion",
    "Bias",
    "Quantile",
]
