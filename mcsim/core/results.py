"""
Results processing for MCSim.

This module holds the per-row results of an experiment and reduces them
into summary tables: one row per distinct combination of the varied
parameters, with statistics computed across iterations.
"""

import dataclasses
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..utils.validators import ITERATION_COLUMN, ConfigurationError, _validate_grouping

if TYPE_CHECKING:
    from .grid import ConditionGrid, ConditionRow

N_ITERATIONS_COLUMN = "n_iterations"


# =========================================================================
# Summary metrics
# =========================================================================


@dataclass(frozen=True)
class Mean:
    """Arithmetic mean of a numeric result field across iterations."""

    field: str

    def __call__(self, group: pd.DataFrame) -> float:
        return float(np.mean(group[self.field].to_numpy(dtype=float)))


@dataclass(frozen=True)
class Proportion:
    """Proportion of iterations whose *field* is strictly below *below*.

    With the default threshold this is the proportion of significant
    results (power, or the false-positive rate under a true null). A
    p-value exactly equal to the threshold does not count. Pass *where*
    instead to count an arbitrary boolean predicate on the field.
    """

    field: str
    below: float = 0.05
    where: Optional[Callable[[pd.Series], Any]] = None

    def __call__(self, group: pd.DataFrame) -> float:
        values = group[self.field]
        hits = self.where(values) if self.where is not None else values.to_numpy(dtype=float) < self.below
        return float(np.mean(np.asarray(hits, dtype=bool)))


@dataclass(frozen=True)
class Bias:
    """Mean signed (or absolute) difference between an estimate and the truth.

    *truth* is a number, the name of a grid parameter holding the population
    value, or a callable receiving the group frame and returning the true
    value per row.
    """

    field: str
    truth: Union[float, str, Callable[[pd.DataFrame], Any]]
    absolute: bool = False

    def __call__(self, group: pd.DataFrame) -> float:
        estimates = group[self.field].to_numpy(dtype=float)
        if callable(self.truth):
            truth = np.asarray(self.truth(group), dtype=float)
        elif isinstance(self.truth, str):
            truth = group[self.truth].to_numpy(dtype=float)
        else:
            truth = float(self.truth)
        diff = estimates - truth
        if self.absolute:
            diff = np.abs(diff)
        return float(np.mean(diff))


@dataclass(frozen=True)
class Quantile:
    """Quantile of a numeric result field across iterations."""

    field: str
    q: float = 0.5

    def __call__(self, group: pd.DataFrame) -> float:
        return float(np.quantile(group[self.field].to_numpy(dtype=float), self.q))


# =========================================================================
# Result records
# =========================================================================


def flatten_record(record: Any) -> Dict[str, Any]:
    """Turn an analyzer's output into a flat ``{field: value}`` mapping.

    Dataclass records are expanded field by field, mappings and pandas
    Series are copied, and a bare scalar becomes ``{"value": scalar}``.
    """
    if hasattr(record, "to_dict") and not isinstance(record, (pd.Series, pd.DataFrame)):
        return dict(record.to_dict())
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return dataclasses.asdict(record)
    if isinstance(record, pd.Series):
        return record.to_dict()
    if isinstance(record, Mapping):
        return dict(record)
    if isinstance(record, pd.DataFrame):
        if len(record) != 1:
            raise ValueError(f"Analyzer returned a {len(record)}-row table; expected exactly one row")
        return record.iloc[0].to_dict()
    return {"value": record}


class ExperimentResults:
    """Per-row outcome of an experiment.

    Attributes:
        grid: The condition grid that was run.
        rows: All condition rows, in grid order.
        records: Analyzer output per row (``None`` for failed rows).
        failures: ``RowFailure`` entries (diagnostic mode only).
        seed: Experiment seed.
        datasets: Generated datasets by row index when kept.
    """

    def __init__(
        self,
        grid: "ConditionGrid",
        rows: Sequence["ConditionRow"],
        records: Sequence[Any],
        failures: Sequence[Any] = (),
        seed: Optional[int] = None,
        datasets: Optional[Dict[int, Any]] = None,
    ):
        self.grid = grid
        self.rows = list(rows)
        self.records = list(records)
        self.failures = list(failures)
        self.seed = seed
        self.datasets = datasets or {}
        self._frame: Optional[pd.DataFrame] = None

    @property
    def n_rows_used(self) -> int:
        return len(self.rows) - len(self.failures)

    @property
    def n_rows_failed(self) -> int:
        return len(self.failures)

    @property
    def failure_reasons(self) -> Dict[str, int]:
        """Count of failures by ``"stage: ErrorType: message"``."""
        reasons: Dict[str, int] = {}
        for failure in self.failures:
            reasons[failure.reason] = reasons.get(failure.reason, 0) + 1
        return reasons

    def to_frame(self) -> pd.DataFrame:
        """Long table: one row per successful condition row, with parameter
        columns, ``iteration`` and the flattened analyzer record."""
        if self._frame is not None:
            return self._frame.copy()

        failed = {f.index for f in self.failures}
        param_names = self.grid.parameter_names
        records = []
        for row, record in zip(self.rows, self.records):
            if row.index in failed:
                continue
            out = row.to_dict()
            fields = flatten_record(record)
            clash = [name for name in fields if name in out]
            if clash:
                raise ConfigurationError(
                    f"Result field(s) {', '.join(clash)} clash with grid parameters; rename them in the analyzer"
                )
            out.update(fields)
            records.append(out)

        frame = pd.DataFrame.from_records(records)
        if frame.empty:
            frame = pd.DataFrame(columns=param_names + [ITERATION_COLUMN])
        self._frame = frame
        return frame.copy()

    def summarize(self, by: Optional[Sequence[str]] = None, **metrics: Callable[[pd.DataFrame], float]) -> pd.DataFrame:
        """Reduce iterations into one summary row per condition.

        See :func:`summarize`.
        """
        return summarize(self.to_frame(), self.grid, by=by, **metrics)

    def dataset(self, index: int = 0) -> Any:
        """Generated dataset of row *index* (requires ``keep_data=True``)."""
        if index not in self.datasets:
            raise KeyError(f"No dataset kept for row {index}; run with keep_data=True")
        return self.datasets[index]

    def __repr__(self):
        return (
            f"ExperimentResults(rows={len(self.rows)}, used={self.n_rows_used}, "
            f"failed={self.n_rows_failed}, seed={self.seed})"
        )


# =========================================================================
# Aggregation
# =========================================================================


def summarize(
    frame: pd.DataFrame,
    grid: "ConditionGrid",
    by: Optional[Sequence[str]] = None,
    **metrics: Callable[[pd.DataFrame], float],
) -> pd.DataFrame:
    """Group a long results table by condition and reduce each group.

    Args:
        frame: Long results table (``ExperimentResults.to_frame()``).
        grid: The grid the results came from.
        by: Grouping parameters. Defaults to every declared parameter
            except ``iteration``; constant parameters add no groups but
            keep their values visible in the summary.
        **metrics: ``column_name=metric`` pairs, e.g.
            ``power=Proportion("p")``.

    Returns:
        One row per distinct combination of varied-parameter values, in
        grid order, with the grouping columns, one column per metric and
        ``n_iterations``.

    Raises:
        ConfigurationError: If *by* omits a varied parameter, names an
            unknown one or includes ``iteration``, or if no metric is given.
    """
    if not metrics:
        raise ConfigurationError("summarize() needs at least one metric, e.g. power=Proportion('p')")

    declared = grid.parameter_names
    by = list(declared) if by is None else list(by)
    _validate_grouping(by, grid.varied_parameters, declared).raise_if_invalid()

    for name, metric in metrics.items():
        needed = getattr(metric, "field", None)
        if needed is not None and needed not in frame.columns:
            raise ConfigurationError(f"Metric '{name}' uses unknown result field '{needed}'")

    rows: List[Dict[str, Any]] = []
    if not by:
        groups = [((), frame)]
    else:
        groups = frame.groupby(by, sort=False, dropna=False)

    for key, group in groups:
        key = key if isinstance(key, tuple) else (key,)
        out: Dict[str, Any] = dict(zip(by, key))
        for name, metric in metrics.items():
            out[name] = metric(group)
        out[N_ITERATIONS_COLUMN] = len(group)
        rows.append(out)

    summary = pd.DataFrame(rows, columns=by + list(metrics.keys()) + [N_ITERATIONS_COLUMN])
    summary.attrs["group_by"] = list(by)
    return summary


def pivot_wider(
    summary: pd.DataFrame,
    names_from: str,
    values_from: str,
    index: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Spread one summary statistic across the values of one parameter.

    The remaining grouping columns form the rows, e.g. power by sample
    size (rows) and effect size (columns). *index* defaults to the grouping
    columns recorded by :func:`summarize`.
    """
    if index is None:
        index = [c for c in summary.attrs.get("group_by", []) if c != names_from]
    index = list(index)

    if not index:
        wide = summary.set_index(names_from)[[values_from]].T.reset_index(drop=True)
    else:
        wide = summary.pivot(index=index, columns=names_from, values=values_from).reset_index()
    wide.columns.name = None
    return wide.rename(columns={c: f"{values_from}_{names_from}_{c}" for c in wide.columns if c not in index})
