"""
Tests for result aggregation and summary metrics.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd
import pytest

from mcsim.core.grid import ConditionGrid
from mcsim.core.results import (
    Bias,
    ExperimentResults,
    Mean,
    Proportion,
    Quantile,
    flatten_record,
    pivot_wider,
    summarize,
)
from mcsim.core.simulation import ExperimentRunner
from mcsim.utils.validators import ConfigurationError


@dataclass(frozen=True)
class _Estimate:
    estimate: float
    p: float


def _results(parameters, values, n_iterations):
    """Results whose records are taken from *values* in row order."""
    grid = ConditionGrid(parameters, n_iterations=n_iterations)
    rows = grid.rows()
    records = [{"estimate": e, "p": p} for e, p in values]
    assert len(records) == len(rows)
    return ExperimentResults(grid=grid, rows=rows, records=records, seed=1)


class TestMetrics:
    def test_mean(self):
        group = pd.DataFrame({"estimate": [1.0, 2.0, 6.0]})
        assert Mean("estimate")(group) == pytest.approx(3.0)

    def test_proportion_strictly_below(self):
        group = pd.DataFrame({"p": [0.01, 0.05, 0.049, 0.5]})
        assert Proportion("p")(group) == pytest.approx(0.5)

    def test_proportion_custom_threshold(self):
        group = pd.DataFrame({"p": [0.001, 0.009, 0.02]})
        assert Proportion("p", below=0.01)(group) == pytest.approx(2 / 3)

    def test_proportion_where(self):
        group = pd.DataFrame({"path": ["parametric", "nonparametric", "nonparametric", "parametric"]})
        metric = Proportion("path", where=lambda s: s == "nonparametric")
        assert metric(group) == pytest.approx(0.5)

    def test_bias_number(self):
        group = pd.DataFrame({"estimate": [0.4, 0.6]})
        assert Bias("estimate", truth=0.5)(group) == pytest.approx(0.0)

    def test_bias_absolute(self):
        group = pd.DataFrame({"estimate": [0.4, 0.6]})
        assert Bias("estimate", truth=0.5, absolute=True)(group) == pytest.approx(0.1)

    def test_bias_parameter_name(self):
        group = pd.DataFrame({"estimate": [0.5, 0.7], "rho": [0.6, 0.6]})
        assert Bias("estimate", truth="rho")(group) == pytest.approx(0.0)

    def test_bias_callable(self):
        group = pd.DataFrame({"estimate": [1.0, 2.0], "mean": [0.5, 1.0]})
        assert Bias("estimate", truth=lambda g: 2 * g["mean"])(group) == pytest.approx(0.0)

    def test_quantile(self):
        group = pd.DataFrame({"estimate": np.arange(101, dtype=float)})
        assert Quantile("estimate", q=0.9)(group) == pytest.approx(90.0)


class TestFlattenRecord:
    def test_dataclass(self):
        assert flatten_record(_Estimate(1.0, 0.2)) == {"estimate": 1.0, "p": 0.2}

    def test_mapping(self):
        assert flatten_record({"a": 1}) == {"a": 1}

    def test_series(self):
        assert flatten_record(pd.Series({"a": 1.0})) == {"a": 1.0}

    def test_one_row_frame(self):
        assert flatten_record(pd.DataFrame({"a": [2.0]})) == {"a": 2.0}

    def test_multi_row_frame(self):
        with pytest.raises(ValueError, match="exactly one row"):
            flatten_record(pd.DataFrame({"a": [1.0, 2.0]}))

    def test_scalar(self):
        assert flatten_record(0.3) == {"value": 0.3}


class TestExperimentResults:
    def test_to_frame_columns(self):
        results = _results({"n": [10, 20]}, [(0.1, 0.5)] * 4, n_iterations=2)
        frame = results.to_frame()
        assert list(frame.columns) == ["n", "iteration", "estimate", "p"]
        assert frame["iteration"].tolist() == [1, 2, 1, 2]

    def test_field_clash(self):
        grid = ConditionGrid({"p": 0.5}, n_iterations=1)
        results = ExperimentResults(grid=grid, rows=grid.rows(), records=[{"p": 0.1}])
        with pytest.raises(ConfigurationError, match="clash"):
            results.to_frame()

    def test_to_frame_is_copy(self):
        results = _results({"n": 10}, [(0.1, 0.5)], n_iterations=1)
        results.to_frame()["estimate"] = 99.0
        assert results.to_frame()["estimate"].iloc[0] == 0.1

    def test_repr(self):
        results = _results({"n": 10}, [(0.1, 0.5)], n_iterations=1)
        assert "rows=1" in repr(results)


class TestSummarize:
    def test_one_row_per_condition(self):
        values = [(0.1, 0.01), (0.2, 0.20), (0.3, 0.01), (0.4, 0.01)]
        results = _results({"n": [10, 20], "mean": 0}, values, n_iterations=2)
        summary = results.summarize(power=Proportion("p"), estimate=Mean("estimate"))
        assert list(summary.columns) == ["n", "mean", "power", "estimate", "n_iterations"]
        assert summary["n"].tolist() == [10, 20]
        assert summary["power"].tolist() == pytest.approx([0.5, 1.0])
        assert summary["estimate"].tolist() == pytest.approx([0.15, 0.35])
        assert summary["n_iterations"].tolist() == [2, 2]

    def test_grid_order_preserved(self):
        values = [(float(i), 0.5) for i in range(3)]
        results = _results({"n": [30, 10, 20]}, values, n_iterations=1)
        summary = results.summarize(estimate=Mean("estimate"))
        assert summary["n"].tolist() == [30, 10, 20]

    def test_by_omits_varied(self):
        results = _results({"n": [10, 20], "mean": [0, 1]}, [(0.0, 0.5)] * 4, n_iterations=1)
        with pytest.raises(ConfigurationError, match="omits varied"):
            results.summarize(by=["n"], power=Proportion("p"))

    def test_by_iteration(self):
        results = _results({"n": [10, 20]}, [(0.0, 0.5)] * 4, n_iterations=2)
        with pytest.raises(ConfigurationError):
            results.summarize(by=["n", "iteration"], power=Proportion("p"))

    def test_by_unknown(self):
        results = _results({"n": [10, 20]}, [(0.0, 0.5)] * 2, n_iterations=1)
        with pytest.raises(ConfigurationError):
            results.summarize(by=["n", "sd"], power=Proportion("p"))

    def test_by_constant_can_be_dropped(self):
        results = _results({"n": [10, 20], "mean": 0}, [(0.0, 0.5)] * 2, n_iterations=1)
        summary = results.summarize(by=["n"], power=Proportion("p"))
        assert list(summary.columns) == ["n", "power", "n_iterations"]

    def test_no_metrics(self):
        results = _results({"n": 10}, [(0.0, 0.5)], n_iterations=1)
        with pytest.raises(ConfigurationError, match="at least one metric"):
            results.summarize()

    def test_unknown_field(self):
        results = _results({"n": 10}, [(0.0, 0.5)], n_iterations=1)
        with pytest.raises(ConfigurationError, match="unknown result field"):
            results.summarize(power=Proportion("pvalue"))

    def test_no_varied_parameters(self):
        results = _results({"n": 10}, [(0.0, 0.01), (0.0, 0.5)], n_iterations=2)
        summary = results.summarize(by=[], power=Proportion("p"))
        assert len(summary) == 1
        assert summary["power"].iloc[0] == pytest.approx(0.5)

    def test_one_at_a_time_default_merges(self):
        grid = ConditionGrid.one_at_a_time({"a": 1, "b": 1}, {"a": [0, 1, 2], "b": [0, 1, 2]}, n_iterations=1)
        results = ExperimentResults(grid=grid, rows=grid.rows(), records=[{"p": 0.5}] * len(grid))
        summary = results.summarize(power=Proportion("p"))
        assert len(summary) == 5
        merged = summary[(summary["a"] == 1) & (summary["b"] == 1)]
        assert merged["n_iterations"].iloc[0] == 2

    def test_failed_rows_excluded(self):
        def generate(n, rng=None):
            if n == 1:
                raise ValueError("bad")
            return rng.normal(size=n)

        grid = ConditionGrid({"n": [1, 5]}, n_iterations=3)
        with pytest.warns(UserWarning):
            results = ExperimentRunner(seed=1, on_error="record").run(grid, generate, lambda d: {"m": d.mean()})
        summary = results.summarize(by=["n"], m=Mean("m"))
        assert summary["n"].tolist() == [5]
        assert summary["n_iterations"].tolist() == [3]

    def test_standalone_function(self):
        results = _results({"n": [10, 20]}, [(1.0, 0.5), (3.0, 0.5)], n_iterations=1)
        summary = summarize(results.to_frame(), results.grid, estimate=Mean("estimate"))
        assert summary.attrs["group_by"] == ["n"]


class TestPivotWider:
    def test_two_way(self):
        values = [(float(i), 0.5) for i in range(4)]
        results = _results({"n": [10, 20], "d": [0.2, 0.5]}, values, n_iterations=1)
        summary = results.summarize(estimate=Mean("estimate"))
        wide = pivot_wider(summary, names_from="d", values_from="estimate")
        assert list(wide.columns) == ["n", "estimate_d_0.2", "estimate_d_0.5"]
        assert wide["estimate_d_0.5"].tolist() == pytest.approx([1.0, 3.0])

    def test_single_parameter(self):
        results = _results({"d": [0.2, 0.5]}, [(1.0, 0.5), (2.0, 0.5)], n_iterations=1)
        summary = results.summarize(estimate=Mean("estimate"))
        wide = pivot_wider(summary, names_from="d", values_from="estimate")
        assert wide.shape == (1, 2)
