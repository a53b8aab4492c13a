"""
Tests for path model estimation.
"""

import numpy as np
import pandas as pd
import pytest

from mcsim.stats.data_generation import simulate_path_model
from mcsim.stats.path_models import _ols_core, analyze_path_model, fit_path_model
from mcsim.utils.validators import ConfigurationError


class TestOLSCore:
    def test_simple_regression(self, rng):
        x = rng.normal(size=200)
        y = 1.0 + 0.5 * x + rng.normal(size=200)
        beta, se = _ols_core(x.reshape(-1, 1), y)
        slope, intercept = np.polyfit(x, y, 1)
        assert beta[0] == pytest.approx(slope)

        residuals = y - (intercept + slope * x)
        expected_se = np.sqrt(np.sum(residuals**2) / 200 / np.sum((x - x.mean()) ** 2))
        assert se[0] == pytest.approx(expected_se)

    def test_singular(self):
        x = np.ones((10, 1))
        with pytest.raises(ValueError, match="Singular"):
            _ols_core(x, np.arange(10, dtype=float))

    def test_collinear(self, rng):
        x = rng.normal(size=20)
        X = np.column_stack([x, 2 * x])
        with pytest.raises(ValueError, match="Singular"):
            _ols_core(X, rng.normal(size=20))


class TestFitPathModel:
    def test_table_layout(self, rng):
        data = simulate_path_model("M ~ 0.5*X + 0.5*Y", 300, rng=rng)
        table = fit_path_model(data, "M ~ X + Y")
        assert list(table.columns) == ["lhs", "op", "rhs", "est", "se", "z", "pvalue"]
        assert table["rhs"].tolist() == ["X", "Y"]
        assert (table["op"] == "~").all()

    def test_recovers_paths(self, rng):
        model = "M ~ 0.5*X + 0.3*Y"
        data = simulate_path_model(model, 20000, rng=rng)
        table = fit_path_model(data, model)
        assert table["est"].tolist() == pytest.approx([0.5, 0.3], abs=0.03)
        assert (table["pvalue"] < 0.001).all()

    def test_missing_variable(self):
        data = pd.DataFrame({"X": [1.0, 2.0, 3.0]})
        with pytest.raises(ConfigurationError, match="not found"):
            fit_path_model(data, "Y ~ X")

    def test_too_few_rows(self):
        data = pd.DataFrame({"X": [1.0, 2.0], "Y": [2.0, 1.0]})
        with pytest.raises(ValueError, match="Too few"):
            fit_path_model(data, "Y ~ X")


class TestAnalyzePathModel:
    def test_no_effect(self, rng):
        data = simulate_path_model("Y ~ 0.0*X", 500, rng=rng)
        result = analyze_path_model(data, "Y ~ X", effect="Y~X")
        assert abs(result.estimate) < 0.15
        assert result.z == pytest.approx(result.estimate / result.se)

    def test_conditioning_on_collider_biases(self, rng):
        data = simulate_path_model("M ~ 0.5*X + 0.5*Y; Y ~ 0.0*X", 5000, rng=rng)
        naive = analyze_path_model(data, "Y ~ X")
        adjusted = analyze_path_model(data, "Y ~ X + M")
        assert abs(naive.estimate) < 0.06
        assert adjusted.estimate < -0.15

    def test_effect_spacing(self, rng):
        data = simulate_path_model("Y ~ 0.3*X", 100, rng=rng)
        assert analyze_path_model(data, "Y ~ X", effect=" Y ~ X ").estimate == analyze_path_model(data, "Y ~ X").estimate

    def test_unknown_effect(self, rng):
        data = simulate_path_model("Y ~ 0.3*X", 100, rng=rng)
        with pytest.raises(ConfigurationError, match="no path"):
            analyze_path_model(data, "Y ~ X", effect="X~Y")

    def test_malformed_effect(self, rng):
        data = simulate_path_model("Y ~ 0.3*X", 100, rng=rng)
        with pytest.raises(ConfigurationError, match="Effect must look like"):
            analyze_path_model(data, "Y ~ X", effect="YX")
