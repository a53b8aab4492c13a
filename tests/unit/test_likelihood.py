"""
Tests for mixed-results likelihoods.
"""

import numpy as np
import pytest
from scipy import stats

from mcsim.stats.likelihood import likelihood_curve, mixed_results_likelihood


class TestMixedResultsLikelihood:
    def test_two_of_three(self):
        result = mixed_results_likelihood(3, 2)
        like_h0 = stats.binom.pmf(2, 3, 0.05)
        like_h1 = stats.binom.pmf(2, 3, 0.80)
        assert result.favours == "H1"
        assert result.likelihood_ratio == pytest.approx(round(like_h1 / like_h0, 2))

    def test_none_significant_favours_h0(self):
        result = mixed_results_likelihood(3, 0)
        assert result.favours == "H0"
        assert result.likelihood_ratio > 1

    def test_ratio_at_least_one(self):
        for k in range(4):
            assert mixed_results_likelihood(3, k).likelihood_ratio >= 1

    def test_rounded(self):
        ratio = mixed_results_likelihood(6, 2).likelihood_ratio
        assert ratio == round(ratio, 2)

    def test_underflowing_likelihood_gives_infinite_ratio(self):
        result = mixed_results_likelihood(400, 400, 0.05, 0.8)
        assert result.likelihood_h0 == 0.0
        assert result.likelihood_ratio == float("inf")
        assert result.favours == "H1"

    def test_large_counts_stay_finite(self):
        result = mixed_results_likelihood(200, 150)
        expected = stats.binom.logpmf(150, 200, 0.8) - stats.binom.logpmf(150, 200, 0.05)
        assert result.favours == "H1"
        assert result.likelihood_ratio == pytest.approx(round(float(np.exp(expected)), 2), rel=1e-9)

    def test_observed_proportion(self):
        assert mixed_results_likelihood(4, 1).observed_proportion == 0.25

    def test_custom_power(self):
        low = mixed_results_likelihood(3, 1, p_h1=0.35)
        high = mixed_results_likelihood(3, 1, p_h1=0.95)
        assert low.favours == "H1"
        assert high.favours == "H0"

    @pytest.mark.parametrize("n, k", [(0, 0), (3, 4), (3, -1)])
    def test_invalid_counts(self, n, k):
        with pytest.raises(ValueError):
            mixed_results_likelihood(n, k)

    def test_invalid_probability(self):
        with pytest.raises(ValueError, match="p_h1"):
            mixed_results_likelihood(3, 1, p_h1=1.0)


class TestLikelihoodCurve:
    def test_peak_at_observed_proportion(self):
        curve = likelihood_curve(4, 1, n_points=1001)
        peak = curve.loc[curve["likelihood"].idxmax(), "theta"]
        assert peak == pytest.approx(0.25, abs=1e-3)

    def test_shape(self):
        curve = likelihood_curve(3, 2, n_points=50)
        assert list(curve.columns) == ["theta", "likelihood"]
        assert len(curve) == 50
