"""
Tests for the meta-analysis helpers.
"""

import numpy as np
import pandas as pd
import pytest

from mcsim.stats.data_generation import generate_two_groups
from mcsim.stats.meta_analysis import (
    SUMMARY_COLUMNS,
    random_effects_meta,
    standardized_mean_difference,
    summarize_study,
    swap_sd_for_se,
)


@pytest.fixture
def summaries():
    return pd.DataFrame(
        {
            "n_intervention": [50, 100, 80],
            "mean_intervention": [0.5, 0.4, 0.6],
            "sd_intervention": [1.0, 1.1, 0.9],
            "n_control": [50, 100, 80],
            "mean_control": [0.0, 0.0, 0.1],
            "sd_control": [1.0, 0.9, 1.1],
        }
    )


class TestSummarizeStudy:
    def test_fields(self, rng):
        data = generate_two_groups(40, 0, 0.5, 1, 1, rng=rng)
        summary = summarize_study(data)
        assert list(summary.to_dict()) == SUMMARY_COLUMNS
        assert summary.n_intervention == 40
        control = data.loc[data["condition"] == "control", "score"]
        assert summary.sd_control == pytest.approx(control.std(ddof=1))


class TestSwapSdForSe:
    def test_probability_zero(self, summaries, rng):
        out = swap_sd_for_se(summaries, 0.0, rng=rng)
        pd.testing.assert_series_equal(out["sd_control"], summaries["sd_control"])
        assert not out["se_reported_as_sd"].any()

    def test_probability_one(self, summaries, rng):
        out = swap_sd_for_se(summaries, 1.0, rng=rng)
        expected = summaries["sd_intervention"] / np.sqrt(summaries["n_intervention"])
        np.testing.assert_allclose(out["sd_intervention"], expected)
        assert out["se_reported_as_sd"].all()

    def test_input_untouched(self, summaries, rng):
        before = summaries.copy()
        swap_sd_for_se(summaries, 1.0, rng=rng)
        pd.testing.assert_frame_equal(summaries, before)

    def test_invalid_probability(self, summaries):
        with pytest.raises(ValueError, match="probability"):
            swap_sd_for_se(summaries, 1.2)

    def test_missing_columns(self):
        with pytest.raises(ValueError, match="lack column"):
            swap_sd_for_se(pd.DataFrame({"n_control": [1]}), 0.5)


class TestStandardizedMeanDifference:
    def test_values(self, summaries):
        out = standardized_mean_difference(summaries)
        assert out["yi"].iloc[0] == pytest.approx(0.5)
        assert out["vi"].iloc[0] == pytest.approx(1 / 50 + 1 / 50 + 0.25 / 200)

    def test_swapped_sd_inflates_d(self, summaries, rng):
        correct = standardized_mean_difference(summaries)["yi"]
        wrong = standardized_mean_difference(swap_sd_for_se(summaries, 1.0, rng=rng))["yi"]
        assert (wrong.abs() > correct.abs()).all()


class TestRandomEffectsMeta:
    def test_homogeneous(self):
        result = random_effects_meta([0.3, 0.3, 0.3], [0.01, 0.02, 0.04])
        assert result.estimate == pytest.approx(0.3)
        assert result.tau2 == 0.0
        assert result.q == pytest.approx(0.0)
        assert result.i2 == 0.0
        assert result.k == 3

    def test_equal_variances_is_mean(self):
        result = random_effects_meta([0.1, 0.2, 0.6], [0.01, 0.01, 0.01])
        assert result.estimate == pytest.approx(0.3)

    def test_dersimonian_laird(self):
        yi = np.array([0.1, 0.5, 0.9])
        vi = np.array([0.01, 0.01, 0.01])
        w = 1 / vi
        q = np.sum(w * (yi - yi.mean()) ** 2)
        c = w.sum() - (w**2).sum() / w.sum()
        result = random_effects_meta(yi, vi, method="DL")
        assert result.q == pytest.approx(q)
        assert result.tau2 == pytest.approx((q - 2) / c)
        assert result.se == pytest.approx(np.sqrt(1 / np.sum(1 / (vi + result.tau2))))
        assert result.ci_lower < result.estimate < result.ci_upper
        assert 0 < result.i2 < 100

    def test_reml_balanced_closed_form(self):
        # with equal sampling variances REML tau2 is the sample variance minus vi
        yi = np.array([0.1, 0.5, 0.9, 0.3])
        vi = np.full(4, 0.01)
        result = random_effects_meta(yi, vi)
        assert result.tau2 == pytest.approx(np.var(yi, ddof=1) - 0.01, rel=1e-6)

    def test_reml_maximizes_restricted_likelihood(self):
        yi = np.array([0.1, 0.5, 0.9, 0.2, 0.7])
        vi = np.array([0.01, 0.04, 0.02, 0.05, 0.03])

        def restricted_loglik(tau2):
            w = 1 / (vi + tau2)
            mu = np.sum(w * yi) / np.sum(w)
            return -0.5 * (np.sum(np.log(vi + tau2)) + np.log(np.sum(w)) + np.sum(w * (yi - mu) ** 2))

        reml = random_effects_meta(yi, vi)
        dl = random_effects_meta(yi, vi, method="DL")
        assert reml.tau2 > 0
        for other in (reml.tau2 * 0.95, reml.tau2 * 1.05, dl.tau2):
            assert restricted_loglik(reml.tau2) >= restricted_loglik(other)

    def test_i2_from_tau2(self):
        yi = np.array([0.1, 0.5, 0.9, 0.2, 0.7])
        vi = np.array([0.01, 0.04, 0.02, 0.05, 0.03])
        for method in ("REML", "DL"):
            result = random_effects_meta(yi, vi, method=method)
            w = 1 / vi
            typical = (len(yi) - 1) / (w.sum() - (w**2).sum() / w.sum())
            assert result.i2 == pytest.approx(100 * result.tau2 / (result.tau2 + typical))

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="method"):
            random_effects_meta([0.3, 0.2], [0.01, 0.01], method="PM")

    def test_too_few(self):
        with pytest.raises(ValueError, match="at least 2"):
            random_effects_meta([0.3], [0.01])

    def test_bad_variances(self):
        with pytest.raises(ValueError, match="positive"):
            random_effects_meta([0.3, 0.2], [0.01, 0.0])

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            random_effects_meta([0.3, 0.2], [0.01])
