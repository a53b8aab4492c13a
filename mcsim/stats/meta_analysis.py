"""
Meta-analysis of simulated studies.

Supports the lesson on standard errors being mistaken for standard
deviations: each simulated study is reduced to per-group summary
statistics, a share of studies is made to report the SE in place of the SD,
standardized mean differences are computed from the (possibly wrong)
summaries and pooled with a random-effects model.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from .analysis import _Record, _split_groups

SUMMARY_COLUMNS = [
    "n_intervention",
    "mean_intervention",
    "sd_intervention",
    "n_control",
    "mean_control",
    "sd_control",
]


@dataclass(frozen=True)
class StudySummary(_Record):
    """Per-group summary statistics of one two-group study."""

    n_intervention: int
    mean_intervention: float
    sd_intervention: float
    n_control: int
    mean_control: float
    sd_control: float


@dataclass(frozen=True)
class MetaAnalysisResult(_Record):
    """Random-effects pooled estimate.

    Attributes:
        estimate: Pooled effect.
        se: Standard error of the pooled effect.
        ci_lower: Lower confidence bound.
        ci_upper: Upper confidence bound.
        z: Wald statistic.
        p: Two-sided p-value.
        tau2: Between-study variance (REML or DerSimonian-Laird).
        i2: Share of total variability due to heterogeneity (0-100).
        q: Cochran's Q.
        k: Number of studies.
    """

    estimate: float
    se: float
    ci_lower: float
    ci_upper: float
    z: float
    p: float
    tau2: float
    i2: float
    q: float
    k: int


def summarize_study(data: pd.DataFrame) -> StudySummary:
    """Reduce a two-group dataset to the statistics a paper would report."""
    intervention, control = _split_groups(data)
    return StudySummary(
        n_intervention=len(intervention),
        mean_intervention=float(np.mean(intervention)),
        sd_intervention=float(np.std(intervention, ddof=1)),
        n_control=len(control),
        mean_control=float(np.mean(control)),
        sd_control=float(np.std(control, ddof=1)),
    )


def _check_summary_columns(summary: pd.DataFrame):
    missing = [c for c in SUMMARY_COLUMNS if c not in summary.columns]
    if missing:
        raise ValueError(f"Study summaries lack column(s): {', '.join(missing)}")


def swap_sd_for_se(
    summary: pd.DataFrame,
    probability: float,
    rng: Optional[np.random.Generator] = None,
) -> pd.DataFrame:
    """Introduce reporting errors: with *probability*, a study reports
    ``SD / sqrt(n)`` (the SE) in place of the SD for both groups.

    Returns:
        A copy of *summary* with the affected SDs replaced and a boolean
        ``se_reported_as_sd`` column.
    """
    if not 0 <= probability <= 1:
        raise ValueError(f"probability must be between 0 and 1, got {probability}")
    _check_summary_columns(summary)
    rng = rng if rng is not None else np.random.default_rng()

    out = summary.copy()
    swapped = rng.random(len(out)) < probability
    for arm in ("intervention", "control"):
        sd = out[f"sd_{arm}"].to_numpy(dtype=float)
        n = out[f"n_{arm}"].to_numpy(dtype=float)
        out[f"sd_{arm}"] = np.where(swapped, sd / np.sqrt(n), sd)
    out["se_reported_as_sd"] = swapped
    return out


def standardized_mean_difference(summary: pd.DataFrame) -> pd.DataFrame:
    """Cohen's d and its sampling variance from summary statistics.

    ``yi = (m1 - m2) / sd_pooled`` and
    ``vi = 1/n1 + 1/n2 + yi**2 / (2 * (n1 + n2))``; no small-sample
    correction is applied.

    Returns:
        A copy of *summary* with ``yi`` and ``vi`` columns appended.
    """
    _check_summary_columns(summary)
    n1 = summary["n_intervention"].to_numpy(dtype=float)
    n2 = summary["n_control"].to_numpy(dtype=float)
    s1 = summary["sd_intervention"].to_numpy(dtype=float)
    s2 = summary["sd_control"].to_numpy(dtype=float)
    sd_pooled = np.sqrt(((n1 - 1) * s1**2 + (n2 - 1) * s2**2) / (n1 + n2 - 2))
    if np.any(sd_pooled <= 0):
        raise ValueError("Pooled SD must be positive for every study")

    yi = (summary["mean_intervention"].to_numpy(dtype=float) - summary["mean_control"].to_numpy(dtype=float)) / sd_pooled
    out = summary.copy()
    out["yi"] = yi
    out["vi"] = 1 / n1 + 1 / n2 + yi**2 / (2 * (n1 + n2))
    return out


_TAU2_METHODS = ("REML", "DL")


def _dl_scaling(vi: np.ndarray) -> float:
    w = 1 / vi
    return float(np.sum(w) - np.sum(w**2) / np.sum(w))


def _tau2_dersimonian_laird(yi: np.ndarray, vi: np.ndarray, q: float) -> float:
    c = _dl_scaling(vi)
    return max(0.0, (q - (len(yi) - 1)) / c)


def _tau2_reml(yi: np.ndarray, vi: np.ndarray, start: float, max_iter: int = 200, tol: float = 1e-10) -> float:
    """Restricted maximum likelihood tau^2 by Fisher scoring, truncated at 0."""
    tau2 = start
    for _ in range(max_iter):
        w = 1 / (vi + tau2)
        P = np.diag(w) - np.outer(w, w) / np.sum(w)
        Py = P @ yi
        # P is symmetric, so tr(PP) is the sum of squared entries
        step = (Py @ Py - np.trace(P)) / np.sum(P * P)
        updated = max(0.0, tau2 + step)
        if abs(updated - tau2) < tol:
            return updated
        tau2 = updated
    raise ValueError(f"REML estimation of tau^2 did not converge in {max_iter} iterations")


def random_effects_meta(
    yi: Sequence[float],
    vi: Sequence[float],
    conf_level: float = 0.95,
    method: str = "REML",
) -> MetaAnalysisResult:
    """Random-effects meta-analysis.

    Args:
        yi: Study effect sizes.
        vi: Their sampling variances.
        conf_level: Confidence level of the pooled interval.
        method: Between-study variance estimator: ``"REML"`` (restricted
            maximum likelihood, default) or ``"DL"`` (DerSimonian-Laird).
            REML starts from the DL value.
    """
    if method not in _TAU2_METHODS:
        raise ValueError(f"method must be one of {', '.join(_TAU2_METHODS)}, got '{method}'")
    yi = np.asarray(yi, dtype=float)
    vi = np.asarray(vi, dtype=float)
    if yi.shape != vi.shape or yi.ndim != 1:
        raise ValueError("yi and vi must be 1-D sequences of equal length")
    k = len(yi)
    if k < 2:
        raise ValueError(f"A meta-analysis needs at least 2 studies, got {k}")
    if np.any(vi <= 0):
        raise ValueError("Sampling variances must be positive")

    w = 1 / vi
    fixed = np.sum(w * yi) / np.sum(w)
    q = float(np.sum(w * (yi - fixed) ** 2))
    tau2 = _tau2_dersimonian_laird(yi, vi, q)
    if method == "REML":
        tau2 = _tau2_reml(yi, vi, start=tau2)

    w_re = 1 / (vi + tau2)
    estimate = float(np.sum(w_re * yi) / np.sum(w_re))
    se = float(np.sqrt(1 / np.sum(w_re)))
    z_crit = stats.norm.ppf(1 - (1 - conf_level) / 2)
    z = estimate / se
    # tau2 over tau2 plus the typical within-study variance; equals (Q - df) / Q for DL
    typical_vi = (k - 1) / _dl_scaling(vi)
    i2 = 100 * tau2 / (tau2 + typical_vi)

    return MetaAnalysisResult(
        estimate=estimate,
        se=se,
        ci_lower=estimate - z_crit * se,
        ci_upper=estimate + z_crit * se,
        z=float(z),
        p=float(2 * stats.norm.sf(abs(z))),
        tau2=float(tau2),
        i2=float(i2),
        q=q,
        k=k,
    )
