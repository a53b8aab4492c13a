"""
Analyzers for MCSim experiments.

Each analyzer wraps exactly one statistical procedure from ``scipy.stats``
and returns a frozen result record. Records flatten to a ``{field: value}``
dict via ``to_dict()`` so that per-row results can be tabulated and
summarised across iterations.

Two-group analyzers expect the long layout produced by the two-group
generators: a ``condition`` column with levels ``intervention`` and
``control`` and a numeric ``score`` column. Differences are always
intervention minus control.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, Tuple

import numpy as np
import pandas as pd
from scipy import stats

PARAMETRIC = "parametric"
NONPARAMETRIC = "nonparametric"

FLOAT_NEAR_ZERO = 1e-12


class _Record:
    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class TTestResult(_Record):
    """Mean difference with its confidence interval and t-test."""

    estimate: float
    ci_lower: float
    ci_upper: float
    statistic: float
    df: float
    p: float


@dataclass(frozen=True)
class CohensDResult(_Record):
    """Standardized mean difference (pooled SD) with a normal-approximation
    confidence interval and the Welch p-value of the raw difference."""

    d: float
    ci_lower: float
    ci_upper: float
    se: float
    sd_pooled: float
    mean_difference: float
    total_n: int
    p: float


@dataclass(frozen=True)
class CorrelationResult(_Record):
    r: float
    ci_lower: float
    ci_upper: float
    p: float
    n_pairs: int


@dataclass(frozen=True)
class NormalityResult(_Record):
    statistic: float
    p: float
    n_observations: int


@dataclass(frozen=True)
class RankTestResult(_Record):
    statistic: float
    p: float


@dataclass(frozen=True)
class DispatchResult(_Record):
    """Outcome of the assumption-checked two-group comparison.

    Attributes:
        path: ``"parametric"`` when both groups passed the normality check,
            ``"nonparametric"`` when either failed.
        p: p-value of the test on the chosen path.
        p_parametric: Welch t-test p-value.
        p_nonparametric: Mann-Whitney p-value.
        p_normality_intervention: Shapiro-Wilk p-value, intervention group.
        p_normality_control: Shapiro-Wilk p-value, control group.
    """

    path: str
    p: float
    p_parametric: float
    p_nonparametric: float
    p_normality_intervention: float
    p_normality_control: float


# =========================================================================
# Helpers
# =========================================================================


def _split_groups(
    data: pd.DataFrame,
    group: str = "condition",
    value: str = "score",
) -> Tuple[np.ndarray, np.ndarray]:
    """Return ``(intervention, control)`` score arrays."""
    for column in (group, value):
        if column not in data.columns:
            raise ValueError(f"Column '{column}' not found in data")
    labels = data[group].astype(str).to_numpy()
    scores = data[value].to_numpy(dtype=float)
    intervention = scores[labels == "intervention"]
    control = scores[labels == "control"]
    if len(intervention) < 2 or len(control) < 2:
        raise ValueError(
            f"Each condition needs at least 2 observations, got intervention={len(intervention)}, "
            f"control={len(control)}"
        )
    return intervention, control


def _check_variable(values: np.ndarray, name: str, minimum: int = 2) -> np.ndarray:
    if len(values) < minimum:
        raise ValueError(f"'{name}' needs at least {minimum} observations, got {len(values)}")
    if np.ptp(values) <= FLOAT_NEAR_ZERO:
        raise ValueError(f"All '{name}' values are identical")
    return values


def _finite(value: float, what: str) -> float:
    if not np.isfinite(value):
        raise ValueError(f"{what} could not be computed (data are essentially constant)")
    return float(value)


# =========================================================================
# Mean differences
# =========================================================================


def analyze_independent_t_test(data: pd.DataFrame, var_equal: bool = False) -> TTestResult:
    """Independent-samples t-test (Welch unless *var_equal*), two-sided."""
    intervention, control = _split_groups(data)
    res = stats.ttest_ind(intervention, control, equal_var=var_equal)
    statistic = _finite(res.statistic, "t statistic")
    ci = res.confidence_interval(confidence_level=0.95)
    return TTestResult(
        estimate=float(np.mean(intervention) - np.mean(control)),
        ci_lower=float(ci.low),
        ci_upper=float(ci.high),
        statistic=statistic,
        df=float(res.df),
        p=float(res.pvalue),
    )


def analyze_cohens_d(data: pd.DataFrame, conf_level: float = 0.95) -> CohensDResult:
    """Cohen's d using the pooled SD.

    The standard error uses the large-sample approximation
    ``sqrt((n1 + n2) / (n1 * n2) + d**2 / (2 * (n1 + n2)))`` and the
    interval is ``d +/- z * se``. The reported ``se`` is recovered from the
    interval as ``(upper - lower) / (2 * 1.96)``, which is what a reader
    would back-calculate from a published 95% CI.
    """
    if not 0 < conf_level < 1:
        raise ValueError(f"conf_level must be between 0 and 1, got {conf_level}")
    intervention, control = _split_groups(data)
    n1, n2 = len(intervention), len(control)

    var1 = np.var(intervention, ddof=1)
    var2 = np.var(control, ddof=1)
    sd_pooled = float(np.sqrt(((n1 - 1) * var1 + (n2 - 1) * var2) / (n1 + n2 - 2)))
    if sd_pooled <= FLOAT_NEAR_ZERO:
        raise ValueError("Pooled SD is zero; Cohen's d is undefined")

    mean_difference = float(np.mean(intervention) - np.mean(control))
    d = mean_difference / sd_pooled
    se_d = np.sqrt((n1 + n2) / (n1 * n2) + d**2 / (2 * (n1 + n2)))
    z = stats.norm.ppf(1 - (1 - conf_level) / 2)
    lower, upper = d - z * se_d, d + z * se_d

    welch = stats.ttest_ind(intervention, control, equal_var=False)
    return CohensDResult(
        d=float(d),
        ci_lower=float(lower),
        ci_upper=float(upper),
        se=float((upper - lower) / (2 * 1.96)),
        sd_pooled=sd_pooled,
        mean_difference=mean_difference,
        total_n=n1 + n2,
        p=float(welch.pvalue),
    )


def analyze_paired_t_test(data: pd.DataFrame, before: str = "pre", after: str = "post") -> TTestResult:
    """Paired t-test of ``after - before``."""
    for column in (before, after):
        if column not in data.columns:
            raise ValueError(f"Column '{column}' not found in data")
    pre = data[before].to_numpy(dtype=float)
    post = data[after].to_numpy(dtype=float)
    _check_variable(post - pre, f"{after} - {before}")

    res = stats.ttest_rel(post, pre)
    ci = res.confidence_interval(confidence_level=0.95)
    return TTestResult(
        estimate=float(np.mean(post - pre)),
        ci_lower=float(ci.low),
        ci_upper=float(ci.high),
        statistic=_finite(res.statistic, "t statistic"),
        df=float(res.df),
        p=float(res.pvalue),
    )


# =========================================================================
# Correlation
# =========================================================================


def analyze_correlation(data: pd.DataFrame, x: str = "x", y: str = "y") -> CorrelationResult:
    """Pearson correlation with a Fisher-z 95% interval."""
    for column in (x, y):
        if column not in data.columns:
            raise ValueError(f"Column '{column}' not found in data")
    xv = _check_variable(data[x].to_numpy(dtype=float), x, minimum=4)
    yv = _check_variable(data[y].to_numpy(dtype=float), y, minimum=4)

    res = stats.pearsonr(xv, yv)
    ci = res.confidence_interval(confidence_level=0.95)
    return CorrelationResult(
        r=float(res.statistic),
        ci_lower=float(ci.low),
        ci_upper=float(ci.high),
        p=float(res.pvalue),
        n_pairs=len(xv),
    )


def correct_range_restriction(r: float, u: float, method: str = "simple") -> float:
    """Correct a correlation observed in a range-restricted sample.

    Args:
        r: Observed correlation in the restricted sample.
        u: Ratio of restricted to unrestricted SD of the selection variable
            (the square root of the post/pre variance ratio).
        method: ``"simple"`` divides *r* by *u*; ``"thorndike"`` applies
            Thorndike's Case II formula, which stays within [-1, 1].

    Returns:
        The corrected correlation.
    """
    if not -1 <= r <= 1:
        raise ValueError(f"r must be between -1 and 1, got {r}")
    if u <= 0:
        raise ValueError(f"u must be positive, got {u}")

    if method == "simple":
        return float(r / u)
    if method == "thorndike":
        ratio = 1.0 / u
        return float(r * ratio / np.sqrt(1 + r**2 * (ratio**2 - 1)))
    raise ValueError(f"Unknown correction method '{method}'. Use 'simple' or 'thorndike'")


# =========================================================================
# Distributional tests
# =========================================================================


def _column(data: pd.DataFrame, column: str) -> np.ndarray:
    if column not in data.columns:
        raise ValueError(f"Column '{column}' not found in data")
    return data[column].to_numpy(dtype=float)


def analyze_shapiro_wilk(data: pd.DataFrame, column: str = "score") -> NormalityResult:
    """Shapiro-Wilk normality test of one column."""
    values = _check_variable(_column(data, column), column, minimum=3)
    res = stats.shapiro(values)
    return NormalityResult(statistic=float(res.statistic), p=float(res.pvalue), n_observations=len(values))


def analyze_ks_test(data: pd.DataFrame, column: str = "score") -> NormalityResult:
    """One-sample Kolmogorov-Smirnov test against a normal distribution with
    the sample's own mean and SD."""
    values = _check_variable(_column(data, column), column)
    res = stats.kstest(values, "norm", args=(np.mean(values), np.std(values, ddof=1)))
    return NormalityResult(statistic=float(res.statistic), p=float(res.pvalue), n_observations=len(values))


def analyze_mann_whitney(data: pd.DataFrame) -> RankTestResult:
    """Two-sided Wilcoxon rank-sum (Mann-Whitney U) test; the statistic is
    U for the intervention group."""
    intervention, control = _split_groups(data)
    res = stats.mannwhitneyu(intervention, control, alternative="two-sided")
    return RankTestResult(statistic=float(res.statistic), p=float(res.pvalue))


def analyze_with_assumption_check(data: pd.DataFrame, alpha: float = 0.05) -> DispatchResult:
    """Choose between a t-test and a rank test by checking normality first.

    Both groups are tested with Shapiro-Wilk. If either p-value is strictly
    below *alpha* the nonparametric result is used, otherwise the parametric
    one. A normality p-value exactly equal to *alpha* counts as passing.
    """
    intervention, control = _split_groups(data)
    p_norm_i = analyze_shapiro_wilk(pd.DataFrame({"score": intervention})).p
    p_norm_c = analyze_shapiro_wilk(pd.DataFrame({"score": control})).p

    p_parametric = analyze_independent_t_test(data).p
    p_nonparametric = analyze_mann_whitney(data).p

    path = NONPARAMETRIC if (p_norm_i < alpha or p_norm_c < alpha) else PARAMETRIC
    return DispatchResult(
        path=path,
        p=p_nonparametric if path == NONPARAMETRIC else p_parametric,
        p_parametric=p_parametric,
        p_nonparametric=p_nonparametric,
        p_normality_intervention=p_norm_i,
        p_normality_control=p_norm_c,
    )
