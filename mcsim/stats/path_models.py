"""
Path model estimation for MCSim.

Fits a recursive linear path model one regression at a time with QR-based
OLS. For recursive models without latent variables this reproduces the
maximum-likelihood point estimates of a structural equation model; standard
errors use the ML residual variance (``SS_res / n``) and p-values come from
the normal distribution, as SEM software reports them.
"""

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from ..utils.parsers import _parse_path_model
from ..utils.validators import ConfigurationError
from .analysis import _Record

FLOAT_NEAR_ZERO = 1e-15


@dataclass(frozen=True)
class PathEstimate(_Record):
    """One regression path ``outcome ~ predictor``."""

    estimate: float
    se: float
    z: float
    p: float


def _ols_core(X: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    OLS coefficients and ML standard errors (intercept included, not returned).

    Args:
        X: (n, p) predictor matrix (no intercept)
        y: (n,) response vector

    Returns:
        (beta, se), each of length p

    Raises:
        ValueError: If the design matrix is rank deficient.
    """
    n, p = X.shape
    X_int = np.column_stack((np.ones(n), X))

    Q, R = np.linalg.qr(X_int)
    diag = np.abs(np.diag(R))
    if diag.min() <= FLOAT_NEAR_ZERO * max(diag.max(), 1.0) * n:
        raise ValueError("Singular design matrix: predictors are constant or collinear")

    beta_all = np.linalg.solve(R, Q.T @ y)
    residuals = y - X_int @ beta_all
    sigma2 = np.sum(residuals**2) / n

    # (X'X)^-1 = R^-1 R^-T, so var(b_i) = sigma2 * ||row i of R^-1||^2
    R_inv = np.linalg.solve(R, np.eye(p + 1))
    se_all = np.sqrt(sigma2 * np.sum(R_inv**2, axis=1))
    return beta_all[1:], se_all[1:]


def fit_path_model(data: pd.DataFrame, model: str) -> pd.DataFrame:
    """Estimate every regression path of *model*.

    Coefficient prefixes in *model* (``0.5*X``) are ignored: every listed
    path is estimated freely, so the model string used to simulate data can
    also be fitted.

    Returns:
        DataFrame with ``lhs``, ``op`` (``"~"``), ``rhs``, ``est``, ``se``,
        ``z`` and ``pvalue``, one row per path in model order.
    """
    regressions = _parse_path_model(model)
    missing = sorted(
        {name for reg in regressions for name in (reg.outcome, *reg.predictors)} - set(map(str, data.columns))
    )
    if missing:
        raise ConfigurationError(f"Model variable(s) not found in data: {', '.join(missing)}")

    rows: List[dict] = []
    for reg in regressions:
        y = data[reg.outcome].to_numpy(dtype=float)
        X = data[list(reg.predictors)].to_numpy(dtype=float)
        if len(y) <= X.shape[1] + 1:
            raise ValueError(f"Too few observations ({len(y)}) to fit '{reg.outcome} ~ {' + '.join(reg.predictors)}'")
        beta, se = _ols_core(X, y)
        for predictor, b, s in zip(reg.predictors, beta, se):
            z = b / s if s > FLOAT_NEAR_ZERO else np.inf * np.sign(b)
            rows.append(
                {
                    "lhs": reg.outcome,
                    "op": "~",
                    "rhs": predictor,
                    "est": float(b),
                    "se": float(s),
                    "z": float(z),
                    "pvalue": float(2 * stats.norm.sf(abs(z))),
                }
            )
    return pd.DataFrame(rows, columns=["lhs", "op", "rhs", "est", "se", "z", "pvalue"])


def _parse_effect(effect: str) -> Tuple[str, str]:
    parts = [p.strip() for p in effect.split("~")]
    if len(parts) != 2 or not all(parts):
        raise ConfigurationError(f"Effect must look like 'Y~X', got '{effect}'")
    return parts[0], parts[1]


def analyze_path_model(data: pd.DataFrame, model: str, effect: str = "Y~X") -> PathEstimate:
    """Fit *model* and return the estimate of one path.

    Args:
        data: Observed variables, one column each.
        model: Regressions in lavaan-like syntax, e.g. ``"Y ~ X + M"``.
        effect: The path to report, written ``"outcome~predictor"``.

    Raises:
        ConfigurationError: If *effect* is not a path of *model*.
    """
    lhs, rhs = _parse_effect(effect)
    estimates = fit_path_model(data, model)
    match = estimates[(estimates["lhs"] == lhs) & (estimates["rhs"] == rhs)]
    if match.empty:
        raise ConfigurationError(f"Model '{model}' has no path {lhs}~{rhs}")
    row = match.iloc[0]
    return PathEstimate(estimate=row["est"], se=row["se"], z=row["z"], p=row["pvalue"])
