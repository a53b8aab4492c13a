"""
Data generators for MCSim experiments.

Every generator is a pure function of its parameters and an explicit
``numpy.random.Generator`` (``rng``) and returns a pandas DataFrame:

- two-group parametric draws (normal or skew-normal)
- single-group draws with optional truncation to a bounded range
- careful/careless respondent mixtures
- pre/post paired scores
- bivariate normal pairs and range restriction / pre-selection
- linear path models written in lavaan-like syntax

Degenerate parameters (negative SDs, proportions outside [0, 1], too few
observations) raise ``ValueError``.
"""

from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from scipy import stats

from ..utils.parsers import _parse_path_model
from ..utils.upload_data_utils import normalize_population
from ..utils.validators import ConfigurationError, _validate_population

CONDITION_LEVELS = ["intervention", "control"]
RESPONDENT_LEVELS = ["careful", "careless"]


def _default_rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


def _check_n(n, name: str = "n", minimum: int = 2) -> int:
    """Sample sizes must be whole numbers of at least *minimum*."""
    if isinstance(n, bool) or not isinstance(n, (int, np.integer, float, np.floating)):
        raise ValueError(f"{name} must be a number, got {type(n).__name__}")
    if float(n) != int(n):
        raise ValueError(f"{name} must be a whole number, got {n}")
    if int(n) < minimum:
        raise ValueError(f"{name} must be at least {minimum}, got {n}")
    return int(n)


def _check_sd(sd, name: str) -> float:
    if sd < 0:
        raise ValueError(f"{name} must be non-negative, got {sd}")
    return float(sd)


def _check_proportion(value, name: str) -> float:
    if not 0 <= value <= 1:
        raise ValueError(f"{name} must be between 0 and 1, got {value}")
    return float(value)


def _check_bounds(lower, upper):
    if lower is not None and upper is not None and lower > upper:
        raise ValueError(f"lower ({lower}) must not exceed upper ({upper})")


def _draw(n: int, location: float, scale: float, skew: float, rng: np.random.Generator) -> np.ndarray:
    """Normal draws, or skew-normal draws when *skew* is non-zero."""
    if skew == 0:
        return rng.normal(loc=location, scale=scale, size=n)
    return stats.skewnorm.rvs(a=skew, loc=location, scale=scale, size=n, random_state=rng)


def _condition_column(n_control: int, n_intervention: int) -> pd.Categorical:
    # intervention is the first level so positive differences mean intervention > control
    labels = ["control"] * n_control + ["intervention"] * n_intervention
    return pd.Categorical(labels, categories=CONDITION_LEVELS)


# =========================================================================
# Two groups
# =========================================================================


def generate_two_groups(
    n_per_condition: int,
    mean_control: float,
    mean_intervention: float,
    sd_control: float,
    sd_intervention: float,
    skew_control: float = 0.0,
    skew_intervention: float = 0.0,
    rng: Optional[np.random.Generator] = None,
) -> pd.DataFrame:
    """Draw control and intervention scores from independent distributions.

    With zero skew scores are normal with the given mean and SD. With a
    non-zero skew they are skew-normal with the mean and SD used as the
    location and scale parameters.

    Returns:
        Long DataFrame with ``condition`` (categorical; levels
        intervention, control) and ``score``. Control rows come first.
    """
    rng = _default_rng(rng)
    n = _check_n(n_per_condition, "n_per_condition")
    sd_control = _check_sd(sd_control, "sd_control")
    sd_intervention = _check_sd(sd_intervention, "sd_intervention")

    control = _draw(n, mean_control, sd_control, skew_control, rng)
    intervention = _draw(n, mean_intervention, sd_intervention, skew_intervention, rng)

    return pd.DataFrame(
        {
            "condition": _condition_column(n, n),
            "score": np.concatenate([control, intervention]),
        }
    )


def generate_two_groups_random_n(
    n_minimum: int,
    n_maximum: int,
    mean_control: float,
    mean_intervention: float,
    sd_control: float,
    sd_intervention: float,
    rng: Optional[np.random.Generator] = None,
) -> pd.DataFrame:
    """Two groups whose per-condition size is drawn uniformly between
    *n_minimum* and *n_maximum* (truncated to a whole number), so that each
    iteration looks like a different study."""
    rng = _default_rng(rng)
    _check_n(n_minimum, "n_minimum")
    _check_n(n_maximum, "n_maximum")
    if n_minimum > n_maximum:
        raise ValueError(f"n_minimum ({n_minimum}) must not exceed n_maximum ({n_maximum})")

    n_per_condition = int(rng.uniform(n_minimum, n_maximum))
    return generate_two_groups(
        n_per_condition=max(n_per_condition, 2),
        mean_control=mean_control,
        mean_intervention=mean_intervention,
        sd_control=sd_control,
        sd_intervention=sd_intervention,
        rng=rng,
    )


# =========================================================================
# Single group
# =========================================================================


def _draw_truncated(
    n: int,
    location: float,
    scale: float,
    skew: float,
    lower: Optional[float],
    upper: Optional[float],
    rng: np.random.Generator,
) -> np.ndarray:
    """Inverse-CDF draws from the (skew-)normal restricted to ``[lower, upper]``."""
    dist = stats.norm(loc=location, scale=scale) if skew == 0 else stats.skewnorm(a=skew, loc=location, scale=scale)
    cdf_lower = 0.0 if lower is None else float(dist.cdf(lower))
    cdf_upper = 1.0 if upper is None else float(dist.cdf(upper))
    if cdf_upper <= cdf_lower:
        raise ValueError(f"No probability mass between lower ({lower}) and upper ({upper})")
    score = dist.ppf(rng.uniform(cdf_lower, cdf_upper, size=n))
    # ppf can land a hair outside the bounds in the far tails
    return np.clip(score, lower, upper)


def generate_single_group(
    n: int,
    mean: float,
    sd: float,
    skew: float = 0.0,
    lower: Optional[float] = None,
    upper: Optional[float] = None,
    rng: Optional[np.random.Generator] = None,
    mode: str = "truncate",
) -> pd.DataFrame:
    """Draw one group of scores, optionally bounded to ``[lower, upper]``.

    Args:
        n: Group size.
        mean: Location of the (skew-)normal.
        sd: Scale of the (skew-)normal.
        skew: Skew-normal shape; 0 gives a normal.
        lower: Lower bound, or ``None``.
        upper: Upper bound, or ``None``.
        rng: Random generator.
        mode: ``"truncate"`` (default) draws from the distribution restricted
            to the bounds, so no values sit exactly on them. ``"clip"`` moves
            out-of-range draws onto the nearest bound, the way responses pile
            up at the ends of a rating scale.
    """
    if mode not in ("truncate", "clip"):
        raise ValueError(f"mode must be 'truncate' or 'clip', got '{mode}'")
    rng = _default_rng(rng)
    n = _check_n(n)
    sd = _check_sd(sd, "sd")
    _check_bounds(lower, upper)

    bounded = lower is not None or upper is not None
    if bounded and mode == "truncate" and sd > 0:
        score = _draw_truncated(n, mean, sd, skew, lower, upper, rng)
    else:
        score = _draw(n, mean, sd, skew, rng)
        if bounded:
            score = np.clip(score, lower, upper)
    return pd.DataFrame({"score": score})


# =========================================================================
# Careless responding
# =========================================================================


def generate_careless_mixture(
    n: int,
    proportion_careless: float,
    rho: float,
    mean: float = 4.0,
    sd: float = 1.0,
    response_min: float = 1.0,
    response_max: float = 7.0,
    rng: Optional[np.random.Generator] = None,
) -> pd.DataFrame:
    """Mix careful respondents with careless ones.

    Careful respondents answer two scales whose true correlation is *rho*
    (bivariate normal); careless respondents pick uniformly at random
    within the response range on both scales, independently.

    Returns:
        DataFrame with ``x``, ``y`` and ``respondent`` (careful first,
        then careless).
    """
    rng = _default_rng(rng)
    n = _check_n(n)
    proportion_careless = _check_proportion(proportion_careless, "proportion_careless")
    sd = _check_sd(sd, "sd")
    if not -1 <= rho <= 1:
        raise ValueError(f"rho must be between -1 and 1, got {rho}")
    if response_min >= response_max:
        raise ValueError("response_min must be below response_max")

    n_careless = int(round(n * proportion_careless))
    n_careful = n - n_careless

    careful = generate_bivariate_normal(n_careful, rho, mean, mean, sd, sd, rng=rng) if n_careful else None
    careless_x = rng.uniform(response_min, response_max, size=n_careless)
    careless_y = rng.uniform(response_min, response_max, size=n_careless)

    x = np.concatenate([careful["x"].to_numpy() if careful is not None else np.empty(0), careless_x])
    y = np.concatenate([careful["y"].to_numpy() if careful is not None else np.empty(0), careless_y])
    respondent = pd.Categorical(["careful"] * n_careful + ["careless"] * n_careless, categories=RESPONDENT_LEVELS)

    return pd.DataFrame({"x": x, "y": y, "respondent": respondent})


# =========================================================================
# Paired scores
# =========================================================================


def generate_pre_post(
    n: int,
    mean_pre: float,
    sd_pre: float,
    mean_change: float,
    sd_change: float = 0.0,
    rng: Optional[np.random.Generator] = None,
) -> pd.DataFrame:
    """Baseline scores plus a follow-up derived from them.

    ``post = pre + mean_change + noise`` with ``noise ~ N(0, sd_change)``;
    with ``sd_change == 0`` the change is the same for everyone.

    Returns:
        Wide DataFrame with ``id``, ``pre`` and ``post``.
    """
    rng = _default_rng(rng)
    n = _check_n(n)
    sd_pre = _check_sd(sd_pre, "sd_pre")
    sd_change = _check_sd(sd_change, "sd_change")

    pre = rng.normal(mean_pre, sd_pre, size=n)
    noise = rng.normal(0.0, sd_change, size=n) if sd_change > 0 else np.zeros(n)
    post = pre + mean_change + noise
    return pd.DataFrame({"id": np.arange(1, n + 1), "pre": pre, "post": post})


# =========================================================================
# Correlated pairs and range restriction
# =========================================================================


def generate_bivariate_normal(
    n: int,
    rho: float,
    mean_x: float = 0.0,
    mean_y: float = 0.0,
    sd_x: float = 1.0,
    sd_y: float = 1.0,
    rng: Optional[np.random.Generator] = None,
) -> pd.DataFrame:
    """Pairs ``(x, y)`` from a bivariate normal with correlation *rho*."""
    rng = _default_rng(rng)
    n = _check_n(n, minimum=1)
    if not -1 <= rho <= 1:
        raise ValueError(f"rho must be between -1 and 1, got {rho}")
    sd_x = _check_sd(sd_x, "sd_x")
    sd_y = _check_sd(sd_y, "sd_y")

    cov = np.array(
        [
            [sd_x**2, rho * sd_x * sd_y],
            [rho * sd_x * sd_y, sd_y**2],
        ]
    )
    xy = rng.multivariate_normal([mean_x, mean_y], cov, size=n, method="cholesky" if abs(rho) < 1 else "svd")
    return pd.DataFrame({"x": xy[:, 0], "y": xy[:, 1]})


def restrict_range(
    data: pd.DataFrame,
    column: str,
    lower: Optional[float] = None,
    upper: Optional[float] = None,
) -> pd.DataFrame:
    """Keep rows whose *column* lies within ``[lower, upper]`` (inclusive;
    ``None`` leaves that side open)."""
    _check_bounds(lower, upper)
    if column not in data.columns:
        raise ConfigurationError(f"Column '{column}' not found. Available: {', '.join(map(str, data.columns))}")

    keep = np.ones(len(data), dtype=bool)
    values = data[column].to_numpy()
    if lower is not None:
        keep &= values >= lower
    if upper is not None:
        keep &= values <= upper
    return data.loc[keep].reset_index(drop=True)


def subsample(
    data: pd.DataFrame,
    n: int,
    rng: Optional[np.random.Generator] = None,
    replace: bool = False,
) -> pd.DataFrame:
    """Draw *n* rows without replacement.

    Raises:
        ConfigurationError: If *n* exceeds the available rows.
    """
    rng = _default_rng(rng)
    n = _check_n(n, minimum=1)
    if not replace:
        _validate_population(len(data), n, "the filter").raise_if_invalid()
    idx = rng.choice(len(data), size=n, replace=replace)
    return data.iloc[np.sort(idx)].reset_index(drop=True)


def generate_preselected_two_groups(
    n_per_condition: int,
    mean_difference: float,
    lower: Optional[float] = None,
    upper: Optional[float] = None,
    trait_loading: float = 0.8,
    population_size: int = 10000,
    rng: Optional[np.random.Generator] = None,
) -> pd.DataFrame:
    """Two groups sampled from a pre-selected (range-restricted) population.

    Each member of a synthetic population has a standard-normal ``trait``
    and a ``score = trait_loading * trait + noise`` (unit variance within a
    condition) plus *mean_difference* in the intervention condition. Only
    members with ``lower <= trait <= upper`` are eligible, then
    *n_per_condition* are drawn per condition. Selection leaves the raw
    mean difference intact but shrinks the within-group SD.

    Raises:
        ConfigurationError: When fewer eligible members remain in a
            condition than *n_per_condition*.
    """
    rng = _default_rng(rng)
    n = _check_n(n_per_condition, "n_per_condition")
    population_size = _check_n(population_size, "population_size")
    if not 0 <= trait_loading <= 1:
        raise ValueError(f"trait_loading must be between 0 and 1, got {trait_loading}")
    _check_bounds(lower, upper)

    half = population_size // 2
    trait = rng.standard_normal(2 * half)
    noise = rng.normal(0.0, np.sqrt(1.0 - trait_loading**2), size=2 * half)
    condition = _condition_column(half, half)
    score = trait_loading * trait + noise + mean_difference * (np.asarray(condition) == "intervention")
    population = pd.DataFrame({"condition": condition, "score": score, "trait": trait})

    eligible = restrict_range(population, "trait", lower, upper)
    parts = []
    for level in ("control", "intervention"):
        group = eligible[eligible["condition"] == level]
        _validate_population(len(group), n, f"the pre-selection in the {level} condition").raise_if_invalid()
        parts.append(subsample(group, n, rng))
    return pd.concat(parts, ignore_index=True)


def generate_restricted_population_sample(
    population,
    column: str,
    n: int,
    lower: Optional[float] = None,
    upper: Optional[float] = None,
    rng: Optional[np.random.Generator] = None,
) -> pd.DataFrame:
    """Restrict a real (or pre-generated) population on *column* and draw
    *n* rows from what survives.

    *population* may be a DataFrame, a dict of columns or an array (see
    ``normalize_population``); bind it with ``functools.partial`` when
    using this as an experiment generator.
    """
    frame = normalize_population(population)
    restricted = restrict_range(frame, column, lower, upper)
    return subsample(restricted, n, rng)


# =========================================================================
# Path models
# =========================================================================


def _generation_order(regressions) -> List[str]:
    """Variables in an order where every predictor precedes its outcome."""
    parents: Dict[str, List[str]] = {}
    order_seen: List[str] = []
    for reg in regressions:
        for name in (reg.outcome, *reg.predictors):
            if name not in order_seen:
                order_seen.append(name)
        parents.setdefault(reg.outcome, []).extend(reg.predictors)

    ordered: List[str] = []
    state: Dict[str, int] = {}

    def visit(name: str, path: List[str]):
        if state.get(name) == 2:
            return
        if state.get(name) == 1:
            cycle = " -> ".join(path + [name])
            raise ConfigurationError(f"Path model is not recursive (cycle: {cycle})")
        state[name] = 1
        for parent in parents.get(name, []):
            visit(parent, path + [name])
        state[name] = 2
        ordered.append(name)

    for name in order_seen:
        visit(name, [])
    return ordered


def simulate_path_model(
    model: str,
    n: int,
    rng: Optional[np.random.Generator] = None,
) -> pd.DataFrame:
    """Simulate data from a linear recursive path model.

    The model uses lavaan-like syntax with fixed coefficients, e.g.
    ``"M ~ 0.5*X + 0.5*Y; Y ~ 0.0*X"``. Exogenous variables are standard
    normal and every endogenous variable receives a standard-normal residual.

    Raises:
        ConfigurationError: If the model has a cycle or a coefficient is
            not fixed.
    """
    rng = _default_rng(rng)
    n = _check_n(n)
    regressions = _parse_path_model(model)
    by_outcome = {reg.outcome: reg for reg in regressions}

    for reg in regressions:
        free = [p for p, c in zip(reg.predictors, reg.coefficients) if c is None]
        if free:
            raise ConfigurationError(
                f"Simulation model needs fixed coefficients; '{reg.outcome} ~ {' + '.join(free)}' has none"
            )

    data: Dict[str, np.ndarray] = {}
    for name in _generation_order(regressions):
        values = rng.standard_normal(n)
        reg = by_outcome.get(name)
        if reg is not None:
            for predictor, coef in zip(reg.predictors, reg.coefficients):
                values = values + coef * data[predictor]
        data[name] = values

    columns = []
    for reg in regressions:
        for name in (*reg.predictors, reg.outcome):
            if name not in columns:
                columns.append(name)
    return pd.DataFrame({name: data[name] for name in sorted(columns)})
