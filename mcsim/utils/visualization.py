"""
Visualization utilities for MCSim.

This module provides the multiverse plot, diagnostic plots of a single
simulated dataset, outcome-by-condition curves, forest plots and binomial
likelihood plots. Every function returns the matplotlib figure.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .formatters import _format_interval
from .validators import ConfigurationError

FOOTER = "made with MCSim - Monte Carlo simulation for statistical inference"

__all__ = []


def _pyplot():
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        raise ImportError("matplotlib required for plotting: pip install matplotlib") from None
    return plt


def _finish(plt, fig, show: bool):
    fig.text(0.5, 0.01, FOOTER, ha="center", fontsize=9, color="#888888")
    plt.tight_layout(rect=(0, 0.03, 1, 1))
    if show:
        plt.show()
    return fig


def _require_columns(data: pd.DataFrame, columns: Sequence[Optional[str]]):
    missing = [c for c in columns if c is not None and c not in data.columns]
    if missing:
        raise ConfigurationError(f"Column(s) not found: {', '.join(missing)}")


# =========================================================================
# Multiverse plot
# =========================================================================


def multiverse_layout(
    summary: pd.DataFrame,
    outcome: str,
    lower: Optional[str] = None,
    upper: Optional[str] = None,
    rank: Optional[str] = None,
    conditions: Optional[List[str]] = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Compute the shared rank positions of a multiverse plot.

    Rows are ordered by the *rank* column when given, otherwise by the
    outcome ascending. The sort is stable, so ties keep their original row
    order.

    Args:
        summary: One row per condition combination.
        outcome: Outcome column plotted in the upper panel.
        lower: Optional lower interval bound column.
        upper: Optional upper interval bound column.
        rank: Optional column defining the order.
        conditions: Condition columns for the lower panel. Defaults to every
            column that is not the outcome, a bound, the rank or
            ``n_iterations``.

    Returns:
        Tuple ``(outcome_frame, condition_frame)``. *outcome_frame* has one
        row per summary row with ``row`` (original position), ``rank``
        (1..m), ``outcome`` and, when given, ``lower``/``upper``.
        *condition_frame* is long: one row per condition column and summary
        row with ``row``, ``rank``, ``condition`` and ``value``.
    """
    _require_columns(summary, [outcome, lower, upper, rank])
    reserved = {c for c in (outcome, lower, upper, rank) if c is not None}
    if conditions is None:
        conditions = [c for c in summary.columns if c not in reserved and c != "n_iterations"]
    else:
        _require_columns(summary, conditions)

    frame = summary.reset_index(drop=True)
    m = len(frame)
    order = frame.sort_values(rank or outcome, kind="stable").index.to_numpy()
    ranks = np.empty(m, dtype=int)
    ranks[order] = np.arange(1, m + 1)

    outcome_frame = pd.DataFrame({"row": np.arange(m), "rank": ranks, "outcome": frame[outcome].to_numpy()})
    if lower is not None:
        outcome_frame["lower"] = frame[lower].to_numpy()
    if upper is not None:
        outcome_frame["upper"] = frame[upper].to_numpy()
    outcome_frame = outcome_frame.sort_values("rank").reset_index(drop=True)

    parts = [
        pd.DataFrame(
            {
                "row": np.arange(m),
                "rank": ranks,
                "condition": column,
                "value": frame[column].astype(str).to_numpy(),
            }
        ).sort_values("rank")
        for column in conditions
    ]
    if parts:
        condition_frame = pd.concat(parts, ignore_index=True)
    else:
        condition_frame = pd.DataFrame(columns=["row", "rank", "condition", "value"])
    return outcome_frame, condition_frame


def plot_multiverse(
    summary: pd.DataFrame,
    outcome: str,
    lower: Optional[str] = None,
    upper: Optional[str] = None,
    rank: Optional[str] = None,
    conditions: Optional[List[str]] = None,
    cutoff: Optional[float] = None,
    title: str = "Multiverse",
    outcome_label: Optional[str] = None,
    show: bool = True,
):
    """Two-panel multiverse plot.

    The upper panel shows the outcome (with interval bars when both bounds
    are given) at each rank; the lower panel shows, for every condition
    column, which value produced the outcome at the same rank.

    Args:
        summary: One row per condition combination.
        outcome: Outcome column.
        lower: Optional lower bound column.
        upper: Optional upper bound column.
        rank: Optional ordering column (default: outcome ascending).
        conditions: Condition columns (see ``multiverse_layout``).
        cutoff: Optional horizontal reference line in the upper panel.
        title: Figure title.
        outcome_label: Y-axis label of the upper panel.
        show: Call ``plt.show()``.

    Returns:
        The matplotlib figure.

    Raises:
        ImportError: If ``matplotlib`` is not installed.
    """
    outcome_frame, condition_frame = multiverse_layout(summary, outcome, lower, upper, rank, conditions)
    plt = _pyplot()

    condition_names = list(dict.fromkeys(condition_frame["condition"]))
    levels: List[Tuple[str, str]] = []
    for name in condition_names:
        values = condition_frame.loc[condition_frame["condition"] == name, "value"]
        levels.extend((name, v) for v in sorted(values.unique()))
    level_pos = {level: i for i, level in enumerate(reversed(levels))}

    fig, (ax_top, ax_bottom) = plt.subplots(
        2,
        1,
        sharex=True,
        figsize=(12, 6 + 0.25 * len(levels)),
        gridspec_kw={"height_ratios": [2, max(1.0, 0.3 * len(levels))]},
    )

    x = outcome_frame["rank"].to_numpy()
    y = outcome_frame["outcome"].to_numpy(dtype=float)
    if lower is not None and upper is not None:
        yerr = np.vstack(
            [
                y - outcome_frame["lower"].to_numpy(dtype=float),
                outcome_frame["upper"].to_numpy(dtype=float) - y,
            ]
        )
        ax_top.errorbar(x, y, yerr=yerr, fmt="o", color="#333333", ecolor="#999999", markersize=4, capsize=0)
    else:
        ax_top.plot(x, y, "o", color="#333333", markersize=4)

    if cutoff is not None:
        ax_top.axhline(y=cutoff, color="red", linestyle="--", linewidth=1.5)

    ax_top.set_title(title, fontsize=14, fontweight="bold")
    ax_top.set_ylabel(outcome_label or outcome, fontsize=12)
    ax_top.grid(True, alpha=0.3)

    colors = plt.get_cmap("Set1")(np.linspace(0, 1, max(len(condition_names), 1)))
    for i, name in enumerate(condition_names):
        sub = condition_frame[condition_frame["condition"] == name]
        ax_bottom.plot(
            sub["rank"].to_numpy(),
            [level_pos[(name, v)] for v in sub["value"]],
            "s",
            color=colors[i],
            markersize=3,
        )

    ordered = sorted(level_pos.items(), key=lambda item: item[1])
    ax_bottom.set_yticks([pos for _, pos in ordered])
    ax_bottom.set_yticklabels([f"{name}: {value}" for (name, value), _ in ordered], fontsize=9)
    ax_bottom.set_xlabel("Rank", fontsize=12)
    ax_bottom.grid(True, axis="x", alpha=0.3)

    return _finish(plt, fig, show)


# =========================================================================
# Single-iteration diagnostics
# =========================================================================


def plot_group_distributions(
    data: pd.DataFrame,
    value: str = "score",
    group: str = "condition",
    bins: int = 30,
    title: str = "Distribution by group",
    show: bool = True,
):
    """Overlaid histograms of one generated dataset, one per group."""
    _require_columns(data, [value, group])
    plt = _pyplot()

    groups = list(pd.unique(data[group]))
    fig, ax = plt.subplots(figsize=(10, 6))
    colors = plt.get_cmap("Set1")(np.linspace(0, 1, max(len(groups), 1)))
    for i, level in enumerate(groups):
        scores = data.loc[data[group] == level, value].to_numpy(dtype=float)
        ax.hist(scores, bins=bins, alpha=0.5, color=colors[i], label=str(level))
        ax.axvline(np.mean(scores), color=colors[i], linestyle="--", linewidth=1.5)

    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.set_xlabel(value, fontsize=12)
    ax.set_ylabel("Count", fontsize=12)
    ax.legend(title=group)
    return _finish(plt, fig, show)


def plot_scatter(
    data: pd.DataFrame,
    x: str = "x",
    y: str = "y",
    hue: Optional[str] = None,
    title: str = "Scatter plot",
    show: bool = True,
):
    """Scatter plot of one generated dataset, optionally coloured by *hue*."""
    _require_columns(data, [x, y, hue])
    plt = _pyplot()

    fig, ax = plt.subplots(figsize=(8, 8))
    if hue is None:
        ax.scatter(data[x], data[y], s=10, alpha=0.5, color="#333333")
    else:
        levels = list(pd.unique(data[hue]))
        colors = plt.get_cmap("Set1")(np.linspace(0, 1, max(len(levels), 1)))
        for i, level in enumerate(levels):
            sub = data[data[hue] == level]
            ax.scatter(sub[x], sub[y], s=10, alpha=0.5, color=colors[i], label=str(level))
        ax.legend(title=hue)

    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.set_xlabel(x, fontsize=12)
    ax.set_ylabel(y, fontsize=12)
    ax.grid(True, alpha=0.3)
    return _finish(plt, fig, show)


# =========================================================================
# Outcome curves
# =========================================================================


def plot_outcome_curves(
    summary: pd.DataFrame,
    x: str,
    outcome: str,
    line: Optional[str] = None,
    reference: Optional[float] = None,
    title: str = "Simulation results",
    ylabel: Optional[str] = None,
    show: bool = True,
):
    """Outcome against one parameter, one line per value of another.

    Draws a dashed horizontal line at *reference* (e.g. alpha for a
    false-positive rate or 0.8 for power).

    Raises:
        ConfigurationError: If several summary rows share the same
            ``(x, line)`` values; filter the summary first.
    """
    _require_columns(summary, [x, outcome, line])
    keys = [x] if line is None else [x, line]
    if summary.duplicated(subset=keys).any():
        raise ConfigurationError(
            f"Several rows share the same {' and '.join(keys)}; filter the summary to one condition per point"
        )
    plt = _pyplot()

    fig, ax = plt.subplots(figsize=(12, 8))
    if line is None:
        groups = [(None, summary)]
    else:
        groups = [(level, summary[summary[line] == level]) for level in pd.unique(summary[line])]
    colors = plt.get_cmap("Set1")(np.linspace(0, 1, max(len(groups), 1)))

    for i, (level, sub) in enumerate(groups):
        sub = sub.sort_values(x)
        label = None if level is None else f"{line} = {level}"
        ax.plot(sub[x], sub[outcome], "o-", color=colors[i], label=label, linewidth=2, markersize=4)

    if reference is not None:
        ax.axhline(y=reference, color="red", linestyle="--", linewidth=2, label=f"Reference ({reference})")

    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.set_xlabel(x, fontsize=12)
    ax.set_ylabel(ylabel or outcome, fontsize=12)
    ax.grid(True, alpha=0.3)
    if line is not None or reference is not None:
        ax.legend(bbox_to_anchor=(1.05, 1), loc="upper left")
    return _finish(plt, fig, show)


# =========================================================================
# Meta-analysis and likelihood
# =========================================================================


def plot_forest(
    studies: pd.DataFrame,
    pooled=None,
    labels: Optional[str] = None,
    title: str = "Forest plot",
    show: bool = True,
):
    """Forest plot of study effects (``yi``) with 95% intervals from ``vi``.

    Args:
        studies: DataFrame with ``yi`` and ``vi``.
        pooled: Optional ``MetaAnalysisResult`` drawn as a diamond.
        labels: Optional column used for study labels.
        title: Figure title.
        show: Call ``plt.show()``.
    """
    _require_columns(studies, ["yi", "vi", labels])
    plt = _pyplot()

    yi = studies["yi"].to_numpy(dtype=float)
    se = np.sqrt(studies["vi"].to_numpy(dtype=float))
    k = len(yi)
    if k == 0:
        raise ValueError("No studies to plot")
    names = studies[labels].astype(str).tolist() if labels else [f"Study {i + 1}" for i in range(k)]
    weights = 1 / se**2
    sizes = 20 + 80 * weights / weights.max()
    ypos = np.arange(k, 0, -1) + 1

    fig, ax = plt.subplots(figsize=(10, 2 + 0.3 * k))
    ax.hlines(ypos, yi - 1.96 * se, yi + 1.96 * se, color="#333333", linewidth=1)
    ax.scatter(yi, ypos, s=sizes, marker="s", color="#333333", zorder=3)

    ticks, ticklabels = list(ypos), names
    if pooled is not None:
        diamond_x = [pooled.ci_lower, pooled.estimate, pooled.ci_upper, pooled.estimate]
        diamond_y = [0.0, 0.3, 0.0, -0.3]
        ax.fill(diamond_x, diamond_y, color="#b2182b")
        ticks = ticks + [0]
        ticklabels = ticklabels + [f"RE model ({_format_interval(pooled.estimate, pooled.ci_lower, pooled.ci_upper)})"]

    ax.axvline(0, color="gray", linestyle=":", linewidth=1)
    ax.set_yticks(ticks)
    ax.set_yticklabels(ticklabels, fontsize=8)
    ax.set_xlabel("Standardized mean difference", fontsize=12)
    ax.set_title(title, fontsize=14, fontweight="bold")
    return _finish(plt, fig, show)


def plot_likelihood(
    n_studies: int,
    n_significant: int,
    p_h0: float = 0.05,
    p_h1: float = 0.80,
    show: bool = True,
):
    """Binomial likelihood of the observed number of significant studies,
    with the likelihoods under H0 and H1 marked and the ratio in the title."""
    from ..stats.likelihood import likelihood_curve, mixed_results_likelihood

    result = mixed_results_likelihood(n_studies, n_significant, p_h0, p_h1)
    curve = likelihood_curve(n_studies, n_significant)
    plt = _pyplot()

    observed = result.observed_proportion
    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(curve["theta"], curve["likelihood"], color="black", linewidth=2)
    ax.plot([p_h0, p_h1], [result.likelihood_h0, result.likelihood_h1], "o", color="black", markerfacecolor="white")
    ax.hlines(result.likelihood_h0, min(p_h0, observed), max(p_h0, observed), linestyles="--", linewidth=2)
    ax.hlines(result.likelihood_h1, min(p_h1, observed), max(p_h1, observed), linestyles="--", linewidth=2)
    ax.vlines(observed, result.likelihood_h0, result.likelihood_h1, linewidth=2)
    for p in (p_h0, p_h1):
        ax.axvline(p, color="gray", linestyle=":", linewidth=2)

    ax.set_xlabel("p", fontsize=12, fontstyle="italic")
    ax.set_ylabel("Likelihood", fontsize=12)
    ax.set_title(f"Likelihood Ratio: {result.likelihood_ratio}", fontsize=14, fontweight="bold")
    return _finish(plt, fig, show)
