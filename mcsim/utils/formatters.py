"""
Table formatting for MCSim summaries.

Renders summary DataFrames as plain-text tables (for console output) or
HTML (for notebooks and rendered lesson documents).
"""

from typing import Optional

import numpy as np
import pandas as pd

_STYLES = ("text", "html")


def _round_numeric(summary: pd.DataFrame, digits: int) -> pd.DataFrame:
    out = summary.copy()
    for column in out.columns:
        if pd.api.types.is_float_dtype(out[column]):
            out[column] = out[column].round(digits)
    return out


def format_table(summary: pd.DataFrame, digits: int = 3, style: str = "text") -> str:
    """Render a summary table.

    Args:
        summary: Summary DataFrame (e.g. from ``ExperimentResults.summarize``).
        digits: Decimal places for float columns.
        style: ``"text"`` for an aligned plain-text table, ``"html"`` for
            an HTML ``<table>``.

    Returns:
        The rendered table.

    Raises:
        ValueError: If *style* is unknown or *digits* is negative.
    """
    if style not in _STYLES:
        raise ValueError(f"style must be one of {', '.join(_STYLES)}, got '{style}'")
    if digits < 0:
        raise ValueError(f"digits must be non-negative, got {digits}")

    rounded = _round_numeric(summary, digits)
    float_format = f"{{:.{digits}f}}".format

    if style == "html":
        return rounded.to_html(index=False, float_format=float_format, na_rep="NA", border=0)
    if rounded.empty:
        return "(no rows)"
    return rounded.to_string(index=False, float_format=float_format, na_rep="NA")


def _format_results(summary: pd.DataFrame, title: str, digits: int = 3, note: Optional[str] = None) -> str:
    """Console report: banner, table and an optional footnote."""
    lines = [
        f"\n{'=' * 80}",
        title.upper(),
        f"{'=' * 80}",
        format_table(summary, digits=digits, style="text"),
    ]
    if note:
        lines.append(f"\n{note}")
    return "\n".join(lines)


def _format_failures(failure_reasons: dict, n_failed: int, n_rows: int) -> str:
    """Summarise failed rows by reason, most frequent first."""
    if not n_failed:
        return "No failed rows"
    lines = [f"Failed rows: {n_failed}/{n_rows} ({n_failed / n_rows:.1%})"]
    for reason, count in sorted(failure_reasons.items(), key=lambda item: -item[1]):
        lines.append(f"  {count:>6}  {reason}")
    return "\n".join(lines)


def _format_interval(estimate: float, lower: float, upper: float, digits: int = 2) -> str:
    """``'0.35 [0.12, 0.58]'`` style interval label."""
    if any(np.isnan(v) for v in (estimate, lower, upper)):
        return "NA"
    return f"{estimate:.{digits}f} [{lower:.{digits}f}, {upper:.{digits}f}]"
