"""
MCSim utilities package.
Internal helpers plus the table and plot presenters.
"""

from . import formatters, parsers, upload_data_utils, validators, visualization
from .formatters import format_table
from .visualization import (
    multiverse_layout,
    plot_forest,
    plot_group_distributions,
    plot_likelihood,
    plot_multiverse,
    plot_outcome_curves,
    plot_scatter,
)

__all__ = [
    "formatters",
    "parsers",
    "upload_data_utils",
    "validators",
    "visualization",
    "format_table",
    "multiverse_layout",
    "plot_multiverse",
    "plot_group_distributions",
    "plot_scatter",
    "plot_outcome_curves",
    "plot_forest",
    "plot_likelihood",
]
