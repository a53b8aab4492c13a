"""
Data input normalization for real populations.

Converts the formats a lesson may hold a real dataset in (pandas DataFrame,
dict of columns, list, 1D/2D numpy array) into a pandas DataFrame that the
range-restriction generators can filter and subsample.
"""

from typing import List, Optional

import numpy as np
import pandas as pd


def normalize_population(
    data,
    columns: Optional[List[str]] = None,
) -> pd.DataFrame:
    """
    Convert user-supplied data into a DataFrame with named columns.

    Accepted inputs:
        - pandas DataFrame: returned as-is (not copied)
        - dict of {name: array}: keys become column names
        - list or 1D numpy array: treated as single column
        - 2D numpy array: used directly

    When *columns* is not provided and cannot be inferred (plain array / list),
    columns are auto-named ``column_1``, ``column_2``, ...

    Args:
        data: Raw data in any supported format.
        columns: Optional explicit column names (only used for numpy/list input).

    Returns:
        DataFrame with one column per variable.

    Raises:
        TypeError: If *data* is an unsupported type.
        ValueError: If *columns* length doesn't match array width, or the
            data has no rows.
    """
    if isinstance(data, pd.DataFrame):
        frame = data

    elif isinstance(data, dict):
        col_names = list(data.keys())
        arrays = [np.asarray(data[col]) for col in col_names]
        lengths = {len(a) for a in arrays}
        if len(lengths) > 1:
            raise ValueError(f"All columns must have the same length, got lengths {sorted(lengths)}")
        frame = pd.DataFrame(dict(zip(col_names, arrays)))

    elif isinstance(data, (list, np.ndarray)):
        arr = np.asarray(data)

        # 1-D → single column
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        if arr.ndim != 2:
            raise ValueError("data must be 1- or 2-dimensional (samples x variables)")

        if columns is None:
            columns = [f"column_{i + 1}" for i in range(arr.shape[1])]

        if len(columns) != arr.shape[1]:
            raise ValueError(f"columns length ({len(columns)}) must match data columns ({arr.shape[1]})")

        frame = pd.DataFrame(arr, columns=columns)

    else:
        raise TypeError("data must be a numpy array, list, pandas DataFrame, or dict")

    if len(frame) == 0:
        raise ValueError("Population has no rows")
    return frame
