"""Unit tests for mcsim.utils.upload_data_utils: normalize_population."""

import numpy as np
import pandas as pd
import pytest

from mcsim.utils.upload_data_utils import normalize_population


class TestNormalizePopulation:
    """Tests for normalize_population."""

    def test_dict_input(self):
        frame = normalize_population({"x1": [1.0, 2.0, 3.0], "x2": [4.0, 5.0, 6.0]})
        assert list(frame.columns) == ["x1", "x2"]
        assert frame.shape == (3, 2)
        np.testing.assert_array_equal(frame["x1"], [1.0, 2.0, 3.0])

    def test_dict_with_strings(self):
        frame = normalize_population({"group": ["a", "b", "a"], "x1": [1.0, 2.0, 3.0]})
        assert list(frame.columns) == ["group", "x1"]
        assert frame["group"].tolist() == ["a", "b", "a"]

    def test_dict_unequal_lengths(self):
        with pytest.raises(ValueError, match="same length"):
            normalize_population({"a": [1, 2], "b": [1]})

    def test_list_input(self):
        frame = normalize_population([1.0, 2.0, 3.0])
        assert frame.shape == (3, 1)
        assert list(frame.columns) == ["column_1"]

    def test_2d_array(self):
        frame = normalize_population(np.array([[1.0, 2.0], [3.0, 4.0]]))
        assert list(frame.columns) == ["column_1", "column_2"]

    def test_2d_array_with_columns(self):
        frame = normalize_population(np.array([[1.0, 2.0], [3.0, 4.0]]), columns=["score", "trait"])
        assert list(frame.columns) == ["score", "trait"]

    def test_columns_mismatch(self):
        with pytest.raises(ValueError, match="columns length"):
            normalize_population(np.zeros((3, 2)), columns=["a"])

    def test_3d_array(self):
        with pytest.raises(ValueError, match="dimensional"):
            normalize_population(np.zeros((2, 2, 2)))

    def test_dataframe_returned_as_is(self):
        df = pd.DataFrame({"x1": [1.0, 2.0]})
        assert normalize_population(df) is df

    def test_empty(self):
        with pytest.raises(ValueError, match="no rows"):
            normalize_population(pd.DataFrame({"x": []}))

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            normalize_population("not data")
