"""
Tests for condition grids.
"""

import pickle

import numpy as np
import pytest

from mcsim.core.grid import ConditionGrid, ConditionRow
from mcsim.utils.validators import ConfigurationError


class TestEnumeration:
    """Cartesian product, declaration order, iteration fastest."""

    def test_row_count(self):
        grid = ConditionGrid({"n": [50, 100, 150], "mean": [0, 0.5], "sd": 1}, n_iterations=4)
        assert len(grid) == 3 * 2 * 4
        assert grid.n_conditions == 6

    def test_order_iteration_fastest(self):
        grid = ConditionGrid({"a": [1, 2], "b": ["x", "y"]}, n_iterations=2)
        rows = grid.rows()
        keys = [(r.parameters["a"], r.parameters["b"], r.iteration) for r in rows]
        assert keys == [
            (1, "x", 1),
            (1, "x", 2),
            (1, "y", 1),
            (1, "y", 2),
            (2, "x", 1),
            (2, "x", 2),
            (2, "y", 1),
            (2, "y", 2),
        ]

    def test_indices_are_positions(self):
        grid = ConditionGrid({"a": [1, 2, 3]}, n_iterations=3)
        assert [r.index for r in grid] == list(range(9))

    def test_iterations_one_based(self):
        grid = ConditionGrid({"a": 1}, n_iterations=3)
        assert [r.iteration for r in grid] == [1, 2, 3]

    def test_deterministic(self):
        params = {"a": [3, 1, 2], "b": (0.1, 0.2)}
        first = [r.to_dict() for r in ConditionGrid(params, n_iterations=2)]
        second = [r.to_dict() for r in ConditionGrid(params, n_iterations=2)]
        assert first == second

    def test_string_is_scalar(self):
        grid = ConditionGrid({"label": "control", "n": [1, 2]}, n_iterations=1)
        assert grid.candidates("label") == ["control"]
        assert grid.varied_parameters == ["n"]

    def test_array_and_range_candidates(self):
        grid = ConditionGrid({"a": np.array([1, 2]), "b": range(3)}, n_iterations=1)
        assert grid.n_conditions == 6

    def test_from_assignment_string(self):
        grid = ConditionGrid("n_per_condition=(50, 100, 150), mean_control=0", n_iterations=10)
        assert grid.parameter_names == ["n_per_condition", "mean_control"]
        assert grid.candidates("n_per_condition") == [50, 100, 150]
        assert len(grid) == 30


class TestVariedParameters:
    def test_varied_and_constant(self):
        grid = ConditionGrid({"n": [10, 20], "mean": 0, "sd": [1]}, n_iterations=1)
        assert grid.varied_parameters == ["n"]
        assert grid.constant_parameters == ["mean", "sd"]

    def test_repeated_candidate_not_varied(self):
        grid = ConditionGrid({"n": [10, 10]}, n_iterations=1)
        assert grid.varied_parameters == []


class TestValidation:
    def test_empty_candidates(self):
        with pytest.raises(ConfigurationError, match="no candidate values"):
            ConditionGrid({"n": []})

    def test_iteration_reserved(self):
        with pytest.raises(ConfigurationError, match="reserved"):
            ConditionGrid({"iteration": [1, 2]})

    def test_rng_reserved(self):
        with pytest.raises(ConfigurationError, match="reserved"):
            ConditionGrid({"rng": 1})

    def test_invalid_identifier(self):
        with pytest.raises(ConfigurationError):
            ConditionGrid({"not valid": 1})

    def test_zero_iterations(self):
        with pytest.raises(ConfigurationError):
            ConditionGrid({"n": 1}, n_iterations=0)


class TestOneAtATime:
    DEFAULTS = {"n": 100, "mean": 0.2, "sd": 1}
    VARIATIONS = {"n": [50, 100, 150], "mean": [0.1, 0.2, 0.3], "sd": [0.5, 1, 1.5]}

    def test_sub_grids_concatenated(self):
        grid = ConditionGrid.one_at_a_time(self.DEFAULTS, self.VARIATIONS, n_iterations=2)
        assert grid.n_conditions == 9
        assert len(grid) == 18

    def test_others_at_default(self):
        grid = ConditionGrid.one_at_a_time(self.DEFAULTS, self.VARIATIONS, n_iterations=1)
        first_block = grid.conditions[:3]
        assert [c["n"] for c in first_block] == [50, 100, 150]
        assert all(c["mean"] == 0.2 and c["sd"] == 1 for c in first_block)

    def test_default_condition_duplicated(self):
        grid = ConditionGrid.one_at_a_time(self.DEFAULTS, self.VARIATIONS, n_iterations=1)
        default = tuple(self.DEFAULTS.values())
        n_default = sum(1 for c in grid.conditions if tuple(c.values()) == default)
        assert n_default == 3

    def test_all_varied(self):
        grid = ConditionGrid.one_at_a_time(self.DEFAULTS, self.VARIATIONS, n_iterations=1)
        assert grid.varied_parameters == ["n", "mean", "sd"]

    def test_fewer_conditions_than_factorial(self):
        params = {name: values for name, values in self.VARIATIONS.items()}
        factorial = ConditionGrid.factorial(params, n_iterations=1)
        assert factorial.n_conditions == 27

    def test_unknown_variation(self):
        with pytest.raises(ConfigurationError, match="undeclared"):
            ConditionGrid.one_at_a_time(self.DEFAULTS, {"skew": [0, 1]})

    def test_multi_valued_default(self):
        with pytest.raises(ConfigurationError, match="single values"):
            ConditionGrid.one_at_a_time({"n": [1, 2]}, {"n": [3]})


class TestConcat:
    def test_mismatched_parameters(self):
        a = ConditionGrid({"n": 1}, n_iterations=1)
        b = ConditionGrid({"m": 1}, n_iterations=1)
        with pytest.raises(ConfigurationError):
            ConditionGrid.concat(a, b)

    def test_mismatched_iterations(self):
        a = ConditionGrid({"n": 1}, n_iterations=1)
        b = ConditionGrid({"n": 2}, n_iterations=2)
        with pytest.raises(ConfigurationError, match="iteration"):
            ConditionGrid.concat(a, b)


class TestConditionRow:
    def test_parameters_read_only(self):
        row = ConditionRow(index=0, iteration=1, parameters={"n": 10})
        with pytest.raises(TypeError):
            row.parameters["n"] = 20

    def test_frozen(self):
        row = ConditionRow(index=0, iteration=1, parameters={"n": 10})
        with pytest.raises(AttributeError):
            row.index = 5

    def test_picklable(self):
        row = ConditionRow(index=3, iteration=2, parameters={"n": 10})
        restored = pickle.loads(pickle.dumps(row))
        assert restored == row

    def test_to_frame(self):
        grid = ConditionGrid({"n": [1, 2]}, n_iterations=2)
        frame = grid.to_frame()
        assert list(frame.columns) == ["n", "iteration"]
        assert len(frame) == 4
