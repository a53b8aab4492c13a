"""
Condition grids for MCSim experiments.

A condition grid is the Cartesian product of every declared parameter's
candidate values crossed with an iteration index. Rows are enumerated in
parameter-declaration order with the iteration index varying fastest, so the
order (and therefore the random stream each row consumes) is fully
determined by the configuration.
"""

import itertools
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..utils.parsers import _parse_grid_parameters
from ..utils.validators import (
    ITERATION_COLUMN,
    ConfigurationError,
    _validate_candidates,
    _validate_iterations,
    _validate_parameter_names,
)


@dataclass(frozen=True)
class ConditionRow:
    """One concrete combination of parameter values plus an iteration index.

    Attributes:
        index: 0-based position of the row in its grid.
        iteration: 1-based iteration number within the condition.
        parameters: Read-only mapping of parameter name to value.
    """

    index: int
    iteration: int
    parameters: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    def __reduce__(self):
        # mappingproxy is not picklable; rows are shipped to worker processes
        return (ConditionRow, (self.index, self.iteration, dict(self.parameters)))

    def condition(self, names: Sequence[str]) -> Tuple[Any, ...]:
        """Values of *names* as a tuple (the row's condition key)."""
        return tuple(self.parameters[name] for name in names)

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.parameters)
        out[ITERATION_COLUMN] = self.iteration
        return out


def _as_candidates(value: Any) -> List[Any]:
    """Treat lists, tuples, ranges, sets and 1-D arrays as candidate sets."""
    if isinstance(value, (str, bytes)):
        return [value]
    if isinstance(value, np.ndarray):
        return value.ravel().tolist()
    if isinstance(value, pd.Series):
        return value.tolist()
    if isinstance(value, (list, tuple, range)):
        return list(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return [value]


def _distinct(values: Sequence[Any]) -> List[Any]:
    seen: List[Any] = []
    for value in values:
        if not any(_equal(value, other) for other in seen):
            seen.append(value)
    return seen


def _equal(a: Any, b: Any) -> bool:
    try:
        return bool(a == b)
    except (TypeError, ValueError):
        return a is b


class ConditionGrid:
    """Full enumeration of the runs of one experiment.

    Args:
        parameters: Mapping of parameter name to a single value or a
            sequence of candidate values, or an assignment string such as
            ``"n_per_condition=(50, 100, 150), mean_control=0"``.
        n_iterations: Number of iterations per combination of values.

    Example:
        >>> grid = ConditionGrid({"n": [50, 100], "mean": 0}, n_iterations=3)
        >>> len(grid)
        6
        >>> grid.varied_parameters
        ['n']
    """

    def __init__(self, parameters: Union[str, Mapping[str, Any]], n_iterations: int = 1000):
        if isinstance(parameters, str):
            parameters = _parse_grid_parameters(parameters)

        _validate_parameter_names(parameters.keys()).raise_if_invalid()

        n_iter, iter_result = _validate_iterations(n_iterations)
        iter_result.raise_if_invalid()

        candidates: Dict[str, List[Any]] = {}
        for name, value in parameters.items():
            values = _as_candidates(value)
            _validate_candidates(name, values).raise_if_invalid()
            candidates[name] = values

        self.n_iterations = n_iter
        self._candidates = candidates
        self._conditions: List[Tuple[Any, ...]] = list(itertools.product(*candidates.values()))

    @classmethod
    def factorial(cls, parameters: Union[str, Mapping[str, Any]], n_iterations: int = 1000) -> "ConditionGrid":
        """Fully crossed design (the plain constructor)."""
        return cls(parameters, n_iterations)

    @classmethod
    def one_at_a_time(
        cls,
        defaults: Mapping[str, Any],
        variations: Mapping[str, Sequence[Any]],
        n_iterations: int = 1000,
    ) -> "ConditionGrid":
        """Vary one parameter at a time, holding all others at their default.

        One sub-grid is built per entry of *variations* and the sub-grids are
        concatenated in declaration order. Conditions equal to the default
        appear once per sub-grid, exactly as binding the sub-grids row-wise
        would produce.

        Raises:
            ConfigurationError: If a variation names an unknown parameter or
                a default is given as a set of values.
        """
        unknown = [name for name in variations if name not in defaults]
        if unknown:
            raise ConfigurationError(f"Variations for undeclared parameter(s): {', '.join(unknown)}")
        multi = [name for name, value in defaults.items() if len(_as_candidates(value)) != 1]
        if multi:
            raise ConfigurationError(f"Defaults must be single values, got sets for: {', '.join(multi)}")
        if not variations:
            return cls(defaults, n_iterations)

        grids = []
        for name, values in variations.items():
            params = dict(defaults)
            params[name] = list(_as_candidates(values))
            grids.append(cls(params, n_iterations))
        return cls.concat(*grids)

    @classmethod
    def concat(cls, *grids: "ConditionGrid") -> "ConditionGrid":
        """Bind grids row-wise. All grids must declare the same parameters
        and the same number of iterations."""
        if not grids:
            raise ConfigurationError("Nothing to concatenate")
        first = grids[0]
        for other in grids[1:]:
            if other.parameter_names != first.parameter_names:
                raise ConfigurationError(
                    f"Cannot concatenate grids with parameters {first.parameter_names} and {other.parameter_names}"
                )
            if other.n_iterations != first.n_iterations:
                raise ConfigurationError("Cannot concatenate grids with different iteration counts")

        combined = cls.__new__(cls)
        combined.n_iterations = first.n_iterations
        combined._candidates = {
            name: _distinct([v for g in grids for v in g._candidates[name]]) for name in first.parameter_names
        }
        combined._conditions = [cond for g in grids for cond in g._conditions]
        return combined

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def parameter_names(self) -> List[str]:
        """Declared parameters in declaration order."""
        return list(self._candidates.keys())

    @property
    def conditions(self) -> List[Dict[str, Any]]:
        """Distinct-by-position parameter combinations (without iterations)."""
        names = self.parameter_names
        return [dict(zip(names, cond)) for cond in self._conditions]

    @property
    def varied_parameters(self) -> List[str]:
        """Parameters taking more than one distinct value across the grid."""
        varied = []
        for pos, name in enumerate(self.parameter_names):
            values = _distinct([cond[pos] for cond in self._conditions])
            if len(values) > 1:
                varied.append(name)
        return varied

    @property
    def constant_parameters(self) -> List[str]:
        varied = set(self.varied_parameters)
        return [name for name in self.parameter_names if name not in varied]

    @property
    def n_conditions(self) -> int:
        return len(self._conditions)

    def candidates(self, name: str) -> List[Any]:
        """Candidate values declared for *name*."""
        return list(self._candidates[name])

    # =========================================================================
    # Enumeration
    # =========================================================================

    def __len__(self) -> int:
        return len(self._conditions) * self.n_iterations

    def __iter__(self) -> Iterator[ConditionRow]:
        names = self.parameter_names
        index = 0
        for cond in self._conditions:
            params = dict(zip(names, cond))
            for iteration in range(1, self.n_iterations + 1):
                yield ConditionRow(index=index, iteration=iteration, parameters=params)
                index += 1

    def rows(self) -> List[ConditionRow]:
        return list(self)

    def to_frame(self) -> pd.DataFrame:
        """One row per condition row: parameter columns plus ``iteration``."""
        columns = self.parameter_names + [ITERATION_COLUMN]
        records = [[*row.condition(self.parameter_names), row.iteration] for row in self]
        return pd.DataFrame(records, columns=columns)

    def __repr__(self):
        return (
            f"ConditionGrid(parameters={self.parameter_names}, varied={self.varied_parameters}, "
            f"n_conditions={self.n_conditions}, n_iterations={self.n_iterations})"
        )
