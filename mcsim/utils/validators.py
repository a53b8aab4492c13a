"""
Validation utilities for MCSim experiments.

This module provides validation functions for experiment configuration,
condition grids, and summary grouping keys. All checks run before the first
condition row is simulated so that configuration mistakes fail fast.
"""

import inspect
import keyword
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple, Union

__all__ = ["ConfigurationError"]

ITERATION_COLUMN = "iteration"

# Arguments supplied by the runner itself, never looked up in the grid.
_RESERVED_ARGUMENTS = ("rng", "data")


class ConfigurationError(ValueError):
    """Raised when an experiment is configured inconsistently.

    Examples are a generator parameter that is missing from the condition
    grid, a sub-sample larger than the rows surviving a filter, or summary
    grouping keys that omit a varied parameter.
    """


@dataclass
class _ValidationResult:
    """Outcome of a validation check, carrying errors and warnings.

    Attributes:
        is_valid: ``True`` if no errors were found.
        errors: List of error messages (empty when valid).
        warnings: List of non-fatal warning messages.
    """

    is_valid: bool
    errors: List[str]
    warnings: List[str]

    def raise_if_invalid(self):
        """Raise ``ConfigurationError`` if the validation failed."""
        if not self.is_valid:
            error_msg = "Validation failed:\n" + "\n".join(f"• {err}" for err in self.errors)
            raise ConfigurationError(error_msg)


class _Validator:
    """Static helpers for type and range checks used by all validators."""

    @staticmethod
    def _check_type(value: Any, expected_types: tuple, name: str) -> Optional[str]:
        """Check if value has expected type."""
        if isinstance(value, bool) or not isinstance(value, expected_types):
            actual_type = type(value).__name__
            expected = expected_types[0].__name__ if len(expected_types) == 1 else f"one of {[t.__name__ for t in expected_types]}"
            return f"{name} must be {expected}, got {actual_type}"
        return None

    @staticmethod
    def _check_range(
        value: Union[int, float],
        min_val: Optional[float],
        max_val: Optional[float],
        name: str,
    ) -> Optional[str]:
        """Check if value is within range."""
        if min_val is not None and value < min_val:
            return f"{name} must be >= {min_val}, got {value}"
        if max_val is not None and value > max_val:
            return f"{name} must be <= {max_val}, got {value}"
        return None


_validator = _Validator()


def _validate_numeric_parameter(
    value: Any,
    name: str,
    expected_types: tuple = (int, float),
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
    allow_rounding: bool = False,
) -> _ValidationResult:
    """Generic validation for numeric parameters."""
    errors: List[str] = []
    warnings: List[str] = []

    type_error = _validator._check_type(value, expected_types, name)
    if type_error:
        errors.append(type_error)
        return _ValidationResult(False, errors, warnings)

    range_error = _validator._check_range(value, min_val, max_val, name)
    if range_error:
        errors.append(range_error)

    if allow_rounding and isinstance(value, float) and (int, float) == expected_types:
        rounded = int(round(value))
        if value != rounded:
            warnings.append(f"{name} rounded from {value} to {rounded}")

    return _ValidationResult(len(errors) == 0, errors, warnings)


def _validate_alpha(alpha: Any) -> _ValidationResult:
    """Validate alpha level parameter (0-0.25)."""
    return _validate_numeric_parameter(alpha, "Alpha", min_val=0, max_val=0.25)


def _validate_iterations(n_iterations: Any) -> Tuple[int, _ValidationResult]:
    """Validate and process the number of iterations per condition."""
    result = _validate_numeric_parameter(n_iterations, "Number of iterations", min_val=1, allow_rounding=True)

    if result.is_valid:
        rounded = int(round(n_iterations))
        if rounded < 100:
            result.warnings.append(
                f"Low iteration count ({rounded}). Proportions such as power are only "
                "reliable to about ±0.05 with 100 iterations; consider 1000."
            )
        return rounded, result

    return 0, result


def _validate_seed(seed: Any) -> _ValidationResult:
    """Validate a random seed (non-negative int or None)."""
    if seed is None:
        return _ValidationResult(True, [], ["No seed set: results will not be reproducible."])
    return _validate_numeric_parameter(seed, "seed", expected_types=(int,), min_val=0)


def _validate_error_mode(on_error: Any) -> _ValidationResult:
    """Validate the row failure policy."""
    if on_error not in ("raise", "record"):
        return _ValidationResult(False, [f"on_error must be 'raise' or 'record', got {on_error!r}"], [])
    return _ValidationResult(True, [], [])


def _validate_row_timeout(timeout: Any) -> _ValidationResult:
    """Validate the per-row analysis timeout (seconds, or None for no limit)."""
    if timeout is None:
        return _ValidationResult(True, [], [])
    result = _validate_numeric_parameter(timeout, "row_timeout")
    if result.is_valid and timeout <= 0:
        result.errors.append(f"row_timeout must be positive, got {timeout}")
        result.is_valid = False
    return result


def _validate_parallel_settings(enable: Any, n_cores: Optional[int]) -> Tuple[Tuple[bool, int], _ValidationResult]:
    """Validate parallel processing settings.

    Args:
        enable: True or False.
        n_cores: Number of CPU cores (positive int or None for auto).

    Returns:
        ((enable, n_cores), ValidationResult)
    """
    import multiprocessing as mp

    errors = []

    if enable not in (True, False):
        errors.append(f"enable must be True or False, got {enable!r}")
        return (False, 1), _ValidationResult(False, errors, [])

    max_cores = mp.cpu_count()
    validated_n_cores = max(1, max_cores // 2)

    if n_cores is not None:
        if isinstance(n_cores, bool) or not isinstance(n_cores, int) or n_cores <= 0:
            errors.append(f"n_cores must be a positive integer, got {n_cores}")
        else:
            validated_n_cores = min(n_cores, max_cores)

    return (bool(enable), validated_n_cores), _ValidationResult(len(errors) == 0, errors, [])


def _validate_parameter_names(names: Iterable[str]) -> _ValidationResult:
    """Check that parameter names are usable as keyword arguments."""
    errors = []
    for name in names:
        if not isinstance(name, str) or not name.isidentifier() or keyword.iskeyword(name):
            errors.append(f"Parameter name {name!r} is not a valid identifier")
        elif name == ITERATION_COLUMN:
            errors.append(f"'{ITERATION_COLUMN}' is reserved for the iteration index")
        elif name in _RESERVED_ARGUMENTS:
            errors.append(f"'{name}' is reserved and cannot be a grid parameter")
    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_candidates(name: str, candidates: Sequence[Any]) -> _ValidationResult:
    """A parameter declared with a set of values needs at least one value."""
    if len(candidates) == 0:
        return _ValidationResult(False, [f"Parameter '{name}' has no candidate values"], [])
    return _ValidationResult(True, [], [])


def _required_arguments(func: Callable, skip_first: bool = False) -> Tuple[List[str], List[str]]:
    """Return ``(required, optional)`` keyword names of *func*.

    The runner-supplied ``rng`` is excluded, and so is the first argument
    when *skip_first* is set (an analyzer's dataset).
    """
    signature = inspect.signature(func)
    required, optional = [], []
    for i, (name, param) in enumerate(signature.parameters.items()):
        if skip_first and i == 0:
            continue
        if name in _RESERVED_ARGUMENTS:
            continue
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        if param.default is inspect.Parameter.empty:
            required.append(name)
        else:
            optional.append(name)
    return required, optional


def _validate_function_parameters(
    func: Callable, declared: Sequence[str], role: str, skip_first: bool = False
) -> _ValidationResult:
    """Every required argument of a generator/analyzer must be a grid parameter."""
    required, _ = _required_arguments(func, skip_first=skip_first)
    missing = [name for name in required if name not in declared]
    if missing:
        func_name = getattr(func, "__name__", repr(func))
        return _ValidationResult(
            False,
            [
                f"{role} '{func_name}' needs parameter(s) {', '.join(missing)} "
                f"which are not in the condition grid. Declared: {', '.join(declared) or '(none)'}"
            ],
            [],
        )
    return _ValidationResult(True, [], [])


def _validate_grouping(by: Sequence[str], varied: Sequence[str], declared: Sequence[str]) -> _ValidationResult:
    """Grouping keys must cover every varied parameter and nothing undeclared.

    Omitting a varied parameter silently pools distinct conditions into one
    summary row, so it is an error rather than a warning.
    """
    errors = []

    if ITERATION_COLUMN in by:
        errors.append(f"Cannot group by '{ITERATION_COLUMN}': summaries reduce across iterations")

    unknown = [name for name in by if name not in declared and name != ITERATION_COLUMN]
    if unknown:
        errors.append(f"Unknown grouping parameter(s): {', '.join(unknown)}. Declared: {', '.join(declared)}")

    omitted = [name for name in varied if name not in by]
    if omitted:
        errors.append(
            f"Grouping omits varied parameter(s) {', '.join(omitted)}; "
            "distinct conditions would be merged into one summary row"
        )

    if len(set(by)) != len(by):
        errors.append("Grouping keys contain duplicates")

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_population(data_rows: int, n: int, context: str = "") -> _ValidationResult:
    """A sub-sample cannot be larger than the rows available to draw from."""
    if n > data_rows:
        where = f" {context}" if context else ""
        return _ValidationResult(
            False,
            [f"Requested sub-sample of {n} rows but only {data_rows} rows survive{where}"],
            [],
        )
    return _ValidationResult(True, [], [])
