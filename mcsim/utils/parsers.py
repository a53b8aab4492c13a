"""
Parsing utilities for MCSim.

This module turns the compact strings used in lessons into structured
configuration: condition-grid assignments such as
``"n_per_condition=(50, 100, 150), mean_control=0"`` and lavaan-style path
models such as ``"M ~ 0.5*X + 0.5*Y; Y ~ 0.0*X"``.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

__all__ = []

# Unicode-aware identifier pattern: letter or underscore, then word characters
_IDENT = r"[^\W\d]\w*"

_NUMBER = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"


class _AssignmentParser:
    """Parses comma-separated ``name=value`` assignment strings.

    Values are numbers, booleans, ``None``, bare words (kept as strings) or a
    parenthesised list of those, which declares a set of candidate values.

    A module-level singleton ``_parser`` is used throughout the codebase.
    """

    def _parse(self, input_string: str) -> Tuple[Dict[str, Any], List[str]]:
        """Parse a comma-separated assignment string.

        Args:
            input_string: Raw user input (e.g. ``"n=(50, 100), sd=1"``).

        Returns:
            Tuple of ``(parsed_dict, error_list)``. Candidate sets are
            returned as lists, single values as scalars.
        """
        assignments = self._split_assignments(input_string)
        parsed_items: Dict[str, Any] = {}
        errors = []

        for assignment in assignments:
            try:
                name, value = self._parse_assignment(assignment)
            except ValueError as e:
                errors.append(str(e))
                continue

            if not re.fullmatch(_IDENT, name):
                errors.append(f"'{name}' is not a valid parameter name")
                continue
            if name in parsed_items:
                errors.append(f"'{name}' assigned more than once")
                continue

            parsed_value, error = self._parse_value(value)
            if error:
                errors.append(f"{name}: {error}")
                continue
            parsed_items[name] = parsed_value

        return parsed_items, errors

    def _split_assignments(self, input_string: str) -> List[str]:
        """Split assignments respecting parentheses."""
        assignments = []
        current: List[str] = []
        paren_count = 0

        for char in input_string:
            if char == "," and paren_count == 0:
                if current:
                    assignments.append("".join(current).strip())
                    current = []
            else:
                if char == "(":
                    paren_count += 1
                elif char == ")":
                    paren_count -= 1
                current.append(char)

        if current:
            assignments.append("".join(current).strip())

        return [a for a in assignments if a]

    def _parse_assignment(self, assignment: str) -> Tuple[str, str]:
        """Parse single assignment into name and value parts."""
        if "=" not in assignment:
            raise ValueError(f"Invalid format: '{assignment}'. Expected 'name=value'")
        name, value = assignment.split("=", 1)
        return name.strip(), value.strip()

    def _parse_value(self, value: str) -> Tuple[Any, Optional[str]]:
        """Parse a scalar or a parenthesised candidate list."""
        if not value:
            return None, "Missing value"

        if value.startswith("(") or value.endswith(")"):
            if not (value.startswith("(") and value.endswith(")")):
                return None, f"Unbalanced parentheses in '{value}'"
            parts = [p.strip() for p in value[1:-1].split(",")]
            parts = [p for p in parts if p]
            if not parts:
                return None, "Empty candidate list"
            candidates = []
            for part in parts:
                scalar, error = self._parse_scalar(part)
                if error:
                    return None, error
                candidates.append(scalar)
            return candidates, None

        return self._parse_scalar(value)

    def _parse_scalar(self, value: str) -> Tuple[Any, Optional[str]]:
        if re.fullmatch(r"[-+]?\d+", value):
            return int(value), None
        if re.fullmatch(_NUMBER, value):
            return float(value), None
        if value in ("True", "TRUE", "true"):
            return True, None
        if value in ("False", "FALSE", "false"):
            return False, None
        if value in ("None", "NULL", "NA"):
            return None, None
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            return value[1:-1], None
        if re.fullmatch(r"[\w.\-]+", value):
            return value, None
        return None, f"Invalid value '{value}'"


_parser = _AssignmentParser()


def _parse_grid_parameters(input_string: str) -> Dict[str, Any]:
    """Parse a grid assignment string, raising ``ValueError`` on any error."""
    parsed, errors = _parser._parse(input_string)
    if errors:
        raise ValueError("Could not parse parameters:\n" + "\n".join(f"• {err}" for err in errors))
    if not parsed:
        raise ValueError("No parameters found in input string")
    return parsed


@dataclass(frozen=True)
class PathRegression:
    """One regression of a path model: ``outcome ~ c1*p1 + c2*p2``.

    ``coefficients`` holds ``None`` for predictors written without a fixed
    value (analysis models) and a float for simulation models.
    """

    outcome: str
    predictors: Tuple[str, ...]
    coefficients: Tuple[Optional[float], ...]


def _parse_path_model(model: str) -> List[PathRegression]:
    """Parse a lavaan-style path model into its regressions.

    Regressions are separated by ``;`` or new lines. Each right-hand term is
    either ``name`` or ``coefficient*name``. Repeated outcomes are merged,
    predictors keep their first-seen order.

    Raises:
        ValueError: On malformed terms or an empty model.
    """
    statements = [s.strip() for s in re.split(r"[;\n]", model) if s.strip()]
    if not statements:
        raise ValueError("Path model is empty")

    merged: Dict[str, Dict[str, Optional[float]]] = {}
    term_pattern = rf"(?:({_NUMBER})\s*\*\s*)?({_IDENT})"

    for statement in statements:
        if statement.startswith("#"):
            continue
        if statement.count("~") != 1:
            raise ValueError(f"Invalid regression '{statement}'. Expected 'outcome ~ predictors'")
        left, right = (side.strip() for side in statement.split("~"))
        if not re.fullmatch(_IDENT, left):
            raise ValueError(f"Invalid outcome name '{left}'")

        terms = merged.setdefault(left, {})
        for raw in right.split("+"):
            raw = raw.strip()
            match = re.fullmatch(term_pattern, raw)
            if not match:
                raise ValueError(f"Invalid term '{raw}' in '{statement}'")
            coef, name = match.groups()
            if name == left:
                raise ValueError(f"'{left}' cannot predict itself")
            terms[name] = float(coef) if coef is not None else None

    return [
        PathRegression(
            outcome=outcome,
            predictors=tuple(terms.keys()),
            coefficients=tuple(terms.values()),
        )
        for outcome, terms in merged.items()
    ]
