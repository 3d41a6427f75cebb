"""Run-time values of the expression language and their coercions.

Expression values are drawn from a closed set of Python types:

- ``None``                       : null
- ``bool``, ``int``, ``float``   : booleans and numbers
- ``str``                        : strings
- ``list``                       : arrays
- ``dict`` (insertion ordered)   : objects / maps
- :class:`StepOutcome`           : a step's record inside ``steps``

Member and index access dispatch on the value's type through explicit
tables (:data:`PROPERTY_ACCESSORS`, :data:`INDEX_ACCESSORS`).  Nothing here
introspects arbitrary host objects.

Every coercion is total: none of them raise.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Callable

__all__ = [
    "INDEX_ACCESSORS",
    "Outcome",
    "PROPERTY_ACCESSORS",
    "StepOutcome",
    "get_index",
    "get_property",
    "to_bool",
    "to_number",
    "to_string",
    "values_equal",
]


class Outcome(str, Enum):
    """Lifecycle state of a step as seen by later expressions."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


@dataclass
class StepOutcome:
    """Result of one step, visible to later steps as ``steps.<name>``."""

    outcome: Outcome = Outcome.PENDING
    outputs: dict[str, str] = field(default_factory=dict)

    def as_mapping(self) -> dict[str, Any]:
        """Return the ``{outputs, outcome}`` view exposed to expressions."""
        return {"outputs": dict(self.outputs), "outcome": self.outcome.value}


# ---------------------------------------------------------------------------
# Coercions
# ---------------------------------------------------------------------------


def to_bool(value: Any) -> bool:
    """Coerce to a boolean: null, empty string and zero are false."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value != ""
    if isinstance(value, (int, float)):
        return value != 0
    return True


def to_number(value: Any) -> float:
    """Coerce to a float; unparseable strings and non-scalars become 0."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, float):
        return value
    if isinstance(value, int):
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return 0.0
    return 0.0


def to_string(value: Any) -> str:
    """Render a value as text the way interpolation inserts it."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, Outcome):
        return value.value
    return str(value)


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    text = repr(value)
    if "e" in text or "E" in text:
        # Positional notation, shortest digits that round-trip.
        text = format(Decimal(text), "f")
    return text


def values_equal(left: Any, right: Any) -> bool:
    """Equality used by ``==`` and ``!=``.

    Two strings compare case-insensitively.  Everything else uses strict
    structural equality: values of different types are never equal, so
    ``1 == '1'``, ``1 == 1.0`` and ``true == 1`` are all false.
    """
    if isinstance(left, str) and isinstance(right, str):
        return left.casefold() == right.casefold()
    return _deep_equal(left, right)


def _deep_equal(left: Any, right: Any) -> bool:
    if type(left) is not type(right):
        return False
    if isinstance(left, list):
        return len(left) == len(right) and all(
            _deep_equal(a, b) for a, b in zip(left, right)
        )
    if isinstance(left, dict):
        return left.keys() == right.keys() and all(
            _deep_equal(v, right[k]) for k, v in left.items()
        )
    if isinstance(left, StepOutcome):
        return left.outcome == right.outcome and left.outputs == right.outputs
    return bool(left == right)


# ---------------------------------------------------------------------------
# Member / index access
# ---------------------------------------------------------------------------


def _unwrap(member: Any) -> Any:
    if isinstance(member, StepOutcome):
        return member.as_mapping()
    return member


def _dict_property(obj: dict[str, Any], name: str) -> Any:
    return _unwrap(obj.get(name))


def _step_property(obj: StepOutcome, name: str) -> Any:
    return obj.as_mapping().get(name)


def _list_index(obj: list[Any], index: Any) -> Any:
    number = to_number(index)
    if math.isnan(number) or math.isinf(number):
        return None
    position = int(number)
    if 0 <= position < len(obj):
        return obj[position]
    return None


def _dict_index(obj: dict[str, Any], index: Any) -> Any:
    return _unwrap(obj.get(to_string(index)))


PROPERTY_ACCESSORS: dict[type, Callable[[Any, str], Any]] = {
    dict: _dict_property,
    StepOutcome: _step_property,
}

INDEX_ACCESSORS: dict[type, Callable[[Any, Any], Any]] = {
    list: _list_index,
    dict: _dict_index,
    StepOutcome: lambda obj, index: _step_property(obj, to_string(index)),
}


def get_property(obj: Any, name: str) -> Any:
    """Resolve ``obj.name``; absent members and non-map values yield null."""
    accessor = PROPERTY_ACCESSORS.get(type(obj))
    if accessor is None:
        return None
    return accessor(obj, name)


def get_index(obj: Any, index: Any) -> Any:
    """Resolve ``obj[index]``; out-of-range and unsupported access yield null."""
    accessor = INDEX_ACCESSORS.get(type(obj))
    if accessor is None:
        return None
    return accessor(obj, index)
