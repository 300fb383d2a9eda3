"""Value equality and ordering used by validation and queries.

Equality is strict: booleans never equal numbers, and containers are
compared element by element with the same rule. Ordering is total so that
sorting heterogeneous documents never raises.
"""

from collections.abc import Mapping
from numbers import Number
from typing import Any


class _Missing:
    """Sentinel for a field that is absent from a document."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def strict_equals(left: Any, right: Any) -> bool:
    """Compare two values without cross-type coercion.

    Examples:
        >>> strict_equals(1, 1.0)
        True
        >>> strict_equals(True, 1)
        False
        >>> strict_equals({"a": [1, 2]}, {"a": [1, 2]})
        True
    """
    if left is MISSING or right is MISSING:
        return left is right

    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right

    if isinstance(left, Mapping) and isinstance(right, Mapping):
        if left.keys() != right.keys():
            return False
        return all(strict_equals(left[key], right[key]) for key in left)

    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        if len(left) != len(right):
            return False
        return all(strict_equals(a, b) for a, b in zip(left, right))

    if isinstance(left, (Mapping, list, tuple)) or isinstance(right, (Mapping, list, tuple)):
        return False

    return left == right


def _rank(value: Any) -> tuple[int, str]:
    if value is MISSING or value is None:
        return (0, "")
    if isinstance(value, Number):
        return (1, "")
    if isinstance(value, str):
        return (2, "")
    return (3, type(value).__name__)


def compare_values(left: Any, right: Any) -> int:
    """Three-way comparison returning -1, 0 or 1.

    Missing and None values sort first, then numbers (booleans included),
    then strings, then any other type grouped by type name. Values that
    cannot be ordered against each other compare equal.
    """
    left_rank = _rank(left)
    right_rank = _rank(right)
    if left_rank != right_rank:
        return -1 if left_rank < right_rank else 1

    if left_rank[0] == 0:
        return 0

    try:
        if left < right:
            return -1
        if left > right:
            return 1
    except TypeError:
        return 0
    return 0
