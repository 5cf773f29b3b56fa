"""In-place helpers for structured stored values.

These functions implement the sequence, arithmetic, and nested-property
semantics behind the store's structured mutation helpers. They never
touch disk; the store persists the result afterwards.
"""

from __future__ import annotations

import math
import operator
import sys
from typing import Any, Callable

from core.constants import PROP_PATH_SEPARATOR, SUPPORTED_MATH_OPERATIONS
from core.errors import InvalidOperationError
from core.types import ValueKind, classify_value, exceeds_int_digit_limit

Number = int | float

_BINARY_OPERATIONS: dict[str, Callable[[Any, Any], Any]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "^": operator.pow,
}


def is_number(value: Any) -> bool:
    """Return whether a value is a non-boolean int or float."""
    return classify_value(value) is ValueKind.NUMBER


def check_operation(operation: str) -> None:
    """Validate a math operator symbol.

    Raises:
        InvalidOperationError: If the symbol is not supported.
    """
    if operation not in _BINARY_OPERATIONS:
        raise InvalidOperationError(
            f"Invalid operation {operation!r}: "
            f"use one of {', '.join(SUPPORTED_MATH_OPERATIONS)}."
        )


def apply_math(current: Number, operation: str, number: Number) -> Number:
    """Apply one arithmetic operation.

    ``/`` is true division and ``^`` is exponentiation.

    Args:
        current: Stored number.
        operation: Operator symbol.
        number: Right-hand operand.

    Returns:
        The computed number.

    Raises:
        InvalidOperationError: If the operator is unknown, the operand is not
            a number, or the result is undefined, not finite, or an integer
            too large to store.
    """
    check_operation(operation)
    if not is_number(number):
        raise InvalidOperationError(
            f"Invalid operand {number!r} for {operation!r}: expected a number."
        )
    if operation == "/" and number == 0:
        raise InvalidOperationError(f"Cannot divide {current!r} by zero.")
    try:
        result = _BINARY_OPERATIONS[operation](current, number)
    except (OverflowError, ZeroDivisionError) as error:
        raise InvalidOperationError(
            f"Operation {current!r} {operation} {number!r} is undefined: {error}."
        ) from error
    if isinstance(result, complex) or (isinstance(result, float) and not math.isfinite(result)):
        raise InvalidOperationError(
            f"Operation {current!r} {operation} {number!r} has no finite real result."
        )
    if exceeds_int_digit_limit(result):
        raise InvalidOperationError(
            f"Operation {operation!r} produces an integer with more than "
            f"{sys.get_int_max_str_digits()} digits, which cannot be stored."
        )
    return result


def remove_matches(items: list[Any], target: Any, first_only: bool = False) -> list[Any]:
    """Remove elements equal to target, in place.

    Args:
        items: Sequence to edit.
        target: Value compared by equality.
        first_only: Only remove the first match.

    Returns:
        The same list object.
    """
    if first_only:
        for index, item in enumerate(items):
            if item == target:
                del items[index]
                break
        return items
    items[:] = [item for item in items if item != target]
    return items


def replace_matches(
    items: list[Any],
    target: Any,
    replacement: Any,
    first_only: bool = False,
) -> list[Any]:
    """Replace elements equal to target, in place."""
    for index, item in enumerate(items):
        if item == target:
            items[index] = replacement
            if first_only:
                break
    return items


def split_prop_path(path: str) -> tuple[str, list[str]] | None:
    """Split ``"outer.field[.nested]"`` into outer key and field segments.

    Returns:
        Pair of outer key and non-empty field list, or None when the path
        has no usable field part.
    """
    outer_key, separator, remainder = path.partition(PROP_PATH_SEPARATOR)
    if not separator or not outer_key or not remainder:
        return None
    segments = remainder.split(PROP_PATH_SEPARATOR)
    if any(not segment for segment in segments):
        return None
    return outer_key, segments


def resolve_prop_parent(root: Any, segments: list[str]) -> dict[str, Any] | None:
    """Walk all but the last segment and return the object to assign into."""
    current = root
    for segment in segments[:-1]:
        if classify_value(current) is not ValueKind.STRUCTURE:
            return None
        current = current.get(segment)
    if classify_value(current) is not ValueKind.STRUCTURE:
        return None
    return current
