"""Shared typed models.

This module defines the entry record and the closed set of value kinds
the store understands, plus the key and value checks applied before
anything reaches the in-memory table or a snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import math
import sys
from typing import Any, Union

from core.errors import InvalidKeyError, InvalidValueError

EntryKey = Union[str, int]


@dataclass(frozen=True)
class Entry:
    """One persisted key/value pair.

    Attributes:
        key: Entry key, compared by value equality.
        value: Arbitrary JSON-representable value.
    """

    key: EntryKey
    value: Any


class ValueKind(Enum):
    """Closed classification of stored values."""

    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    TEXT = "text"
    SEQUENCE = "sequence"
    STRUCTURE = "structure"
    OTHER = "other"


def classify_value(value: Any) -> ValueKind:
    """Map a Python value onto its stored value kind.

    ``bool`` is checked before numbers because it subclasses ``int``.
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.TEXT
    if isinstance(value, list):
        return ValueKind.SEQUENCE
    if isinstance(value, dict):
        return ValueKind.STRUCTURE
    return ValueKind.OTHER


def exceeds_int_digit_limit(value: Any) -> bool:
    """Return whether an int has more decimal digits than the interpreter will print.

    Such values cannot be written to a snapshot, so they must never enter a
    persistent table.
    """
    if not isinstance(value, int) or isinstance(value, bool):
        return False
    limit = sys.get_int_max_str_digits()
    if limit == 0 or value.bit_length() <= 3 * limit:
        return False
    return abs(value) >= 10**limit


def is_valid_key(key: object) -> bool:
    """Return whether a key can be stored and round-tripped."""
    if not isinstance(key, (str, int)) or isinstance(key, bool):
        return False
    return not exceeds_int_digit_limit(key)


def validate_key(key: object) -> EntryKey:
    """Validate an entry key.

    Args:
        key: Candidate key.

    Returns:
        The same key.

    Raises:
        InvalidKeyError: If key is not a string or integer.
    """
    if not is_valid_key(key):
        raise InvalidKeyError(
            f"Invalid key of type {type(key).__name__}: "
            "keys must be strings or integers short enough to print."
        )
    return key  # type: ignore[return-value]


def validate_json_value(value: Any, location: str = "value") -> None:
    """Ensure a value survives a JSON snapshot round-trip unchanged.

    Args:
        value: Candidate value.
        location: Dotted location used in error messages.

    Raises:
        InvalidValueError: If the value or a nested member is not representable.
    """
    kind = classify_value(value)
    if kind is ValueKind.NUMBER and isinstance(value, float) and not math.isfinite(value):
        raise InvalidValueError(
            f"Cannot persist non-finite number {value!r} at {location}."
        )
    if exceeds_int_digit_limit(value):
        raise InvalidValueError(
            f"Cannot persist integer at {location}: it exceeds "
            f"{sys.get_int_max_str_digits()} decimal digits."
        )
    if kind is ValueKind.SEQUENCE:
        for index, item in enumerate(value):
            validate_json_value(item, f"{location}[{index}]")
        return
    if kind is ValueKind.STRUCTURE:
        for field_name, item in value.items():
            if not isinstance(field_name, str):
                raise InvalidValueError(
                    f"Cannot persist object field {field_name!r} at {location}: "
                    "object field names must be strings."
                )
            validate_json_value(item, f"{location}.{field_name}")
        return
    if kind is ValueKind.OTHER:
        raise InvalidValueError(
            f"Cannot persist {type(value).__name__} at {location}. "
            "Use null, booleans, numbers, strings, lists, or dicts."
        )
