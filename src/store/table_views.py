"""Read-only projections over the in-memory table."""

from __future__ import annotations

from itertools import islice
import random
from typing import Any, Mapping

from core.types import EntryKey


def first_entries(
    table: Mapping[EntryKey, Any], amount: int | None = None
) -> tuple[EntryKey, Any] | list[tuple[EntryKey, Any]] | None:
    """Return the first entry, or up to ``amount`` leading entries.

    Args:
        table: Insertion-ordered table.
        amount: Optional number of entries.

    Returns:
        One ``(key, value)`` pair (None when empty) when ``amount`` is None
        or zero, otherwise a list in insertion order.
    """
    if not amount:
        return next(iter(table.items()), None)
    return list(islice(table.items(), max(amount, 0)))


def last_entries(
    table: Mapping[EntryKey, Any], amount: int | None = None
) -> tuple[EntryKey, Any] | list[tuple[EntryKey, Any]] | None:
    """Return the last entry, or up to ``amount`` trailing entries newest first."""
    if not amount:
        return next(reversed(table.items()), None)
    return list(islice(reversed(table.items()), max(amount, 0)))


def random_entry(
    table: Mapping[EntryKey, Any], rng: random.Random
) -> tuple[EntryKey, Any] | None:
    """Return a uniformly chosen entry, or None for an empty table."""
    if not table:
        return None
    return rng.choice(list(table.items()))
