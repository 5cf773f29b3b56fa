"""Snapshot patches applied during reconciliation.

Each patch takes the current on-disk entry list and returns the new full
list to write. Inputs are never modified.
"""

from __future__ import annotations

from typing import Any

from core.types import Entry, EntryKey


def upsert_entry(entries: list[Entry], key: EntryKey, value: Any) -> list[Entry]:
    """Replace the first entry matching key, or append a new one.

    Later duplicates of the same key are dropped so the snapshot holds one
    record per key.
    """
    updated: list[Entry] = []
    found = False
    for entry in entries:
        if not _same_key(entry.key, key):
            updated.append(entry)
        elif not found:
            updated.append(Entry(key=key, value=value))
            found = True
    if not found:
        updated.append(Entry(key=key, value=value))
    return updated


def remove_entry(entries: list[Entry], key: EntryKey) -> list[Entry]:
    """Remove every entry matching key."""
    return [entry for entry in entries if not _same_key(entry.key, key)]


def clear_entries(entries: list[Entry]) -> list[Entry]:
    """Return an empty snapshot."""
    return []


def _same_key(left: EntryKey, right: EntryKey) -> bool:
    # 1 and "1" are distinct keys, as they are in the table.
    return type(left) is type(right) and left == right
