"""Per-identity snapshot cache.

This module keeps the last loaded or written entry list for each snapshot
path. Every successful write replaces the cached entries with exactly what
was written and every failed write or file removal invalidates them, so a
reconciliation read never observes a snapshot older than the last write.
"""

from __future__ import annotations

from pathlib import Path

from core.types import Entry


class SnapshotCache:
    """In-process cache of decoded snapshots keyed by file path."""

    def __init__(self) -> None:
        self._entries: dict[Path, tuple[Entry, ...]] = {}

    def get(self, path: Path) -> list[Entry] | None:
        """Return a fresh list of cached entries, or None on a miss."""
        cached = self._entries.get(path)
        if cached is None:
            return None
        return list(cached)

    def put(self, path: Path, entries: list[Entry]) -> None:
        """Replace cached entries for a path.

        Callers must hand over entries whose values are not shared with a
        live table.
        """
        self._entries[path] = tuple(entries)

    def invalidate(self, path: Path) -> None:
        """Drop cached entries so the next read goes to disk."""
        self._entries.pop(path, None)

    def __contains__(self, path: object) -> bool:
        return path in self._entries


_DEFAULT_CACHE = SnapshotCache()


def default_snapshot_cache() -> SnapshotCache:
    """Return the process-wide snapshot cache."""
    return _DEFAULT_CACHE
