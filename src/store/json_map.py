"""Persistent key-value map.

This module owns the in-memory table and mirrors every mutation to the
store's JSON snapshot. Reads consult only the table. Mutations update the
table first, then reconcile the snapshot (load, patch, rewrite) while holding
the identity lock. Snapshot write failures never roll back the table: the
in-memory view always wins and durability is best-effort.

Structured values are returned by reference. A caller who edits a returned
list or dict in place must call ``set`` or ``set_prop`` afterwards, or the
change stays in memory only.
"""

from __future__ import annotations

import asyncio
import copy
import random
from pathlib import Path
from typing import Any, Callable, ItemsView, Iterator, KeysView, ValuesView

from core.config import JsonMapConfig
from core.errors import PersistenceError, SnapshotCorruptError, SnapshotNotFoundError
from core.logging_config import configure_logging, get_logger
from core.types import (
    Entry,
    EntryKey,
    ValueKind,
    classify_value,
    validate_json_value,
    validate_key,
)
from store.identity_locks import IdentityLockRegistry, default_lock_registry
from store.reconciliation import clear_entries, remove_entry, upsert_entry
from store.snapshot_cache import SnapshotCache, default_snapshot_cache
from store.snapshot_codec import load_snapshot, remove_snapshot, snapshot_path, write_snapshot
from store.table_views import first_entries, last_entries, random_entry
from store.value_ops import (
    apply_math,
    check_operation,
    is_number,
    remove_matches,
    replace_matches,
    resolve_prop_parent,
    split_prop_path,
)

_LOGGER = get_logger(__name__)

SnapshotPatch = Callable[[list[Entry]], list[Entry]]


class JsonMap:
    """Insertion-ordered map mirrored to an on-disk JSON snapshot.

    Without an identity the map is memory-only and every persistence step
    is skipped.
    """

    def __init__(
        self,
        identity: str | None = None,
        config: JsonMapConfig | None = None,
        *,
        cache: SnapshotCache | None = None,
        locks: IdentityLockRegistry | None = None,
    ) -> None:
        """Create a map and hydrate it from its snapshot.

        Args:
            identity: Optional store name; memory-only when omitted.
            config: Optional runtime configuration.
            cache: Snapshot cache; the process-wide cache when omitted.
            locks: Lock registry; the process-wide registry when omitted.

        Raises:
            JsonMapConfigError: If identity cannot be mapped to a file name.
        """
        self._config = config or JsonMapConfig.from_env()
        configure_logging(self._config.log_level)
        self._cache = cache or default_snapshot_cache()
        self._locks = locks or default_lock_registry()
        self._random = random.Random(self._config.random_seed)
        self.identity = identity
        self._snapshot_path: Path | None = (
            snapshot_path(self._config.data_root, identity) if identity else None
        )
        self._table: dict[EntryKey, Any] = {}
        # Set after a failed write; the next write then mirrors the whole table.
        self._resync_pending = False
        if self._snapshot_path is not None:
            self._hydrate(self._snapshot_path)

    @property
    def snapshot_path(self) -> Path | None:
        """Snapshot file location, or None for memory-only maps."""
        return self._snapshot_path

    @property
    def persistent(self) -> bool:
        """Whether mutations are mirrored to disk."""
        return self._snapshot_path is not None

    async def set(self, key: EntryKey, value: Any) -> None:
        """Set a key and persist it.

        Args:
            key: String or integer key.
            value: Value to store.

        Raises:
            InvalidKeyError: If key is not a string or integer.
            InvalidValueError: If a persistent map cannot serialize value.
            PersistenceError: Only with ``strict_persistence`` enabled.
        """
        validate_key(key)
        if self.persistent:
            validate_json_value(value)
        self._table[key] = value
        snapshot_value = copy.deepcopy(value)
        await self._reconcile(lambda entries: upsert_entry(entries, key, snapshot_value))

    async def set_prop(self, path: str, value: Any) -> Any:
        """Set a field inside an object value, e.g. ``"user.name"``.

        Extra segments walk nested objects (``"user.address.city"``).

        Returns:
            The updated outer value, or None when the path does not resolve
            to an object field.
        """
        parsed = split_prop_path(path)
        if parsed is None:
            return None
        outer_key, segments = parsed
        root = self._table.get(outer_key)
        parent = resolve_prop_parent(root, segments)
        if parent is None:
            return None
        if self.persistent:
            validate_json_value(value, path)
        parent[segments[-1]] = value
        await self.set(outer_key, root)
        return root

    async def push(self, key: EntryKey, value: Any) -> list[Any] | None:
        """Append a value to a list.

        Returns:
            The updated list, or None when the stored value is not a list.
        """
        items = self._sequence(key)
        if items is None:
            return None
        if self.persistent:
            validate_json_value(value)
        items.append(value)
        await self.set(key, items)
        return items

    async def splice(
        self, key: EntryKey, value: Any, first_only: bool = False
    ) -> list[Any] | None:
        """Remove matching values from a list.

        Args:
            key: Key holding a list.
            value: Value compared by equality.
            first_only: Only remove the first match.

        Returns:
            The updated list, or None when the stored value is not a list.
        """
        items = self._sequence(key)
        if items is None:
            return None
        remove_matches(items, value, first_only)
        await self.set(key, items)
        return items

    async def replace(
        self,
        key: EntryKey,
        value: Any,
        replace_value: Any,
        first_only: bool = False,
    ) -> list[Any] | None:
        """Replace matching values in a list.

        Returns:
            The updated list, or None when the stored value is not a list.
        """
        items = self._sequence(key)
        if items is None:
            return None
        if self.persistent:
            validate_json_value(replace_value)
        replace_matches(items, value, replace_value, first_only)
        await self.set(key, items)
        return items

    async def inc(self, key: EntryKey, obj_key: str | None = None) -> int | float | None:
        """Increase a number, or a numeric object field, by one."""
        return await self._step(key, obj_key, 1)

    async def dec(self, key: EntryKey, obj_key: str | None = None) -> int | float | None:
        """Decrease a number, or a numeric object field, by one."""
        return await self._step(key, obj_key, -1)

    async def math(
        self,
        key: EntryKey,
        operation: str,
        number: int | float,
        obj_key: str | None = None,
    ) -> Any:
        """Apply ``+ - * / ^`` to a number or a numeric object field.

        ``/`` always yields a float and ``^`` is exponentiation.

        Returns:
            The updated stored value (the whole object when ``obj_key`` is
            given), or None when the target is not numeric.

        Raises:
            InvalidOperationError: If the operator is unsupported or the
                result is undefined. The stored value is left unchanged.
        """
        check_operation(operation)
        value = self._table.get(key)
        if obj_key is not None:
            if not self._has_numeric_field(value, obj_key):
                return None
            value[obj_key] = apply_math(value[obj_key], operation, number)
            await self.set(key, value)
            return value
        if not is_number(value):
            return None
        result = apply_math(value, operation, number)
        await self.set(key, result)
        return result

    async def delete(self, key: EntryKey) -> bool:
        """Delete a key from the table and the snapshot.

        Returns:
            Whether the key was present in the table.
        """
        existed = key in self._table
        self._table.pop(key, None)
        await self._reconcile(lambda entries: remove_entry(entries, key))
        return existed

    async def clear(self) -> None:
        """Remove every entry and truncate the snapshot to an empty list."""
        self._table.clear()
        await self._reconcile(clear_entries)

    async def delete_file(self) -> None:
        """Clear the table and remove the snapshot file entirely."""
        self._table.clear()
        path = self._snapshot_path
        if path is None:
            return
        async with self._locks.lock_for(path):
            self._cache.invalidate(path)
            try:
                removed = await asyncio.to_thread(remove_snapshot, path)
            except PersistenceError as error:
                self._resync_pending = True
                self._persistence_failed("snapshot_remove_failed", path, error)
                return
            self._resync_pending = False
        _LOGGER.info("snapshot_removed", identity=self.identity, path=str(path), removed=removed)

    def get(self, key: EntryKey, default: Any = None) -> Any:
        """Return the value for key, or default when absent."""
        return self._table.get(key, default)

    def has(self, key: EntryKey) -> bool:
        return key in self._table

    def entries(self) -> ItemsView[EntryKey, Any]:
        """Return a live view of ``(key, value)`` pairs in insertion order."""
        return self._table.items()

    def keys(self) -> KeysView[EntryKey]:
        return self._table.keys()

    def values(self) -> ValuesView[Any]:
        return self._table.values()

    def array(self) -> list[tuple[EntryKey, Any]]:
        """Return a list of ``(key, value)`` pairs."""
        return list(self._table.items())

    def size(self) -> int:
        return len(self._table)

    def find(self, fn: Callable[[Any], Any]) -> Any:
        """Return the first value for which fn is truthy, or None."""
        for value in self._table.values():
            if fn(value):
                return value
        return None

    def filter(self, fn: Callable[[Any], Any]) -> list[Any]:
        """Return all values for which fn is truthy."""
        return [value for value in self._table.values() if fn(value)]

    def some(self, fn: Callable[[Any], Any]) -> bool:
        """Return whether fn is truthy for any value."""
        return any(fn(value) for value in self._table.values())

    def map(self, fn: Callable[[Any, EntryKey, "JsonMap"], Any]) -> list[Any]:
        """Return ``fn(value, key, self)`` for every entry."""
        return [fn(value, key, self) for key, value in list(self._table.items())]

    def for_each(self, fn: Callable[[Any, EntryKey, "JsonMap"], Any]) -> None:
        """Call ``fn(value, key, self)`` for every entry."""
        for key, value in list(self._table.items()):
            fn(value, key, self)

    def first(self, amount: int | None = None) -> Any:
        """Return the first entry, or a list of the first ``amount`` entries."""
        return first_entries(self._table, amount)

    def last(self, amount: int | None = None) -> Any:
        """Return the last entry, or a list of the last ``amount`` entries newest first."""
        return last_entries(self._table, amount)

    def random(self) -> tuple[EntryKey, Any] | None:
        """Return a random ``(key, value)`` pair, or None when empty."""
        return random_entry(self._table, self._random)

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, key: object) -> bool:
        return key in self._table

    def __iter__(self) -> Iterator[EntryKey]:
        return iter(self._table)

    def __repr__(self) -> str:
        return f"JsonMap(identity={self.identity!r}, size={len(self._table)})"

    def _hydrate(self, path: Path) -> None:
        """Load the snapshot into the table; missing or invalid files start empty."""
        try:
            entries = load_snapshot(path)
        except SnapshotNotFoundError:
            self._cache.invalidate(path)
            _LOGGER.debug("snapshot_missing", identity=self.identity, path=str(path))
            return
        except SnapshotCorruptError as error:
            self._cache.invalidate(path)
            _LOGGER.warning(
                "snapshot_corrupt", identity=self.identity, path=str(path), error=str(error)
            )
            return
        except PersistenceError as error:
            self._cache.invalidate(path)
            _LOGGER.warning(
                "snapshot_read_failed", identity=self.identity, path=str(path), error=str(error)
            )
            return
        for entry in entries:
            self._table[entry.key] = copy.deepcopy(entry.value)
        self._cache.put(path, entries)
        _LOGGER.info("store_hydrated", identity=self.identity, entry_count=len(self._table))

    async def _reconcile(self, patch: SnapshotPatch) -> None:
        """Run load, patch, and write for the snapshot under the identity lock."""
        path = self._snapshot_path
        if path is None:
            return
        async with self._locks.lock_for(path):
            if self._resync_pending:
                updated = self._table_entries()
            else:
                entries = self._cache.get(path)
                if entries is None:
                    entries = await asyncio.to_thread(_load_or_empty, path)
                updated = self._table_entries() if entries is None else patch(entries)
            try:
                await asyncio.to_thread(
                    write_snapshot, path, updated, self._config.snapshot_indent
                )
            except PersistenceError as error:
                self._cache.invalidate(path)
                self._resync_pending = True
                self._persistence_failed("snapshot_write_failed", path, error)
                return
            self._resync_pending = False
            self._cache.put(path, updated)
        _LOGGER.debug("snapshot_written", identity=self.identity, entry_count=len(updated))

    def _table_entries(self) -> list[Entry]:
        return [Entry(key=key, value=copy.deepcopy(value)) for key, value in self._table.items()]

    def _persistence_failed(self, event: str, path: Path, error: PersistenceError) -> None:
        """Log a swallowed disk failure, or re-raise under strict persistence."""
        _LOGGER.warning(event, identity=self.identity, path=str(path), error=str(error))
        if self._config.strict_persistence:
            raise error

    def _sequence(self, key: EntryKey) -> list[Any] | None:
        value = self._table.get(key)
        if classify_value(value) is not ValueKind.SEQUENCE:
            return None
        return value

    def _has_numeric_field(self, value: Any, obj_key: str) -> bool:
        return (
            classify_value(value) is ValueKind.STRUCTURE
            and isinstance(obj_key, str)
            and bool(obj_key)
            and is_number(value.get(obj_key))
        )

    async def _step(self, key: EntryKey, obj_key: str | None, delta: int) -> int | float | None:
        value = self._table.get(key)
        if obj_key is not None:
            if not self._has_numeric_field(value, obj_key):
                return None
            value[obj_key] = apply_math(value[obj_key], "+", delta)
            await self.set(key, value)
            return value[obj_key]
        if not is_number(value):
            return None
        result = apply_math(value, "+", delta)
        await self.set(key, result)
        return result


def _load_or_empty(path: Path) -> list[Entry] | None:
    """Read entries for reconciliation; missing or corrupt snapshots count as empty.

    Returns None when the file exists but cannot be read, so the caller
    rewrites it from the table instead of patching an empty list.
    """
    try:
        return load_snapshot(path)
    except (SnapshotNotFoundError, SnapshotCorruptError):
        return []
    except PersistenceError as error:
        _LOGGER.warning("snapshot_read_failed", path=str(path), error=str(error))
        return None
