"""Snapshot encoding and file IO.

This module translates between entry lists and the JSON snapshot text,
and performs the file-system side effects for one snapshot file.
"""

from __future__ import annotations

from contextlib import suppress
import json
import math
import os
from pathlib import Path
from typing import Any

from core.constants import (
    SNAPSHOT_FILE_SUFFIX,
    SNAPSHOT_KEY_FIELD,
    SNAPSHOT_TEMP_SUFFIX,
    SNAPSHOT_VALUE_FIELD,
    SNAPSHOTS_DIR_NAME,
)
from core.errors import (
    JsonMapConfigError,
    PersistenceError,
    SnapshotCorruptError,
    SnapshotNotFoundError,
)
from core.types import Entry, is_valid_key


def snapshot_path(data_root: Path, identity: str) -> Path:
    """Return the snapshot file location for a store identity.

    Args:
        data_root: Configured data root.
        identity: Store name.

    Returns:
        Absolute snapshot file path.

    Raises:
        JsonMapConfigError: If identity is empty or path-like.
    """
    if not identity or identity in (".", "..") or "/" in identity or "\\" in identity:
        raise JsonMapConfigError(
            f"Invalid store identity {identity!r}: use a non-empty name "
            "without path separators."
        )
    return data_root / SNAPSHOTS_DIR_NAME / f"{identity}{SNAPSHOT_FILE_SUFFIX}"


def encode_entries(entries: list[Entry], indent: int | None = None) -> str:
    """Serialize entries into snapshot text.

    Args:
        entries: Ordered entries.
        indent: Optional JSON indent; compact output when None.

    Returns:
        JSON array of ``{"key", "value"}`` objects.
    """
    payload = [
        {SNAPSHOT_KEY_FIELD: entry.key, SNAPSHOT_VALUE_FIELD: entry.value} for entry in entries
    ]
    if indent is None:
        return json.dumps(payload, separators=(",", ":"), allow_nan=False)
    return json.dumps(payload, indent=indent, allow_nan=False) + "\n"


def decode_entries(text: str, source: Path | str = "<memory>") -> list[Entry]:
    """Parse snapshot text into entries.

    Args:
        text: Snapshot text.
        source: Origin used in error messages.

    Returns:
        Ordered entries.

    Raises:
        SnapshotCorruptError: If text is not a valid entry list.
    """
    try:
        payload = json.loads(
            text, parse_constant=_reject_constant, parse_float=_parse_finite_float
        )
    except json.JSONDecodeError as error:
        raise SnapshotCorruptError(
            f"Failed to parse snapshot at {source}: {error.msg}. "
            "The store will start empty and overwrite it on the next write."
        ) from error
    except (ValueError, RecursionError) as error:
        raise SnapshotCorruptError(
            f"Failed to parse snapshot at {source}: {error}. "
            "The store will start empty and overwrite it on the next write."
        ) from error
    if not isinstance(payload, list):
        raise SnapshotCorruptError(
            f"Failed to parse snapshot at {source}: expected JSON array at top level."
        )
    return [_entry_from_payload(item, index, source) for index, item in enumerate(payload)]


def load_snapshot(path: Path) -> list[Entry]:
    """Read and decode one snapshot file.

    Args:
        path: Snapshot file path.

    Returns:
        Ordered entries.

    Raises:
        SnapshotNotFoundError: If the file does not exist.
        SnapshotCorruptError: If the file cannot be decoded.
        PersistenceError: If the file cannot be read.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as error:
        raise SnapshotNotFoundError(f"No snapshot at {path}.") from error
    except UnicodeDecodeError as error:
        raise SnapshotCorruptError(f"Snapshot at {path} is not valid UTF-8.") from error
    except OSError as error:
        raise PersistenceError(f"Failed to read snapshot {path}: {error}.") from error
    return decode_entries(text, path)


def write_snapshot(path: Path, entries: list[Entry], indent: int | None = None) -> None:
    """Atomically replace a snapshot file with the given entries.

    Args:
        path: Snapshot file path.
        entries: Full ordered entry list.
        indent: Optional JSON indent.

    Raises:
        PersistenceError: If encoding or writing fails.
    """
    try:
        text = encode_entries(entries, indent)
    except (TypeError, ValueError, RecursionError) as error:
        raise PersistenceError(f"Failed to encode snapshot for {path}: {error}.") from error
    temp_path = path.with_name(f"{path.name}{SNAPSHOT_TEMP_SUFFIX}")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path.write_text(text, encoding="utf-8")
        os.replace(temp_path, path)
    except OSError as error:
        with suppress(OSError):
            temp_path.unlink()
        raise PersistenceError(
            f"Failed to write snapshot {path}: {error}. "
            "Check permissions and free space for the data root."
        ) from error


def remove_snapshot(path: Path) -> bool:
    """Delete a snapshot file.

    Args:
        path: Snapshot file path.

    Returns:
        True when a file was removed, False when none existed.

    Raises:
        PersistenceError: If an existing file cannot be removed.
    """
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as error:
        raise PersistenceError(f"Failed to remove snapshot {path}: {error}.") from error
    return True


def _entry_from_payload(item: Any, index: int, source: Path | str) -> Entry:
    """Validate and convert one decoded snapshot record."""
    if not isinstance(item, dict) or SNAPSHOT_KEY_FIELD not in item:
        raise SnapshotCorruptError(
            f"Invalid snapshot record at {source}[{index}]: expected object with a key field."
        )
    key = item[SNAPSHOT_KEY_FIELD]
    if not is_valid_key(key):
        raise SnapshotCorruptError(
            f"Invalid snapshot key {key!r} at {source}[{index}]: expected string or integer."
        )
    return Entry(key=key, value=item.get(SNAPSHOT_VALUE_FIELD))


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} is not allowed")


def _parse_finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"number {text} is out of range")
    return value
