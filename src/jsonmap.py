"""Public SDK surface for jsonmap.

This module provides a stable import path for library users.
It re-exports the map, its configuration, and the error types.
"""

from __future__ import annotations

from core.config import JsonMapConfig
from core.errors import (
    InvalidKeyError,
    InvalidOperationError,
    InvalidValueError,
    JsonMapConfigError,
    JsonMapError,
    PersistenceError,
    SnapshotCorruptError,
    SnapshotError,
    SnapshotNotFoundError,
)
from core.types import Entry, ValueKind, classify_value
from store.json_map import JsonMap

__all__ = [
    "Entry",
    "InvalidKeyError",
    "InvalidOperationError",
    "InvalidValueError",
    "JsonMap",
    "JsonMapConfig",
    "JsonMapConfigError",
    "JsonMapError",
    "PersistenceError",
    "SnapshotCorruptError",
    "SnapshotError",
    "SnapshotNotFoundError",
    "ValueKind",
    "classify_value",
]
