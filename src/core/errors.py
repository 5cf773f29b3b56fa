"""jsonmap exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Disk-layer errors are recoverable and mostly absorbed by the store,
while misuse errors surface to the caller.
"""

from __future__ import annotations


class JsonMapError(Exception):
    """Base exception for all jsonmap failures."""


class JsonMapConfigError(JsonMapError):
    """Raised for invalid runtime configuration or store identity."""


class SnapshotError(JsonMapError):
    """Raised for on-disk snapshot failures."""


class SnapshotNotFoundError(SnapshotError):
    """Raised when a snapshot file does not exist."""


class SnapshotCorruptError(SnapshotError):
    """Raised when a snapshot file exists but cannot be decoded."""


class PersistenceError(SnapshotError):
    """Raised when reading, writing, or removing a snapshot file fails."""


class InvalidOperationError(JsonMapError, ValueError):
    """Raised for unsupported or undefined arithmetic operations."""


class InvalidKeyError(JsonMapError, TypeError):
    """Raised when an entry key is not a string or integer."""


class InvalidValueError(JsonMapError, TypeError):
    """Raised when a value cannot be represented in a snapshot."""
