"""Per-identity serialization of snapshot reconciliation.

Each snapshot path gets one ``asyncio.Lock`` per running event loop.
Holding it across load, patch, and write keeps overlapping mutations on the
same store from losing updates; asyncio locks wake waiters in FIFO order so
writes land in the order they were issued.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
import weakref


class IdentityLockRegistry:
    """Registry of reconciliation locks keyed by event loop and path."""

    def __init__(self) -> None:
        self._locks: weakref.WeakKeyDictionary[
            asyncio.AbstractEventLoop, dict[Path, asyncio.Lock]
        ] = weakref.WeakKeyDictionary()

    def lock_for(self, path: Path) -> asyncio.Lock:
        """Return the lock guarding a snapshot path on the running loop.

        Raises:
            RuntimeError: If called outside a running event loop.
        """
        loop = asyncio.get_running_loop()
        loop_locks = self._locks.get(loop)
        if loop_locks is None:
            loop_locks = {}
            self._locks[loop] = loop_locks
        lock = loop_locks.get(path)
        if lock is None:
            lock = asyncio.Lock()
            loop_locks[path] = lock
        return lock


_DEFAULT_LOCKS = IdentityLockRegistry()


def default_lock_registry() -> IdentityLockRegistry:
    """Return the process-wide lock registry."""
    return _DEFAULT_LOCKS
