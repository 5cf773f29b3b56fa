"""Unit tests for per-identity reconciliation locks."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from store.identity_locks import IdentityLockRegistry


@pytest.mark.asyncio
async def test_lock_for_returns_same_lock_per_path(tmp_path: Path) -> None:
    """One path should share one lock on a loop."""
    registry = IdentityLockRegistry()

    first = registry.lock_for(tmp_path / "a.json")
    second = registry.lock_for(tmp_path / "a.json")
    other = registry.lock_for(tmp_path / "b.json")

    assert first is second and first is not other


@pytest.mark.asyncio
async def test_lock_serializes_critical_sections(tmp_path: Path) -> None:
    """Holders of the same path lock should never overlap."""
    registry = IdentityLockRegistry()
    path = tmp_path / "a.json"
    events: list[str] = []

    async def critical(name: str) -> None:
        async with registry.lock_for(path):
            events.append(f"{name}-start")
            await asyncio.sleep(0.01)
            events.append(f"{name}-end")

    await asyncio.gather(critical("one"), critical("two"), critical("three"))

    assert events == [
        "one-start",
        "one-end",
        "two-start",
        "two-end",
        "three-start",
        "three-end",
    ]


def test_lock_for_requires_running_loop(tmp_path: Path) -> None:
    """Locks are bound to the running loop and cannot be taken outside one."""
    registry = IdentityLockRegistry()

    with pytest.raises(RuntimeError):
        registry.lock_for(tmp_path / "a.json")
