"""Integration tests for snapshot durability across restarts."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path

import pytest

from core.config import JsonMapConfig
from store.json_map import JsonMap
from store.snapshot_cache import SnapshotCache


def _config(tmp_path: Path) -> JsonMapConfig:
    return replace(JsonMapConfig.from_env(), data_root=tmp_path)


@pytest.mark.asyncio
async def test_values_survive_restart(tmp_path: Path) -> None:
    """A fresh map on the same identity should see every written value."""
    store = JsonMap("profile", _config(tmp_path))
    await store.set("user", {"name": "ada", "langs": ["py"]})
    await store.set(7, 3.5)
    await store.push("log", "ignored")
    await store.set("log", [])
    await store.push("log", {"event": "login"})
    await store.set_prop("user.name", "grace")

    restarted = JsonMap("profile", _config(tmp_path), cache=SnapshotCache())

    assert restarted.array() == [
        ("user", {"name": "grace", "langs": ["py"]}),
        (7, 3.5),
        ("log", [{"event": "login"}]),
    ]


@pytest.mark.asyncio
async def test_concurrent_increments_survive_restart(tmp_path: Path) -> None:
    """Racing increments should all be durable."""
    store = JsonMap("counter", _config(tmp_path))
    await store.set("hits", 0)

    await asyncio.gather(*(store.inc("hits") for _ in range(40)))
    restarted = JsonMap("counter", _config(tmp_path), cache=SnapshotCache())

    assert restarted.get("hits") == 40


@pytest.mark.asyncio
async def test_deleted_keys_stay_deleted_after_restart(tmp_path: Path) -> None:
    """Deletes and clears should be reflected on disk."""
    store = JsonMap("demo", _config(tmp_path))
    await store.set("a", 1)
    await store.set("b", 2)
    await store.delete("a")

    assert JsonMap("demo", _config(tmp_path)).array() == [("b", 2)]
    await store.clear()
    assert JsonMap("demo", _config(tmp_path)).size() == 0


def test_missing_snapshot_starts_empty(tmp_path: Path) -> None:
    """No snapshot file is the normal first-run path."""
    store = JsonMap("fresh", _config(tmp_path))

    assert store.size() == 0


@pytest.mark.parametrize("content", ["{not json", '{"key": "a"}', "[1, 2, 3]", ""])
def test_corrupt_snapshot_starts_empty(tmp_path: Path, content: str) -> None:
    """Invalid snapshot content should not raise at startup."""
    snapshot = tmp_path / "data" / "broken.json"
    snapshot.parent.mkdir(parents=True)
    snapshot.write_text(content, encoding="utf-8")

    store = JsonMap("broken", _config(tmp_path))

    assert store.size() == 0


@pytest.mark.asyncio
async def test_corrupt_snapshot_is_replaced_on_first_write(tmp_path: Path) -> None:
    """The first write after a corrupt load should produce a valid snapshot."""
    snapshot = tmp_path / "data" / "broken.json"
    snapshot.parent.mkdir(parents=True)
    snapshot.write_text("garbage", encoding="utf-8")
    store = JsonMap("broken", _config(tmp_path))

    await store.set("a", 1)

    assert JsonMap("broken", _config(tmp_path)).array() == [("a", 1)]


def test_restart_reads_disk_not_cache(tmp_path: Path) -> None:
    """Construction should observe the file as it is now, not a cached copy."""
    snapshot = tmp_path / "data" / "demo.json"
    snapshot.parent.mkdir(parents=True)
    snapshot.write_text('[{"key": "a", "value": 1}]', encoding="utf-8")
    assert JsonMap("demo", _config(tmp_path)).get("a") == 1

    snapshot.write_text('[{"key": "a", "value": 2}]', encoding="utf-8")

    assert JsonMap("demo", _config(tmp_path)).get("a") == 2


def test_duplicate_keys_in_snapshot_keep_last_value(tmp_path: Path) -> None:
    """Hydration applies records in order so later duplicates win."""
    snapshot = tmp_path / "data" / "dupes.json"
    snapshot.parent.mkdir(parents=True)
    snapshot.write_text(
        '[{"key": "a", "value": 1}, {"key": "b", "value": 2}, {"key": "a", "value": 3}]',
        encoding="utf-8",
    )

    store = JsonMap("dupes", _config(tmp_path))

    assert store.array() == [("a", 3), ("b", 2)]


@pytest.mark.parametrize(
    "content",
    [
        '[{"key": "n", "value": ' + "9" * 5000 + "}]",
        "[" * 200_000 + "]" * 200_000,
        '[{"key": "a", "value": NaN}]',
        '[{"key": "a", "value": -Infinity}]',
    ],
    ids=["long_int", "deep_nesting", "nan", "infinity"],
)
def test_unwritable_snapshot_content_starts_empty(tmp_path: Path, content: str) -> None:
    """Content json accepts but cannot write back should load as an empty table."""
    snapshot = tmp_path / "data" / "odd.json"
    snapshot.parent.mkdir(parents=True)
    snapshot.write_text(content, encoding="utf-8")

    store = JsonMap("odd", _config(tmp_path))

    assert store.size() == 0


@pytest.mark.asyncio
async def test_writes_resume_after_non_finite_snapshot(tmp_path: Path) -> None:
    """A snapshot holding NaN should be replaced by the next write, not block it."""
    snapshot = tmp_path / "data" / "odd.json"
    snapshot.parent.mkdir(parents=True)
    snapshot.write_text('[{"key": "a", "value": NaN}]', encoding="utf-8")
    store = JsonMap("odd", _config(tmp_path))

    await store.set("b", 1)
    await store.set("c", 2)

    assert JsonMap("odd", _config(tmp_path)).array() == [("b", 1), ("c", 2)]
