"""Tests for per-project locking."""

import asyncio
import os
import time
from pathlib import Path

import pytest

from sandpreview.config import LocksConfig
from sandpreview.engine.locks import LOCK_FILENAME, ProjectLockRegistry
from sandpreview.exceptions import ProjectLockTimeoutError


def fast_locks(**overrides) -> ProjectLockRegistry:
    settings = {"timeout_seconds": 0.3, "poll_interval_seconds": 0.02}
    settings.update(overrides)
    return ProjectLockRegistry(LocksConfig(**settings))


@pytest.mark.asyncio
async def test_hold_creates_and_removes_lock_file(tmp_path: Path) -> None:
    locks = fast_locks()

    async with locks.hold("demo", tmp_path):
        assert (tmp_path / LOCK_FILENAME).exists()
        assert locks.is_locked("demo")

    assert not (tmp_path / LOCK_FILENAME).exists()
    assert not locks.is_locked("demo")


@pytest.mark.asyncio
async def test_same_project_is_serialized(tmp_path: Path) -> None:
    locks = fast_locks(timeout_seconds=5.0)
    events: list[str] = []

    async def writer(name: str) -> None:
        async with locks.hold("demo", tmp_path):
            events.append(f"{name}-start")
            await asyncio.sleep(0.05)
            events.append(f"{name}-end")

    await asyncio.gather(writer("a"), writer("b"))

    assert events in (
        ["a-start", "a-end", "b-start", "b-end"],
        ["b-start", "b-end", "a-start", "a-end"],
    )


@pytest.mark.asyncio
async def test_different_projects_do_not_block(tmp_path: Path) -> None:
    locks = fast_locks()

    async with locks.hold("one", tmp_path / "one"):
        async with locks.hold("two", tmp_path / "two"):
            assert locks.is_locked("one") and locks.is_locked("two")


@pytest.mark.asyncio
async def test_in_process_timeout(tmp_path: Path) -> None:
    locks = fast_locks()

    async with locks.hold("demo", tmp_path):
        with pytest.raises(ProjectLockTimeoutError) as exc_info:
            async with locks.hold("demo", tmp_path):
                pass

    assert exc_info.value.project_id == "demo"
    assert exc_info.value.stage == "scaffolding"


@pytest.mark.asyncio
async def test_foreign_lock_file_times_out(tmp_path: Path) -> None:
    (tmp_path / LOCK_FILENAME).write_text("99999")

    locks = fast_locks()

    with pytest.raises(ProjectLockTimeoutError):
        async with locks.hold("demo", tmp_path):
            pass

    # Lock files owned by another process stay in place
    assert (tmp_path / LOCK_FILENAME).exists()
    assert not locks.is_locked("demo")


@pytest.mark.asyncio
async def test_stale_lock_file_is_replaced(tmp_path: Path) -> None:
    lock_path = tmp_path / LOCK_FILENAME
    lock_path.write_text("99999")
    old = time.time() - 3600
    os.utime(lock_path, (old, old))

    async with fast_locks(stale_after_seconds=60).hold("demo", tmp_path):
        assert lock_path.read_text() == str(os.getpid())

    assert not lock_path.exists()


@pytest.mark.asyncio
async def test_released_projects_are_forgotten(tmp_path: Path) -> None:
    locks = fast_locks(timeout_seconds=5.0)

    async def writer(project_id: str) -> None:
        async with locks.hold(project_id, tmp_path / project_id):
            await asyncio.sleep(0.01)

    await asyncio.gather(writer("demo"), writer("demo"), writer("other"))

    assert locks._locks == {}
    assert locks._users == {}


@pytest.mark.asyncio
async def test_waiter_keeps_lock_until_it_leaves(tmp_path: Path) -> None:
    locks = fast_locks(timeout_seconds=5.0)
    first_holds = asyncio.Event()
    release_first = asyncio.Event()

    async def first() -> None:
        async with locks.hold("demo", tmp_path):
            first_holds.set()
            await release_first.wait()

    async def second() -> None:
        async with locks.hold("demo", tmp_path):
            assert locks._users["demo"] == 1

    holder = asyncio.create_task(first())
    await first_holds.wait()
    waiter = asyncio.create_task(second())
    await asyncio.sleep(0.02)
    assert locks._users["demo"] == 2

    release_first.set()
    await asyncio.gather(holder, waiter)
    assert "demo" not in locks._locks


@pytest.mark.asyncio
async def test_timed_out_waiter_is_forgotten(tmp_path: Path) -> None:
    locks = fast_locks()

    async with locks.hold("demo", tmp_path):
        with pytest.raises(ProjectLockTimeoutError):
            async with locks.hold("demo", tmp_path):
                pass
        assert locks._users == {"demo": 1}

    assert locks._locks == {}
    assert locks._users == {}
