"""Per-project mutual exclusion for persistent scaffold directories.

Persistent scaffolds are keyed by project identity and shared between
runs. Writers hold an in-process asyncio.Lock for the identity plus an
exclusive lock file inside the directory, so separate processes are
serialized too.
"""

import asyncio
import logging
import os
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_delay, wait_fixed

from sandpreview.config import LocksConfig
from sandpreview.exceptions import ProjectLockTimeoutError

logger = logging.getLogger(__name__)

LOCK_FILENAME = ".sandpreview.lock"


class ProjectLockRegistry:
    """Hands out per-project locks. Share one instance per process."""

    def __init__(self, config: LocksConfig | None = None) -> None:
        self._config = config or LocksConfig()
        self._locks: dict[str, asyncio.Lock] = {}
        # Holders plus waiters per project; the lock is dropped when this reaches zero
        self._users: dict[str, int] = {}

    def _lock_for(self, project_id: str) -> asyncio.Lock:
        lock = self._locks.get(project_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[project_id] = lock
        return lock

    def _release_user(self, project_id: str) -> None:
        remaining = self._users[project_id] - 1
        if remaining:
            self._users[project_id] = remaining
            return
        del self._users[project_id]
        del self._locks[project_id]

    def _remove_if_stale(self, lock_path: Path) -> None:
        try:
            age = time.time() - lock_path.stat().st_mtime
        except FileNotFoundError:
            return
        if age > self._config.stale_after_seconds:
            logger.warning("Removing stale lock file %s (%.0fs old)", lock_path, age)
            lock_path.unlink(missing_ok=True)

    def _try_create(self, lock_path: Path) -> None:
        self._remove_if_stale(lock_path)
        fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        with os.fdopen(fd, "w") as f:
            f.write(str(os.getpid()))

    async def _acquire_file(self, project_id: str, lock_path: Path) -> None:
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(FileExistsError),
                stop=stop_after_delay(self._config.timeout_seconds),
                wait=wait_fixed(self._config.poll_interval_seconds),
            ):
                with attempt:
                    self._try_create(lock_path)
        except RetryError as e:
            raise ProjectLockTimeoutError(project_id, self._config.timeout_seconds) from e

    @asynccontextmanager
    async def hold(self, project_id: str, directory: Path) -> AsyncIterator[None]:
        """Hold the lock for project_id while the block writes to directory.

        Raises:
            ProjectLockTimeoutError: If another holder keeps the lock past the timeout
        """
        lock = self._lock_for(project_id)
        self._users[project_id] = self._users.get(project_id, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self._config.timeout_seconds)
            except asyncio.TimeoutError as e:
                raise ProjectLockTimeoutError(project_id, self._config.timeout_seconds) from e

            lock_path = directory / LOCK_FILENAME
            try:
                directory.mkdir(parents=True, exist_ok=True)
                await self._acquire_file(project_id, lock_path)
                try:
                    yield
                finally:
                    lock_path.unlink(missing_ok=True)
            finally:
                lock.release()
        finally:
            self._release_user(project_id)

    def is_locked(self, project_id: str) -> bool:
        lock = self._locks.get(project_id)
        return lock is not None and lock.locked()
