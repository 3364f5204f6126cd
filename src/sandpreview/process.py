"""Async subprocess execution shared by the registry, install and bundle stages."""

import asyncio
import logging
import time
from pathlib import Path

from sandpreview.core.schemas import CommandResult

logger = logging.getLogger(__name__)

# Unix convention (GNU timeout) so callers can tell timeouts from failures
TIMEOUT_EXIT_CODE = 124
NOT_FOUND_EXIT_CODE = 127


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, str):
        return data
    return data.decode("utf-8", errors="replace")


async def run_command(
    cmd: list[str],
    cwd: Path | None = None,
    timeout: float | None = None,
    env: dict[str, str] | None = None,
) -> CommandResult:
    """Run a command without blocking the event loop.

    Never raises for process-level problems: a missing executable yields
    exit code 127 and a timeout kills the process and yields 124.
    """
    start_time = time.time()
    logger.debug("Running %s (cwd=%s, timeout=%s)", cmd, cwd, timeout)

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=env,
        )
    except (FileNotFoundError, PermissionError) as e:
        return CommandResult(
            exit_code=NOT_FOUND_EXIT_CODE,
            stdout="",
            stderr=f"Cannot execute {cmd[0]}: {e}",
            duration_seconds=time.time() - start_time,
        )

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return CommandResult(
            exit_code=TIMEOUT_EXIT_CODE,
            stdout="",
            stderr=f"Timeout: {cmd[0]} exceeded {timeout}s limit",
            duration_seconds=time.time() - start_time,
            timed_out=True,
        )

    return CommandResult(
        exit_code=process.returncode if process.returncode is not None else 1,
        stdout=_decode(stdout),
        stderr=_decode(stderr),
        duration_seconds=time.time() - start_time,
    )
