# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Process Executor - Runs the engine binary and captures its output.

Every call runs one child process with the caller's environment entries
layered over the current environment. A timeout of ``NO_TIMEOUT`` lets
the child run for as long as it takes; any other timeout kills the child
when it expires and discards whatever it printed.
"""

import asyncio
import os
from typing import Dict, Protocol, Sequence

import structlog

from backupdriver.exceptions import (
    ExecutionError,
    ExecutionTimeoutError,
    SpawnError,
)

logger = structlog.get_logger()

NO_TIMEOUT: float | None = None

# Phrase the engine uses for an absent remote object; mount and OS errors
# saying "not found" or "does not exist" are real failures
NOT_FOUND_MARKERS = ("cannot find",)


class Executor(Protocol):
    """Protocol for anything that can run the engine binary."""

    async def execute(
        self,
        envs: Sequence[str],
        binary: str,
        args: Sequence[str],
        timeout: float | None,
    ) -> str:
        """
        Run a binary and return its stdout.

        Args:
            envs: KEY=VALUE entries added to the child's environment
            binary: Path to the binary
            args: Command-line arguments
            timeout: Seconds before the child is killed, or NO_TIMEOUT

        Raises:
            ExecutionError: On non-zero exit, spawn failure or timeout
        """
        ...


def _merge_env(envs: Sequence[str]) -> Dict[str, str]:
    merged = dict(os.environ)
    for entry in envs:
        key, sep, value = entry.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid environment entry for key {key!r}")
        merged[key] = value
    return merged


class ProcessExecutor:
    """Executor backed by asyncio subprocesses."""

    async def execute(
        self,
        envs: Sequence[str],
        binary: str,
        args: Sequence[str],
        timeout: float | None,
    ) -> str:
        args = list(args)
        logger.debug("engine_command_started", binary=binary, args=args, timeout=timeout)

        try:
            process = await asyncio.create_subprocess_exec(
                binary,
                *args,
                env=_merge_env(envs),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise SpawnError(
                f"failed to start {binary}: {e.strerror or e}",
                binary=binary,
                args=args,
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            await _kill(process)
            logger.warning("engine_command_timed_out", binary=binary, args=args, timeout=timeout)
            raise ExecutionTimeoutError(
                f"timeout executing {binary} {' '.join(args)} after {timeout}s",
                binary=binary,
                args=args,
            )
        finally:
            if process.returncode is None:
                await _kill(process)

        output = stdout.decode("utf-8", errors="replace")
        error_output = stderr.decode("utf-8", errors="replace")

        if process.returncode != 0:
            raise ExecutionError(
                f"failed to execute: {binary} {args}, output {output}, "
                f"stderr {error_output}: exit status {process.returncode}",
                binary=binary,
                args=args,
                returncode=process.returncode,
                output=output,
                stderr=error_output,
            )

        return output


async def _kill(process: asyncio.subprocess.Process) -> None:
    try:
        process.kill()
    except ProcessLookupError:
        pass
    await process.wait()


def is_not_found(err: BaseException) -> bool:
    """
    Check whether an error means the remote object is absent.

    Only a completed, non-zero exit of the engine counts; timeouts and
    spawn failures are never treated as absence.
    """
    if not isinstance(err, ExecutionError):
        return False
    if isinstance(err, (ExecutionTimeoutError, SpawnError)):
        return False
    text = f"{err.output}\n{err.stderr}"
    return any(marker in text for marker in NOT_FOUND_MARKERS)
