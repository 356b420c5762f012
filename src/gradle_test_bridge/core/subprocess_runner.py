"""Async subprocess helpers.

Short-lived helper commands (such as querying Gradle properties) run through
:func:`run_command` so the event loop stays responsive while they execute.
"""

from __future__ import annotations

import asyncio
import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Union

from gradle_test_bridge.core.logging import get_logger

LOGGER = get_logger(__name__)


def merged_env(env: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
    """Return the current environment updated with ``env``, or None."""
    if not env:
        return None
    merged = dict(os.environ)
    merged.update(env)
    return merged


async def run_command(
    cmd: List[str],
    cwd: Union[str, Path],
    timeout: float = 120,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """Run a command to completion and capture its output.

    Args:
        cmd: Command and arguments to run.
        cwd: Working directory for the command.
        timeout: Timeout in seconds (default: 120).
        env: Extra environment variables.

    Returns:
        CompletedProcess with decoded stdout/stderr.

    Raises:
        subprocess.TimeoutExpired: If the command times out.
        subprocess.SubprocessError: If the command fails to start.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd),
            env=merged_env(env),
        )
    except OSError as e:
        raise subprocess.SubprocessError(f"Failed to run {cmd[0]}: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise subprocess.TimeoutExpired(cmd, timeout)
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
        raise

    return subprocess.CompletedProcess(
        args=cmd,
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
