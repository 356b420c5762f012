"""Unit tests for async subprocess helpers."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

import pytest

from gradle_test_bridge.core.subprocess_runner import merged_env, run_command


class TestMergedEnv:
    """Tests for merged_env."""

    def test_none_when_empty(self) -> None:
        """Test no extra variables means inherit the environment."""
        assert merged_env(None) is None
        assert merged_env({}) is None

    def test_overrides_current_environment(self) -> None:
        """Test extra variables are layered over os.environ."""
        env = merged_env({"GRADLE_TEST_BRIDGE_X": "1"})
        assert env is not None
        assert env["GRADLE_TEST_BRIDGE_X"] == "1"
        assert env.get("PATH") == os.environ.get("PATH")


class TestRunCommand:
    """Tests for run_command."""

    @pytest.mark.asyncio
    async def test_captures_output(self, tmp_path: Path) -> None:
        """Test stdout, stderr and return code are captured."""
        result = await run_command(
            [sys.executable, "-c", "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)"],
            cwd=tmp_path,
        )
        assert result.returncode == 3
        assert result.stdout.strip() == "out"
        assert result.stderr.strip() == "err"

    @pytest.mark.asyncio
    async def test_passes_environment(self, tmp_path: Path) -> None:
        """Test extra environment variables reach the child."""
        result = await run_command(
            [sys.executable, "-c", "import os; print(os.environ['BRIDGE_VALUE'])"],
            cwd=tmp_path,
            env={"BRIDGE_VALUE": "42"},
        )
        assert result.stdout.strip() == "42"

    @pytest.mark.asyncio
    async def test_timeout(self, tmp_path: Path) -> None:
        """Test a hanging command raises TimeoutExpired."""
        with pytest.raises(subprocess.TimeoutExpired):
            await run_command(
                [sys.executable, "-c", "import time; time.sleep(30)"],
                cwd=tmp_path,
                timeout=0.5,
            )

    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_path: Path) -> None:
        """Test a missing executable raises SubprocessError."""
        with pytest.raises(subprocess.SubprocessError):
            await run_command(["definitely-not-a-real-binary-xyz"], cwd=tmp_path)
