"""Unit tests for cancellation and backoff helpers."""

from __future__ import annotations

import asyncio
import itertools
import time
from typing import List

import pytest

from gradle_test_bridge.core.backoff import Backoff
from gradle_test_bridge.core.cancellation import CancellationToken, cancellable_sleep


class TestBackoff:
    """Tests for Backoff."""

    def test_default_delays(self) -> None:
        """Test default delays grow by 1.5x and cap at 500ms."""
        delays = list(itertools.islice(Backoff().delays(), 6))
        assert delays[0] == pytest.approx(0.1)
        assert delays[1] == pytest.approx(0.15)
        assert delays[2] == pytest.approx(0.225)
        assert delays[3] == pytest.approx(0.3375)
        assert delays[4] == pytest.approx(0.5)
        assert delays[5] == pytest.approx(0.5)

    def test_constant_backoff(self) -> None:
        """Test factor 1 keeps the initial delay."""
        delays = list(itertools.islice(Backoff(0.2, 1.0, 1.0).delays(), 3))
        assert delays == [0.2, 0.2, 0.2]


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_initially_not_cancelled(self) -> None:
        """Test a new token is not cancelled."""
        assert CancellationToken().cancelled is False

    def test_callbacks_run_once(self) -> None:
        """Test callbacks run once even if cancel is repeated."""
        calls: List[str] = []
        token = CancellationToken()
        token.add_callback(lambda: calls.append("a"))
        token.cancel()
        token.cancel()
        assert token.cancelled
        assert calls == ["a"]

    def test_callback_after_cancel_runs_immediately(self) -> None:
        """Test a callback added after cancellation runs at once."""
        calls: List[str] = []
        token = CancellationToken()
        token.cancel()
        token.add_callback(lambda: calls.append("late"))
        assert calls == ["late"]

    def test_failing_callback_does_not_stop_others(self) -> None:
        """Test a raising callback is logged and the rest still run."""
        calls: List[str] = []

        def broken() -> None:
            raise RuntimeError("boom")

        token = CancellationToken()
        token.add_callback(broken)
        token.add_callback(lambda: calls.append("second"))
        token.cancel()
        assert calls == ["second"]

    @pytest.mark.asyncio
    async def test_wait_returns_after_cancel(self) -> None:
        """Test wait wakes up when cancel is called."""
        token = CancellationToken()
        loop = asyncio.get_running_loop()
        loop.call_later(0.05, token.cancel)
        await asyncio.wait_for(token.wait(), timeout=2)
        assert token.cancelled

    @pytest.mark.asyncio
    async def test_wait_on_cancelled_token(self) -> None:
        """Test wait returns immediately for an already cancelled token."""
        token = CancellationToken()
        token.cancel()
        await asyncio.wait_for(token.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_sleep_not_cancelled(self) -> None:
        """Test sleep returns False when it runs to completion."""
        assert await CancellationToken().sleep(0.01) is False

    @pytest.mark.asyncio
    async def test_sleep_interrupted(self) -> None:
        """Test sleep returns True early when cancelled."""
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.05, token.cancel)
        start = time.monotonic()
        assert await token.sleep(5) is True
        assert time.monotonic() - start < 2

    @pytest.mark.asyncio
    async def test_cancellable_sleep_without_token(self) -> None:
        """Test cancellable_sleep without a token is a plain sleep."""
        assert await cancellable_sleep(0.01, None) is False
