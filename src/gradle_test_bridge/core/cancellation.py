"""Cooperative cancellation token observed at every suspension point."""

from __future__ import annotations

import asyncio
from typing import Callable, List, Optional

from gradle_test_bridge.core.logging import get_logger

LOGGER = get_logger(__name__)


class CancellationToken:
    """Signals that a run should stop.

    The token is set once; callbacks registered before or after cancellation
    run exactly once each.
    """

    def __init__(self) -> None:
        self._event: Optional[asyncio.Event] = None
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._event is not None:
            self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                LOGGER.warning(f"Cancellation callback failed: {e}")

    def add_callback(self, callback: Callable[[], None]) -> None:
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        await self._event.wait()

    async def sleep(self, delay: float) -> bool:
        """Sleep for ``delay`` seconds unless cancelled first.

        Returns:
            True if the token was cancelled during (or before) the sleep.
        """
        if self._cancelled:
            return True
        try:
            await asyncio.wait_for(self.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True


async def cancellable_sleep(delay: float, token: Optional[CancellationToken]) -> bool:
    """``asyncio.sleep`` that wakes early when ``token`` fires."""
    if token is None:
        await asyncio.sleep(delay)
        return False
    return await token.sleep(delay)
