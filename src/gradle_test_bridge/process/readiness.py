"""Detecting when the test JVM accepts a debugger.

Two interchangeable strategies exist: probing the debug port, or watching the
process output for the JDWP "listening" line. The polling loop around them
(backoff, process liveness, deadline, cancellation) is shared.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

from gradle_test_bridge.config.models import ReadinessConfig
from gradle_test_bridge.core.backoff import Backoff
from gradle_test_bridge.core.cancellation import CancellationToken, cancellable_sleep
from gradle_test_bridge.core.logging import get_logger
from gradle_test_bridge.core.models import ReadinessFailure, ReadinessOutcome
from gradle_test_bridge.process.sources import ByteSource

LOGGER = get_logger(__name__)


class ReadinessStrategy(ABC):
    """A single readiness probe."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human readable description used in log messages."""

    @abstractmethod
    async def check(self) -> bool:
        """Return True once the process is ready."""

    def close(self) -> None:
        """Release resources held by the probe."""


class PortReadiness(ReadinessStrategy):
    """Ready once a TCP connection to ``host:port`` succeeds."""

    def __init__(self, host: str, port: int, attempt_timeout: float = 0.1):
        self.host = host
        self.port = port
        self.attempt_timeout = attempt_timeout

    @property
    def description(self) -> str:
        return f"debug port {self.host}:{self.port}"

    async def check(self) -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.attempt_timeout,
            )
        except (OSError, asyncio.TimeoutError):
            return False

        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True


class LogPatternReadiness(ReadinessStrategy):
    """Ready once ``marker`` shows up in the process output.

    Only a trailing window of recent output is kept, large enough that a
    marker split across two reads is still found.
    """

    def __init__(self, source: ByteSource, marker: bytes, window: int = 4096):
        if not marker:
            raise ValueError("marker must not be empty")
        self.source = source
        self.marker = marker
        self.window = max(window, len(marker))
        self._tail = b""
        self._seen = False

    @property
    def description(self) -> str:
        return f"output marker {self.marker.decode('utf-8', errors='replace')!r}"

    async def check(self) -> bool:
        if self._seen:
            return True
        data = await self.source.read()
        if not data:
            return False
        recent = self._tail + data
        if self.marker in recent:
            self._seen = True
            return True
        self._tail = recent[-self.window:]
        return False

    def close(self) -> None:
        self.source.close()


class ReadinessDetector:
    """Polls a strategy until ready, timed out, process exit or cancellation."""

    def __init__(
        self,
        strategy: ReadinessStrategy,
        is_alive: Callable[[], bool],
        backoff: Optional[Backoff] = None,
    ):
        self.strategy = strategy
        self._is_alive = is_alive
        self._backoff = backoff or Backoff()

    async def wait_ready(
        self,
        timeout: float,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ReadinessOutcome:
        """Wait until the strategy reports readiness.

        Success is never reported once ``timeout`` has elapsed. A process that
        exits before readiness fails fast with ``process_exited``.

        Args:
            timeout: Overall timeout in seconds.
            cancel_token: Aborts waiting with ``cancelled``.

        Returns:
            ReadinessOutcome describing success or the failure reason.
        """
        start = time.monotonic()
        deadline = start + timeout
        delays = self._backoff.delays()

        def outcome(ready: bool, reason: Optional[ReadinessFailure] = None) -> ReadinessOutcome:
            return ReadinessOutcome(ready=ready, reason=reason, elapsed=time.monotonic() - start)

        LOGGER.info(f"Waiting up to {timeout:g}s for {self.strategy.description}")

        while True:
            if cancel_token is not None and cancel_token.cancelled:
                return outcome(False, ReadinessFailure.CANCELLED)

            ready = await self.strategy.check()
            now = time.monotonic()
            if ready and now <= deadline:
                LOGGER.info(f"{self.strategy.description} is ready")
                return outcome(True)

            if not ready and not self._is_alive():
                # Output written just before exiting still counts.
                if await self.strategy.check() and time.monotonic() <= deadline:
                    return outcome(True)
                LOGGER.warning(f"Process exited before {self.strategy.description} became ready")
                return outcome(False, ReadinessFailure.PROCESS_EXITED)

            if now >= deadline:
                LOGGER.warning(f"Timed out after {timeout:g}s waiting for {self.strategy.description}")
                return outcome(False, ReadinessFailure.TIMEOUT)

            if await cancellable_sleep(min(next(delays), deadline - now), cancel_token):
                return outcome(False, ReadinessFailure.CANCELLED)


def create_strategy(
    config: ReadinessConfig,
    host: str,
    port: int,
    source: Optional[ByteSource] = None,
) -> ReadinessStrategy:
    """Build the strategy selected by ``config.strategy``.

    Raises:
        ValueError: If the log strategy is selected without a byte source,
            or the strategy name is unknown.
    """
    if config.strategy == "port":
        return PortReadiness(host, port, attempt_timeout=config.attempt_timeout)
    if config.strategy == "log":
        if source is None:
            raise ValueError("log readiness strategy requires an output source")
        return LogPatternReadiness(source, config.marker.encode("utf-8"), window=config.window)
    raise ValueError(f"Unknown readiness strategy: {config.strategy}")
