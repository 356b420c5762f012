"""Forwarding live process output to a consumer that may attach late."""

from __future__ import annotations

import asyncio
from typing import Optional

from gradle_test_bridge.core.logging import get_logger
from gradle_test_bridge.core.streaming import DebugSession, OutputConsumer
from gradle_test_bridge.process.sources import ByteSource

LOGGER = get_logger(__name__)


class Backlog:
    """Bounded byte buffer that drops the oldest bytes on overflow."""

    def __init__(self, limit: int):
        if limit <= 0:
            raise ValueError("backlog limit must be positive")
        self.limit = limit
        self.dropped = 0
        self._buffer = bytearray()

    def append(self, data: bytes) -> None:
        self._buffer.extend(data)
        overflow = len(self._buffer) - self.limit
        if overflow > 0:
            del self._buffer[:overflow]
            self.dropped += overflow

    def drain(self) -> bytes:
        data = bytes(self._buffer)
        self._buffer.clear()
        return data

    def __len__(self) -> int:
        return len(self._buffer)


class OutputForwarder:
    """Tails a byte source and hands chunks to the current consumer.

    The consumer is either attached explicitly or taken from the injected
    debug session on every tick. While none is available, output collects in
    the backlog and is delivered as one chunk ahead of newer output once a
    consumer shows up.
    """

    def __init__(
        self,
        session: Optional[DebugSession] = None,
        backlog_limit: int = 65536,
        poll_interval: float = 0.05,
    ):
        self.session = session
        self.backlog = Backlog(backlog_limit)
        self.poll_interval = poll_interval
        self._consumer: Optional[OutputConsumer] = None

    def attach(self, consumer: OutputConsumer) -> None:
        """Attach ``consumer`` and flush the backlog to it right away."""
        self._consumer = consumer
        self.flush()

    def detach(self) -> None:
        self._consumer = None

    def current_consumer(self) -> Optional[OutputConsumer]:
        consumer = self._consumer
        if consumer is None and self.session is not None:
            consumer = self.session.output_consumer()
        if consumer is None or not consumer.available:
            return None
        return consumer

    def flush(self) -> bool:
        """Deliver the backlog if a consumer is available.

        Returns:
            True if the backlog is empty afterwards.
        """
        if not len(self.backlog):
            return True
        consumer = self.current_consumer()
        if consumer is None:
            return False
        return self._write(consumer, self.backlog.drain())

    def deliver(self, data: bytes) -> None:
        """Route ``data`` to the consumer, keeping order with the backlog."""
        if not data:
            self.flush()
            return
        if self.flush():
            consumer = self.current_consumer()
            if consumer is not None:
                self._write(consumer, data)
                return
        self.backlog.append(data)

    def _write(self, consumer: OutputConsumer, data: bytes) -> bool:
        try:
            consumer.write(data)
        except Exception as e:
            LOGGER.debug(f"Output consumer rejected {len(data)} bytes, buffering: {e}")
            pending = self.backlog.drain()
            self.backlog.append(data + pending)
            return False
        return True

    def start(self, source: ByteSource) -> "ForwarderHandle":
        """Start tailing ``source`` in a background task."""
        handle = ForwarderHandle(self, source)
        handle.start()
        return handle


class ForwarderHandle:
    """Running forwarder task for one byte source."""

    def __init__(self, forwarder: OutputForwarder, source: Optional[ByteSource]):
        self.forwarder = forwarder
        self.source = source
        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        if self.source is None:
            return
        while True:
            self.forwarder.deliver(await self.source.read())
            await asyncio.sleep(self.forwarder.poll_interval)

    async def stop(self) -> None:
        """Stop tailing, deliver what is left and release the source.

        Idempotent, and safe when the task never started.
        """
        if self._stopped:
            return
        self._stopped = True

        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        elif task is not None and not task.cancelled() and task.exception() is not None:
            LOGGER.warning(f"Output forwarding failed: {task.exception()}")

        if self.source is None:
            return
        try:
            self.forwarder.deliver(await self.source.read())
        except OSError as e:
            LOGGER.debug(f"Final output read failed: {e}")
        self.forwarder.flush()
        self.source.close()
