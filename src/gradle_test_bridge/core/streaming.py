"""Consumers for live test runner output.

A consumer receives raw output chunks in the order Gradle produced them. A
consumer can report itself unavailable (for example a debugger console that
has not opened yet); the forwarder then buffers until it becomes available.
"""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from typing import IO, Callable, Optional


class OutputConsumer(ABC):
    """Receives output chunks from a running test process."""

    @property
    def available(self) -> bool:
        """Whether the consumer can accept output right now."""
        return True

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Deliver one chunk of output."""


class NullConsumer(OutputConsumer):
    """Consumer that discards everything."""

    def write(self, data: bytes) -> None:
        pass


class CLIOutputConsumer(OutputConsumer):
    """Writes decoded output to a text stream (stderr by default)."""

    def __init__(
        self,
        output: Optional[IO[str]] = None,
        show_output: bool = True,
    ):
        self._output = output or sys.stderr
        self._show_output = show_output

    def write(self, data: bytes) -> None:
        if not self._show_output:
            return
        self._output.write(data.decode("utf-8", errors="replace"))
        self._output.flush()


class CallbackConsumer(OutputConsumer):
    """Forwards chunks to a callback, e.g. an editor's output channel."""

    def __init__(
        self,
        on_output: Optional[Callable[[bytes], None]] = None,
        is_available: Optional[Callable[[], bool]] = None,
    ):
        self._on_output = on_output
        self._is_available = is_available

    @property
    def available(self) -> bool:
        if self._is_available is None:
            return True
        return self._is_available()

    def write(self, data: bytes) -> None:
        if self._on_output:
            self._on_output(data)


class DebugSession:
    """The debug session a run reports to.

    Passed explicitly to the forwarder and orchestrator so concurrent runs
    each talk to their own session. The debugger client attaches its output
    consumer once its console exists.
    """

    def __init__(self, consumer: Optional[OutputConsumer] = None):
        self._consumer = consumer

    def attach(self, consumer: OutputConsumer) -> None:
        self._consumer = consumer

    def detach(self) -> None:
        self._consumer = None

    def output_consumer(self) -> Optional[OutputConsumer]:
        return self._consumer
