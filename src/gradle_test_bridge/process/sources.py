"""Incremental byte sources for tailing process output."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Optional, Union

from gradle_test_bridge.core.logging import get_logger

LOGGER = get_logger(__name__)

READ_CHUNK_SIZE = 65536


class ByteSource(ABC):
    """A growing stream of bytes read without blocking the event loop."""

    @abstractmethod
    async def read(self) -> bytes:
        """Return bytes that arrived since the previous call (may be empty)."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying handle. Safe to call repeatedly."""


class FileByteSource(ByteSource):
    """Tails a file that another process appends to.

    The file may not exist yet; reads return nothing until it does.
    """

    def __init__(self, path: Union[str, Path], max_read: int = 1024 * 1024):
        self.path = Path(path)
        self._max_read = max_read
        self._handle: Optional[BinaryIO] = None
        self._closed = False

    async def read(self) -> bytes:
        if self._closed:
            return b""
        if self._handle is None:
            try:
                self._handle = open(self.path, "rb")
            except FileNotFoundError:
                return b""

        chunks = []
        total = 0
        while total < self._max_read:
            chunk = self._handle.read(min(READ_CHUNK_SIZE, self._max_read - total))
            if not chunk:
                break
            chunks.append(chunk)
            total += len(chunk)
        return b"".join(chunks)

    def close(self) -> None:
        self._closed = True
        if self._handle is not None:
            try:
                self._handle.close()
            except OSError as e:
                LOGGER.debug(f"Failed to close {self.path}: {e}")
            self._handle = None

