"""Exception hierarchy for gradle-test-bridge."""

from __future__ import annotations

from typing import Optional


class BridgeError(Exception):
    """Base class for all errors raised by gradle-test-bridge."""


class ConfigError(BridgeError):
    """Invalid or unreadable configuration."""


class TreeError(BridgeError):
    """Malformed position tree input."""


class SpawnError(BridgeError):
    """The test runner process could not be created."""

    def __init__(self, command: str, cause: Optional[BaseException] = None):
        self.command = command
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to start {command}{detail}")


class ReadinessError(BridgeError):
    """The test runner never became ready for debugger attachment."""

    def __init__(self, reason: str, message: str):
        self.reason = reason
        super().__init__(message)
