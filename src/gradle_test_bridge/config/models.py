"""Configuration models for gradle-test-bridge."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from gradle_test_bridge.core.backoff import Backoff
from gradle_test_bridge.core.errors import ConfigError

READINESS_STRATEGIES = ("port", "log")

DEFAULT_READINESS_TIMEOUT = 30.0
FAST_READINESS_TIMEOUT = 10.0

# Printed by the JDWP agent once the debug socket is listening.
DEFAULT_READINESS_MARKER = "Listening for transport dt_socket at address:"


@dataclass
class ReadinessConfig:
    """How to decide that the JVM accepts a debugger."""

    strategy: str = "port"
    timeout: float = DEFAULT_READINESS_TIMEOUT
    fast: bool = False
    marker: str = DEFAULT_READINESS_MARKER
    initial_delay: float = 0.1
    backoff_factor: float = 1.5
    max_delay: float = 0.5
    attempt_timeout: float = 0.1
    window: int = 4096

    @property
    def effective_timeout(self) -> float:
        if self.fast and self.timeout == DEFAULT_READINESS_TIMEOUT:
            return FAST_READINESS_TIMEOUT
        return self.timeout

    @property
    def backoff(self) -> Backoff:
        return Backoff(self.initial_delay, self.backoff_factor, self.max_delay)


@dataclass
class OutputConfig:
    """Live output forwarding settings."""

    backlog_limit: int = 65536
    poll_interval: float = 0.05


@dataclass
class BridgeConfig:
    """Top-level configuration.

    Defaults match a Kotlin debug adapter attaching to ``--debug-jvm`` on
    port 5005.
    """

    dap_adapter_type: str = "kotlin"
    dap_host: str = "localhost"
    dap_port: int = 5005
    dap_timeout_ms: int = 30000
    gradle_executable: Optional[str] = None
    results_timeout: float = 30.0
    results_settle: float = 0.5
    readiness: ReadinessConfig = field(default_factory=ReadinessConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def validate(self) -> None:
        """Raise ConfigError for values that cannot work."""
        if self.readiness.strategy not in READINESS_STRATEGIES:
            raise ConfigError(
                f"Unknown readiness strategy '{self.readiness.strategy}' "
                f"(expected one of: {', '.join(READINESS_STRATEGIES)})"
            )
        if not 0 < self.dap_port < 65536:
            raise ConfigError(f"Invalid debug port: {self.dap_port}")
        if self.readiness.timeout <= 0:
            raise ConfigError("readiness.timeout must be positive")
        if self.output.backlog_limit <= 0:
            raise ConfigError("output.backlog_limit must be positive")
        if not self.readiness.marker:
            raise ConfigError("readiness.marker must not be empty")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeConfig":
        """Build a config from a plain mapping, rejecting unknown keys."""
        data = dict(data)
        try:
            readiness = ReadinessConfig(**(data.pop("readiness", None) or {}))
            output = OutputConfig(**(data.pop("output", None) or {}))
            config = cls(readiness=readiness, output=output, **data)
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
        config.validate()
        return config
