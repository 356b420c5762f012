"""Spawning, readiness detection and output forwarding for test runs."""

from gradle_test_bridge.process.forwarder import Backlog, OutputForwarder
from gradle_test_bridge.process.orchestrator import ProcessHandle, ProcessOrchestrator
from gradle_test_bridge.process.readiness import (
    LogPatternReadiness,
    PortReadiness,
    ReadinessDetector,
    ReadinessStrategy,
    create_strategy,
)
from gradle_test_bridge.process.sources import (
    ByteSource,
    FileByteSource,
)

__all__ = [
    "Backlog",
    "ByteSource",
    "FileByteSource",
    "LogPatternReadiness",
    "OutputForwarder",
    "PortReadiness",
    "ProcessHandle",
    "ProcessOrchestrator",
    "ReadinessDetector",
    "ReadinessStrategy",
    "create_strategy",
]
