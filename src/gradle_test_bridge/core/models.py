"""Core data models shared by the result and process layers."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

# Trailing "(...)" appended by JUnit to parameterized test names.
PARAMETER_SUFFIX = re.compile(r"\(.*\)$")


class PositionType(str, Enum):
    """Kinds of nodes in a position tree."""

    FILE = "file"
    NAMESPACE = "namespace"
    TEST = "test"


@dataclass(frozen=True)
class Position:
    """A node in the externally supplied test tree.

    Tests use ``package.Class.method`` ids, namespaces ``package.Class`` and
    files their path.
    """

    id: str
    type: PositionType
    path: str
    name: Optional[str] = None


@dataclass
class Failure:
    """A ``failure`` (or ``error``) block of a JUnit test case."""

    type: str
    message: str
    stack_trace: str = ""


def strip_parameters(test_name: str) -> str:
    """Remove a trailing parameter suffix such as ``(int, String)``."""
    return PARAMETER_SUFFIX.sub("", test_name)


def build_candidate_ids(class_name: str, test_name: str) -> List[str]:
    """Build position ids to try for a report entry, most specific first.

    The raw ``classname.name`` form comes first (JUnit 4 style), followed by
    the form with nested class separators (``$``) replaced by dots, which is
    how JUnit Jupiter reports nested classes.
    """
    name = strip_parameters(test_name)
    candidates = [f"{class_name}.{name}"]
    normalized = f"{class_name.replace('$', '.')}.{name}"
    if normalized not in candidates:
        candidates.append(normalized)
    return candidates


@dataclass
class ReportEntry:
    """One ``testcase`` element of a JUnit XML report."""

    class_name: str
    test_name: str
    failure: Optional[Failure] = None

    @property
    def failed(self) -> bool:
        return self.failure is not None

    def candidate_ids(self) -> List[str]:
        return build_candidate_ids(self.class_name, self.test_name)


@dataclass
class TestSuite:
    """One ``testsuite`` element and its test cases."""

    __test__ = False

    name: str
    entries: List[ReportEntry] = field(default_factory=list)


@dataclass
class ParsedReport:
    """All suites read from one report file."""

    path: Path
    suites: List[TestSuite] = field(default_factory=list)


class ResultStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"


@dataclass
class TestError:
    """Structured error for editor diagnostics. ``line`` is 0-based."""

    __test__ = False

    message: str
    line: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"message": self.message}
        if self.line is not None:
            data["line"] = self.line
        return data


@dataclass
class Result:
    """Outcome attached to exactly one position id."""

    status: ResultStatus
    short: Optional[str] = None
    errors: List[TestError] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.status == ResultStatus.FAILED

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status.value}
        if self.short is not None:
            data["short"] = self.short
        if self.errors:
            data["errors"] = [error.to_dict() for error in self.errors]
        return data


class ProcessState(str, Enum):
    """Lifecycle states of a supervised test runner process."""

    SPAWNING = "spawning"
    AWAITING_READINESS = "awaiting_readiness"
    READY = "ready"
    STREAMING = "streaming"
    TERMINATED = "terminated"


class TerminationReason(str, Enum):
    SPAWN_FAILURE = "spawn_failure"
    READINESS_TIMEOUT = "readiness_timeout"
    PROCESS_EXITED = "process_exited"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class ReadinessFailure(str, Enum):
    TIMEOUT = "timeout"
    PROCESS_EXITED = "process_exited"
    CANCELLED = "cancelled"


@dataclass
class ReadinessOutcome:
    """Result of waiting for the debug port or log marker."""

    ready: bool
    reason: Optional[ReadinessFailure] = None
    elapsed: float = 0.0


class RunStrategy(str, Enum):
    """How the test command is run."""

    INTEGRATED = "integrated"
    DEBUG_ATTACH = "debug_attach"

    @classmethod
    def parse(cls, value: str) -> "RunStrategy":
        """Parse CLI and editor spellings (``debug-attach``, ``dap``)."""
        normalized = value.strip().lower().replace("-", "_")
        if normalized == "dap":
            return cls.DEBUG_ATTACH
        return cls(normalized)


@dataclass
class ConnectionDescriptor:
    """What a debugger client needs to attach to the test JVM."""

    adapter_type: str
    host: str
    port: int
    project_root: str
    name: str = "Attach to Gradle Test"
    request: str = "attach"
    timeout_ms: int = 30000

    def to_dict(self) -> Dict[str, Any]:
        """Return the attach configuration in debug adapter spelling."""
        return {
            "type": self.adapter_type,
            "request": self.request,
            "name": self.name,
            "projectRoot": self.project_root,
            "hostName": self.host,
            "port": self.port,
            "timeout": self.timeout_ms,
        }


@dataclass
class RunSpec:
    """Everything needed to launch one Gradle test run."""

    command: List[str]
    cwd: Path
    results_directory: str
    strategy: RunStrategy = RunStrategy.INTEGRATED
    env: Optional[Dict[str, str]] = None
    connection: Optional[ConnectionDescriptor] = None
    init_script: Optional[Path] = None
