"""Turning parsed reports into per-position results.

Test positions get results straight from matched report entries. Namespace
and file positions never appear in reports; their status is derived from
the results of their descendants.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from gradle_test_bridge.core.logging import get_logger
from gradle_test_bridge.core.models import (
    Failure,
    ParsedReport,
    Position,
    PositionType,
    ReportEntry,
    Result,
    ResultStatus,
    TestError,
)
from gradle_test_bridge.core.tree import PositionTree
from gradle_test_bridge.results.matcher import PositionMatcher

LOGGER = get_logger(__name__)

PACKAGE_DECLARATION = re.compile(r"^\s*package\s+([\w.]+)\s*;?\s*$", re.MULTILINE)

# "at com.example.FooTest.bar(FooTest.kt:42)"
STACK_FRAME = re.compile(r"^\s*at\s+(?P<fqn>\S+?)\((?P<file>[^():]+\.[^():]+):(?P<line>\d+)\)\s*$")

PackageResolver = Callable[[Position, ReportEntry], str]


class SourcePackageResolver:
    """Resolves the package of a test from its source file.

    Reads the ``package`` declaration of the Java or Kotlin file the position
    lives in. Falls back to the package part of the report's class name when
    the file is unreadable or has no declaration.
    """

    def __init__(self) -> None:
        self._cache: Dict[str, Optional[str]] = {}

    def __call__(self, position: Position, entry: ReportEntry) -> str:
        package = self._read_package(position.path)
        if package is not None:
            return package
        return package_from_class_name(entry.class_name)

    def _read_package(self, path: str) -> Optional[str]:
        if path in self._cache:
            return self._cache[path]

        package = None
        try:
            content = Path(path).read_text(encoding="utf-8", errors="replace")
        except OSError:
            content = ""
        match = PACKAGE_DECLARATION.search(content)
        if match:
            package = match.group(1)

        self._cache[path] = package
        return package


def package_from_class_name(class_name: str) -> str:
    """``com.example.Outer$Inner`` -> ``com.example``."""
    outer = class_name.split("$", 1)[0]
    if "." not in outer:
        return ""
    return outer.rsplit(".", 1)[0]


def strip_exception_type(message: str, exception_type: str) -> str:
    """Remove the exception class name JUnit prefixes to failure messages.

    ``AssertionError: x!=y`` becomes ``x!=y``. When the first line of a
    multi-line message starts with the type, that whole line is dropped.
    """
    if not exception_type:
        return message

    simple_name = exception_type.rsplit(".", 1)[-1]
    for prefix in (exception_type, simple_name):
        if message.startswith(prefix + ": "):
            return message[len(prefix) + 2:]

    first_line, newline, rest = message.partition("\n")
    if newline and first_line.startswith(exception_type):
        return rest
    return message


def find_failure_line(stack_trace: str, package: str) -> Optional[int]:
    """Return the 0-based line of the first frame inside ``package``.

    Stack traces report 1-based line numbers; editors expect 0-based.
    """
    for line in stack_trace.splitlines():
        match = STACK_FRAME.match(line)
        if match and package in match.group("fqn"):
            return int(match.group("line")) - 1
    return None


def parse_error(failure: Failure, package: str) -> TestError:
    return TestError(
        message=strip_exception_type(failure.message, failure.type),
        line=find_failure_line(failure.stack_trace, package),
    )


def is_descendant_id(candidate_id: str, parent_id: str) -> bool:
    """True if ``candidate_id`` has ``parent_id`` as a proper prefix."""
    return candidate_id != parent_id and candidate_id.startswith(parent_id)


class ResultAggregator:
    """Builds the ``position id -> Result`` mapping for a run."""

    def __init__(
        self,
        matcher: Optional[PositionMatcher] = None,
        package_resolver: Optional[PackageResolver] = None,
    ):
        self.matcher = matcher or PositionMatcher()
        self._package_resolver = package_resolver or SourcePackageResolver()

    def aggregate(
        self,
        tree: PositionTree,
        reports: Iterable[ParsedReport],
    ) -> Dict[str, Result]:
        """Match every report entry and aggregate parent positions.

        Args:
            tree: Position tree of the run.
            reports: Parsed report files.

        Returns:
            Results keyed by position id. Test positions without a matching
            entry and parents without any descendant result are absent.
        """
        results: Dict[str, Result] = {}

        for report in reports:
            for suite in report.suites:
                for entry in suite.entries:
                    position = self.matcher.match(tree, entry)
                    if position is None:
                        continue
                    results[position.id] = self._entry_result(position, entry)

        self._aggregate_parents(tree, results)
        return results

    def _entry_result(self, position: Position, entry: ReportEntry) -> Result:
        failure = entry.failure
        if failure is None:
            return Result(status=ResultStatus.PASSED)

        package = self._package_resolver(position, entry)
        return Result(
            status=ResultStatus.FAILED,
            short=failure.message,
            errors=[parse_error(failure, package)],
        )

    def _aggregate_parents(self, tree: PositionTree, results: Dict[str, Result]) -> None:
        for position in tree.iter():
            if position.type not in (PositionType.NAMESPACE, PositionType.FILE):
                continue
            if position.id in results:
                continue

            child_statuses: List[ResultStatus] = [
                result.status
                for result_id, result in results.items()
                if is_descendant_id(result_id, position.id)
            ]
            if not child_statuses and position.type == PositionType.FILE:
                # File ids are paths, so descendants are found by source path.
                child_statuses = [
                    results[other.id].status
                    for other in tree.iter()
                    if other.id != position.id
                    and other.path == position.path
                    and other.id in results
                ]

            if not child_statuses:
                continue

            failed = ResultStatus.FAILED in child_statuses
            results[position.id] = Result(
                status=ResultStatus.FAILED if failed else ResultStatus.PASSED
            )
