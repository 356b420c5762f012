"""JUnit XML report parsing.

Gradle writes one ``TEST-<class>.xml`` file per test class into the test
results directory. Each file holds a ``testsuite`` element (occasionally
wrapped in ``testsuites``) whose ``testcase`` children carry ``name`` and
``classname`` attributes and an optional ``failure`` or ``error`` child.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional, Union

from gradle_test_bridge.core.logging import get_logger
from gradle_test_bridge.core.models import (
    Failure,
    ParsedReport,
    ReportEntry,
    TestSuite,
)

LOGGER = get_logger(__name__)

XML_FILE_SUFFIX = ".xml"

# Child elements that mark a test case as failed.
FAILURE_TAGS = ("failure", "error")


def list_report_files(
    directory: Union[str, Path, None],
    suffix: str = XML_FILE_SUFFIX,
    modified_after: Optional[float] = None,
) -> List[Path]:
    """Return report files directly inside ``directory`` (not recursive).

    With ``modified_after`` (a timestamp), older files are left out.
    """
    if not directory:
        return []
    path = Path(directory)
    if not path.is_dir():
        return []
    try:
        files = sorted(
            child for child in path.iterdir()
            if child.is_file() and child.name.endswith(suffix)
        )
        if modified_after is not None:
            files = [f for f in files if f.stat().st_mtime >= modified_after]
        return files
    except OSError as e:
        LOGGER.warning(f"Cannot list test results directory {path}: {e}")
        return []


class ReportParser:
    """Reads a directory of JUnit XML reports."""

    def __init__(self, suffix: str = XML_FILE_SUFFIX):
        self._suffix = suffix

    def parse(
        self,
        directory: Union[str, Path, None],
        modified_after: Optional[float] = None,
    ) -> List[ParsedReport]:
        """Parse every report file in ``directory``.

        A missing or empty directory yields an empty list. A file that cannot
        be parsed is skipped with a warning; the remaining files are still
        returned.

        Args:
            directory: Test results directory.
            modified_after: Skip files last modified before this timestamp.

        Returns:
            One ParsedReport per readable file.
        """
        reports: List[ParsedReport] = []
        for file_path in list_report_files(directory, self._suffix, modified_after):
            report = self.parse_file(file_path)
            if report is not None:
                reports.append(report)
        return reports

    def parse_file(self, file_path: Path) -> Optional[ParsedReport]:
        """Parse a single report file, returning None if it is malformed."""
        try:
            root = ET.parse(file_path).getroot()
        except ET.ParseError as e:
            LOGGER.warning(f"Skipping malformed test report {file_path}: {e}")
            return None
        except OSError as e:
            LOGGER.warning(f"Cannot read test report {file_path}: {e}")
            return None

        return ParsedReport(path=file_path, suites=self.parse_element(root))

    def parse_string(self, content: str, source: str = "<string>") -> ParsedReport:
        """Parse report XML held in memory.

        Raises:
            ET.ParseError: If the content is not well-formed XML.
        """
        root = ET.fromstring(content)
        return ParsedReport(path=Path(source), suites=self.parse_element(root))

    def parse_element(self, root: ET.Element) -> List[TestSuite]:
        if root.tag == "testsuite":
            suite_elems = [root]
        else:
            suite_elems = root.findall(".//testsuite")

        return [self._parse_suite(suite_elem) for suite_elem in suite_elems]

    def _parse_suite(self, suite_elem: ET.Element) -> TestSuite:
        suite = TestSuite(name=suite_elem.get("name", ""))
        for case_elem in suite_elem.findall("testcase"):
            entry = self._parse_test_case(case_elem)
            if entry is not None:
                suite.entries.append(entry)
        return suite

    def _parse_test_case(self, case_elem: ET.Element) -> Optional[ReportEntry]:
        name = case_elem.get("name")
        if not name:
            LOGGER.debug("Skipping testcase without a name attribute")
            return None

        failure = None
        for tag in FAILURE_TAGS:
            failure_elem = case_elem.find(tag)
            if failure_elem is not None:
                failure = Failure(
                    type=failure_elem.get("type", ""),
                    message=failure_elem.get("message", ""),
                    stack_trace=failure_elem.text or "",
                )
                break

        return ReportEntry(
            class_name=case_elem.get("classname", ""),
            test_name=name,
            failure=failure,
        )
