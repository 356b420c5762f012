"""Building the ``gradle test`` invocation."""

from __future__ import annotations

import os
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence, Union

from gradle_test_bridge.core.logging import get_logger
from gradle_test_bridge.core.models import Position, PositionType
from gradle_test_bridge.core.subprocess_runner import run_command
from gradle_test_bridge.core.tree import PositionTree

LOGGER = get_logger(__name__)

TEST_RESULTS_PROPERTY = "testResultsDir"
PROPERTY_QUERY_TIMEOUT = 120

# Forces test tasks to run even when Gradle considers them up to date, so
# the XML reports always describe this run.
INIT_SCRIPT = """\
allprojects {
    tasks.withType(Test).configureEach {
        outputs.upToDateWhen { false }
        reports.junitXml.required.set(true)
    }
}
"""


def build_filter_arguments(tree: PositionTree, position: Position) -> List[str]:
    """Build the repeated ``--tests`` filters for the selected position.

    Tests and namespaces filter on their own id. A file filters on every
    namespace in the tree, since its path is no valid test locator.
    """
    arguments: List[str] = []

    if position.type in (PositionType.TEST, PositionType.NAMESPACE):
        arguments.extend(["--tests", position.id])
    elif position.type == PositionType.FILE:
        for namespace in tree.of_type(PositionType.NAMESPACE):
            arguments.extend(["--tests", namespace.id])

    return arguments


def build_test_command(
    gradle_executable: str,
    project_directory: Union[str, Path],
    filters: Sequence[str],
    *,
    debug_jvm: bool = False,
    init_script: Optional[Path] = None,
) -> List[str]:
    """Assemble the command line for a test run."""
    command = [gradle_executable, "--project-dir", str(project_directory), "test"]
    if init_script is not None:
        command.extend(["--init-script", str(init_script)])
    if debug_jvm:
        command.append("--debug-jvm")
    command.extend(filters)
    return command


def default_test_results_directory(project_directory: Union[str, Path]) -> str:
    return str(Path(project_directory) / "build" / "test-results" / "test")


def parse_test_results_directory(output: str) -> Optional[str]:
    """Extract ``testResultsDir`` from ``gradle properties`` output."""
    prefix = f"{TEST_RESULTS_PROPERTY}: "
    for line in output.splitlines():
        if prefix in line:
            value = line.split(prefix, 1)[1].strip()
            if value and value not in ("null", "nil"):
                return str(Path(value) / "test")
    return None


async def query_test_results_directory(
    gradle_executable: str,
    project_directory: Union[str, Path, None],
) -> str:
    """Ask Gradle where the ``test`` task writes its XML reports.

    Falls back to ``build/test-results/test`` when the property cannot be
    determined.

    Returns:
        Absolute path of the results directory, or "" without a project.
    """
    if not project_directory:
        return ""

    command = [
        gradle_executable,
        "--project-dir",
        str(project_directory),
        "properties",
        "--property",
        TEST_RESULTS_PROPERTY,
    ]
    try:
        result = await run_command(command, cwd=project_directory, timeout=PROPERTY_QUERY_TIMEOUT)
    except subprocess.TimeoutExpired:
        LOGGER.warning(f"Gradle properties query timed out after {PROPERTY_QUERY_TIMEOUT}s")
    except subprocess.SubprocessError as e:
        LOGGER.warning(f"Failed to query {TEST_RESULTS_PROPERTY}: {e}")
    else:
        directory = parse_test_results_directory(result.stdout)
        if directory:
            return directory
        LOGGER.debug(f"{TEST_RESULTS_PROPERTY} not reported by Gradle, using default")

    return default_test_results_directory(project_directory)


def write_init_script(directory: Optional[Union[str, Path]] = None) -> Path:
    """Write the Gradle init script to a temporary file.

    The caller owns the file; the orchestrator removes it during cleanup.
    """
    fd, name = tempfile.mkstemp(prefix="gradle-test-bridge-", suffix=".gradle", dir=directory)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(INIT_SCRIPT)
    return Path(name)
