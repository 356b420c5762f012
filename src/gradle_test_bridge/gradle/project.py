"""Locating the Gradle project and executable."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional, Union

from gradle_test_bridge.core.logging import get_logger

LOGGER = get_logger(__name__)

GRADLE_WRAPPER = "gradlew"
GRADLE_BINARY = "gradle"

PROJECT_MARKERS = (
    "settings.gradle",
    "settings.gradle.kts",
    "build.gradle",
    "build.gradle.kts",
    GRADLE_WRAPPER,
)


def find_project_directory(
    path: Union[str, Path],
    default: Optional[Path] = None,
) -> Path:
    """Return the nearest directory containing a Gradle build marker.

    Searches ``path`` (or its parent, for files) and its ancestors for a
    settings/build script or a wrapper. Falls back to ``default``, or to the
    starting directory when no default is given.

    Args:
        path: A source file or directory inside the project.
        default: Directory returned when no marker is found.

    Returns:
        Project directory.
    """
    start = Path(path).resolve()
    if not start.is_dir():
        start = start.parent

    for directory in [start, *start.parents]:
        if any((directory / marker).exists() for marker in PROJECT_MARKERS):
            return directory

    if default is not None:
        LOGGER.debug(f"No Gradle build files above {start}, using {default}")
        return default
    LOGGER.debug(f"No Gradle build files above {start}, using it as project directory")
    return start


def find_gradle_executable(
    project_directory: Union[str, Path],
    override: Optional[str] = None,
) -> str:
    """Find the Gradle executable for a project.

    Checks for:
    1. An explicitly configured executable
    2. ``gradlew`` in the project directory or any parent directory
    3. ``gradle`` in PATH

    Args:
        project_directory: Project directory.
        override: Configured executable path or name.

    Returns:
        Absolute path of the wrapper or binary, or the bare binary name when
        nothing is found (the spawn then fails with a clear error).
    """
    if override:
        return override

    directory = Path(project_directory).resolve()
    for candidate_dir in [directory, *directory.parents]:
        wrapper = candidate_dir / GRADLE_WRAPPER
        if wrapper.is_file():
            return str(wrapper)

    gradle_path = shutil.which(GRADLE_BINARY)
    if gradle_path:
        return gradle_path

    LOGGER.warning(
        "No Gradle wrapper found and gradle is not in PATH. Install Gradle or "
        "add a wrapper with `gradle wrapper`."
    )
    return GRADLE_BINARY
