"""Gradle project discovery and test command construction."""

from gradle_test_bridge.gradle.command import (
    build_filter_arguments,
    build_test_command,
    query_test_results_directory,
    write_init_script,
)
from gradle_test_bridge.gradle.project import (
    find_gradle_executable,
    find_project_directory,
)

__all__ = [
    "build_filter_arguments",
    "build_test_command",
    "find_gradle_executable",
    "find_project_directory",
    "query_test_results_directory",
    "write_init_script",
]
