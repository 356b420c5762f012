"""Pytest configuration and fixtures for integration tests."""

from __future__ import annotations

import functools
import shutil
import subprocess
from pathlib import Path
from typing import Optional

import pytest


@functools.lru_cache(maxsize=None)
def _find_gradle() -> Optional[str]:
    """Return the gradle binary in PATH if it can report its version."""
    gradle = shutil.which("gradle")
    if gradle is None:
        return None
    try:
        result = subprocess.run(
            [gradle, "--version"],
            capture_output=True,
            text=True,
            timeout=120,
        )
    except (subprocess.TimeoutExpired, OSError):
        return None
    return gradle if result.returncode == 0 else None


def _is_java_available() -> bool:
    """Check if a Java runtime is available."""
    return shutil.which("java") is not None


BUILD_SCRIPT = """\
plugins {
    id 'java'
}

repositories {
    mavenCentral()
}

dependencies {
    testImplementation 'junit:junit:4.13.2'
}
"""

TEST_SOURCE = """\
package pkg;

import static org.junit.Assert.assertEquals;

import org.junit.Test;

public class CalculatorTest {

    @Test
    public void adds() {
        assertEquals(4, 2 + 2);
    }

    @Test
    public void subtracts() {
        assertEquals(1, 3 - 1);
    }
}
"""


@pytest.fixture
def gradle_executable() -> str:
    """Return the gradle binary, skipping when it is not installed."""
    gradle = _find_gradle()
    if gradle is None or not _is_java_available():
        pytest.skip("Gradle and Java are required (install Gradle and a JDK)")
    return gradle


@pytest.fixture
def gradle_project(tmp_path: Path) -> Path:
    """Create a minimal JUnit 4 project with one passing and one failing test."""
    (tmp_path / "settings.gradle").write_text("rootProject.name = 'calculator'\n")
    (tmp_path / "build.gradle").write_text(BUILD_SCRIPT)
    source = tmp_path / "src" / "test" / "java" / "pkg" / "CalculatorTest.java"
    source.parent.mkdir(parents=True)
    source.write_text(TEST_SOURCE)
    return tmp_path
