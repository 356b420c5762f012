"""gradle-test-bridge - run Gradle tests for editor test trees.

Runs the Gradle ``test`` task for a selected file, class or test, optionally
under a debugger, and maps the JUnit XML reports back onto the positions of
the editor's test tree.
"""

from __future__ import annotations

__version__ = "0.3.0"

from gradle_test_bridge.config import BridgeConfig, load_config
from gradle_test_bridge.coordinator import ActiveRun, RunCoordinator, RunOutcome
from gradle_test_bridge.core.models import (
    Position,
    PositionType,
    Result,
    ResultStatus,
    RunStrategy,
)
from gradle_test_bridge.core.tree import PositionTree

__all__ = [
    "__version__",
    "ActiveRun",
    "BridgeConfig",
    "Position",
    "PositionTree",
    "PositionType",
    "Result",
    "ResultStatus",
    "RunCoordinator",
    "RunOutcome",
    "RunStrategy",
    "load_config",
]
