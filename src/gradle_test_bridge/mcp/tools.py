"""MCP tool executor for gradle-test-bridge.

Executes test runs and result collection on behalf of an MCP client and
returns plain JSON-compatible dicts. Errors are reported in an ``error`` key
instead of raised, so one bad call does not take the server down.
"""

from __future__ import annotations

import itertools
from pathlib import Path
from typing import Any, Dict, Optional

from gradle_test_bridge import __version__
from gradle_test_bridge.config import BridgeConfig
from gradle_test_bridge.coordinator import (
    ActiveRun,
    RunCoordinator,
    RunOutcome,
    results_from_reports,
)
from gradle_test_bridge.core.cancellation import CancellationToken
from gradle_test_bridge.core.errors import BridgeError
from gradle_test_bridge.core.logging import get_logger
from gradle_test_bridge.core.models import RunStrategy
from gradle_test_bridge.core.tree import PositionTree
from gradle_test_bridge.gradle.project import find_gradle_executable, find_project_directory
from gradle_test_bridge.results.report_parser import ReportParser

LOGGER = get_logger(__name__)


class MCPToolExecutor:
    """Executes gradle-test-bridge operations for MCP tools."""

    def __init__(
        self,
        project_root: Path,
        config: BridgeConfig,
        coordinator: Optional[RunCoordinator] = None,
    ):
        """Initialize MCPToolExecutor.

        Args:
            project_root: Gradle project the server was started for.
            config: Loaded configuration.
            coordinator: Run coordinator (created from ``config`` if omitted).
        """
        self.project_root = project_root
        self.config = config
        self.coordinator = coordinator or RunCoordinator(
            config,
            project_root_finder=self.find_project_directory,
        )
        self._run_ids = itertools.count(1)
        self._active: Dict[str, CancellationToken] = {}
        self._connections: Dict[str, Dict[str, Any]] = {}

    def find_project_directory(self, path: str) -> Path:
        """Find the Gradle project of a tree path within the served project.

        Relative paths are resolved against ``project_root``; positions
        without a path, or outside any Gradle build, use ``project_root``.
        """
        if not path:
            return self.project_root
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.project_root / candidate
        return find_project_directory(candidate, default=self.project_root)

    async def run_tests(
        self,
        tree: Dict[str, Any],
        position_id: Optional[str] = None,
        strategy: str = "integrated",
    ) -> Dict[str, Any]:
        """Run the tests of a position.

        Args:
            tree: Nested position tree as produced by test discovery.
            position_id: Position to run (default: the tree root).
            strategy: ``integrated`` or ``debug-attach``.

        Returns:
            Per-position results, or an ``error`` entry.
        """
        try:
            position_tree = self._resolve_tree(tree, position_id)
            run_strategy = RunStrategy.parse(strategy)
        except (BridgeError, ValueError) as e:
            return {"error": str(e)}

        run_id = str(next(self._run_ids))
        token = CancellationToken()
        self._active[run_id] = token

        def on_ready(active: ActiveRun) -> None:
            if active.connection is not None:
                self._connections[run_id] = active.connection.to_dict()

        try:
            outcome = await self.coordinator.run(
                position_tree,
                position_tree.data(),
                run_strategy,
                cancel_token=token,
                on_ready=on_ready,
            )
        except BridgeError as e:
            LOGGER.error(f"Test run {run_id} failed: {e}")
            return {"run_id": run_id, "error": str(e)}
        finally:
            self._active.pop(run_id, None)
            self._connections.pop(run_id, None)

        return self._format_outcome(run_id, outcome)

    async def collect_results(
        self,
        tree: Dict[str, Any],
        results_dir: str,
    ) -> Dict[str, Any]:
        """Map existing XML reports onto a tree without running Gradle."""
        try:
            position_tree = PositionTree.from_dict(tree)
        except BridgeError as e:
            return {"error": str(e)}

        directory = Path(results_dir)
        if not directory.is_absolute():
            directory = self.project_root / directory

        reports = ReportParser().parse(directory)
        results = results_from_reports(position_tree, reports)
        return {
            "results_directory": str(directory),
            "report_files": len(reports),
            "results": {pid: result.to_dict() for pid, result in results.items()},
        }

    async def cancel_runs(self) -> Dict[str, Any]:
        """Cancel every run that is still in progress."""
        cancelled = list(self._active)
        for token in list(self._active.values()):
            token.cancel()
        return {"cancelled": cancelled}

    async def get_status(self) -> Dict[str, Any]:
        """Describe the server's project, configuration and active runs."""
        return {
            "version": __version__,
            "project_root": str(self.project_root),
            "gradle_executable": find_gradle_executable(
                self.project_root, self.config.gradle_executable
            ),
            "readiness_strategy": self.config.readiness.strategy,
            "active_runs": sorted(self._active),
            "debug_connections": dict(self._connections),
        }

    def _resolve_tree(self, tree: Dict[str, Any], position_id: Optional[str]) -> PositionTree:
        position_tree = PositionTree.from_dict(tree)
        if position_id:
            position_tree = position_tree.subtree(position_id)
        return position_tree

    def _format_outcome(self, run_id: str, outcome: RunOutcome) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "run_id": run_id,
            "passed": outcome.passed,
            "exit_code": outcome.exit_code,
            "termination_reason": (
                outcome.termination_reason.value if outcome.termination_reason else None
            ),
            "results": {pid: result.to_dict() for pid, result in outcome.results.items()},
        }
        if outcome.connection is not None:
            data["connection"] = outcome.connection.to_dict()
        return data
