"""One test run from command construction to per-position results.

:class:`RunCoordinator` builds the Gradle invocation for a position, drives
the process through :class:`ProcessOrchestrator` (waiting for the debug port
when a debugger should attach) and turns the JUnit reports into results for
the position tree.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from gradle_test_bridge.config.models import BridgeConfig
from gradle_test_bridge.core.cancellation import CancellationToken
from gradle_test_bridge.core.errors import ReadinessError, SpawnError
from gradle_test_bridge.core.logging import get_logger
from gradle_test_bridge.core.models import (
    ConnectionDescriptor,
    ParsedReport,
    Position,
    PositionType,
    ReadinessFailure,
    Result,
    ResultStatus,
    RunSpec,
    RunStrategy,
    TerminationReason,
    TestError,
)
from gradle_test_bridge.core.streaming import DebugSession, OutputConsumer
from gradle_test_bridge.core.tree import PositionTree
from gradle_test_bridge.gradle.command import (
    build_filter_arguments,
    build_test_command,
    query_test_results_directory,
    write_init_script,
)
from gradle_test_bridge.gradle.project import find_gradle_executable, find_project_directory
from gradle_test_bridge.process.orchestrator import ProcessHandle, ProcessOrchestrator
from gradle_test_bridge.results.aggregator import ResultAggregator
from gradle_test_bridge.results.collector import wait_for_test_results
from gradle_test_bridge.results.report_parser import ReportParser

LOGGER = get_logger(__name__)

NO_RESULTS_MESSAGE = (
    "Test results not available: Gradle may have crashed or failed to write "
    "XML results. Check Gradle output for errors."
)
MISSING_RESULT_MESSAGE = (
    "No test result found. Test may not have executed or debugger attachment failed."
)

# Reports older than the run start (minus this slack) belong to earlier runs.
REPORT_MTIME_SLACK = 1.0


def fail_all_tests(tree: PositionTree, message: str) -> Dict[str, Result]:
    """Mark every test position failed with ``message``."""
    return {
        position.id: Result(status=ResultStatus.FAILED, errors=[TestError(message=message)])
        for position in tree.of_type(PositionType.TEST)
    }


def mark_missing_as_failed(
    tree: PositionTree,
    results: Dict[str, Result],
    message: str = MISSING_RESULT_MESSAGE,
) -> Dict[str, Result]:
    """Fail test positions that got no result so they never look passed."""
    for position in tree.of_type(PositionType.TEST):
        if position.id not in results:
            results[position.id] = Result(
                status=ResultStatus.FAILED,
                errors=[TestError(message=message)],
            )
    return results


def results_from_reports(tree: PositionTree, reports: List[ParsedReport]) -> Dict[str, Result]:
    """Map parsed reports onto ``tree``, failing tests that got no result."""
    if not reports:
        return fail_all_tests(tree, NO_RESULTS_MESSAGE)

    aggregator = ResultAggregator()
    results = aggregator.aggregate(tree, reports)
    if aggregator.matcher.misses:
        LOGGER.info(f"{len(aggregator.matcher.misses)} test cases did not match any position")
    return mark_missing_as_failed(tree, results)


@dataclass
class ActiveRun:
    """A started run; the debugger may attach once this exists."""

    spec: RunSpec
    handle: ProcessHandle

    @property
    def connection(self) -> Optional[ConnectionDescriptor]:
        return self.spec.connection


@dataclass
class RunOutcome:
    """Everything a finished run produced."""

    results: Dict[str, Result] = field(default_factory=dict)
    exit_code: Optional[int] = None
    termination_reason: Optional[TerminationReason] = None
    connection: Optional[ConnectionDescriptor] = None
    log_path: Optional[Path] = None

    @property
    def passed(self) -> bool:
        return bool(self.results) and not any(r.failed for r in self.results.values())


class RunCoordinator:
    """Runs Gradle tests for positions of a tree and reports their results."""

    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        *,
        session: Optional[DebugSession] = None,
        orchestrator: Optional[ProcessOrchestrator] = None,
        project_root_finder: Optional[Callable[[str], Path]] = None,
        parser: Optional[ReportParser] = None,
    ):
        self.config = config or BridgeConfig()
        self.session = session
        self.orchestrator = orchestrator or ProcessOrchestrator(self.config, session=session)
        self._project_root_finder = project_root_finder or find_project_directory
        self._parser = parser or ReportParser()

    async def build_spec(
        self,
        tree: PositionTree,
        position: Optional[Position] = None,
        strategy: RunStrategy = RunStrategy.INTEGRATED,
    ) -> RunSpec:
        """Build the Gradle command and context for running ``position``.

        Args:
            tree: Tree of the positions to run.
            position: Selected position (defaults to the tree root).
            strategy: Integrated run or debugger attachment.

        Returns:
            RunSpec; its init script is removed when the run is cleaned up.
        """
        position = position or tree.data()
        project_directory = self._project_root_finder(position.path)
        gradle_executable = find_gradle_executable(project_directory, self.config.gradle_executable)
        filters = build_filter_arguments(tree, position)
        results_directory = await query_test_results_directory(gradle_executable, project_directory)

        debug = strategy == RunStrategy.DEBUG_ATTACH
        init_script = write_init_script()
        command = build_test_command(
            gradle_executable,
            project_directory,
            filters,
            debug_jvm=debug,
            init_script=init_script,
        )

        connection = None
        if debug:
            connection = ConnectionDescriptor(
                adapter_type=self.config.dap_adapter_type,
                host=self.config.dap_host,
                port=self.config.dap_port,
                project_root=str(project_directory),
                timeout_ms=self.config.dap_timeout_ms,
            )

        LOGGER.debug(f"Test command: {' '.join(command)}")
        return RunSpec(
            command=command,
            cwd=Path(project_directory),
            results_directory=results_directory,
            strategy=strategy,
            connection=connection,
            init_script=init_script,
        )

    async def start_run(
        self,
        spec: RunSpec,
        *,
        consumer: Optional[OutputConsumer] = None,
        cancel_token: Optional[CancellationToken] = None,
        log_path: Optional[Path] = None,
    ) -> ActiveRun:
        """Spawn Gradle and, for debugger runs, wait until it can attach.

        Raises:
            SpawnError: If Gradle could not be started.
            ReadinessError: If the debug port never opened; the process has
                been cleaned up already.
        """
        temp_files = [spec.init_script] if spec.init_script else []
        handle = await self.orchestrator.spawn(
            spec.command,
            spec.cwd,
            spec.env,
            await_debugger=spec.strategy == RunStrategy.DEBUG_ATTACH,
            log_path=log_path,
            temp_files=temp_files,
            cancel_token=cancel_token,
        )

        try:
            outcome = await handle.await_ready(cancel_token=cancel_token)
        except BaseException:
            await handle.cleanup()
            raise

        if not outcome.ready:
            reason = outcome.reason or ReadinessFailure.TIMEOUT
            raise ReadinessError(reason.value, self._readiness_message(reason))

        if consumer is not None:
            handle.attach_consumer(consumer)
        return ActiveRun(spec=spec, handle=handle)

    def _readiness_message(self, reason: ReadinessFailure) -> str:
        readiness = self.config.readiness
        if readiness.strategy == "log":
            target = f"output marker '{readiness.marker}'"
        else:
            target = f"debug port {self.config.dap_host}:{self.config.dap_port}"

        if reason == ReadinessFailure.TIMEOUT:
            return (
                f"Timeout: {target} did not become ready within "
                f"{readiness.effective_timeout:g} seconds"
            )
        if reason == ReadinessFailure.PROCESS_EXITED:
            return f"Gradle exited before {target} became ready"
        return "Test run cancelled before the debugger could attach"

    async def collect_results(
        self,
        spec: RunSpec,
        tree: PositionTree,
        *,
        started_at: Optional[float] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Dict[str, Result]:
        """Wait for the XML reports and map them onto ``tree``.

        Tests without a result are failed: with ``NO_RESULTS_MESSAGE`` when
        no reports exist at all, otherwise ``MISSING_RESULT_MESSAGE``.
        """
        modified_after = started_at - REPORT_MTIME_SLACK if started_at else None
        found = await wait_for_test_results(
            spec.results_directory,
            timeout=self.config.results_timeout,
            settle=self.config.results_settle,
            cancel_token=cancel_token,
            modified_after=modified_after,
        )
        if not found:
            LOGGER.error("Test results not ready: no XML reports were written")
            return fail_all_tests(tree, NO_RESULTS_MESSAGE)

        reports = self._parser.parse(spec.results_directory, modified_after=modified_after)
        return results_from_reports(tree, reports)

    async def run(
        self,
        tree: PositionTree,
        position: Optional[Position] = None,
        strategy: RunStrategy = RunStrategy.INTEGRATED,
        *,
        consumer: Optional[OutputConsumer] = None,
        cancel_token: Optional[CancellationToken] = None,
        log_path: Optional[Path] = None,
        on_ready: Optional[Callable[[ActiveRun], None]] = None,
    ) -> RunOutcome:
        """Run the tests of ``position`` and return their results.

        Spawn and readiness failures fail every test with an explanatory
        message. A run cancelled through ``cancel_token`` returns no results.

        Args:
            tree: Tree of the positions to run.
            position: Selected position (defaults to the tree root).
            strategy: Integrated run or debugger attachment.
            consumer: Receives the live Gradle output.
            cancel_token: Cancels the run.
            log_path: Keep the combined Gradle output in this file.
            on_ready: Called once Gradle runs and, for debugger runs, the
                debug port accepts connections. This is where a debugger
                client gets launched with ``active.connection``.
        """
        spec = await self.build_spec(tree, position, strategy)
        started_at = time.time()

        try:
            active = await self.start_run(
                spec,
                consumer=consumer,
                cancel_token=cancel_token,
                log_path=log_path,
            )
        except SpawnError as e:
            return RunOutcome(
                results=fail_all_tests(tree, str(e)),
                termination_reason=TerminationReason.SPAWN_FAILURE,
                log_path=log_path,
            )
        except ReadinessError as e:
            if e.reason == ReadinessFailure.CANCELLED.value:
                return RunOutcome(termination_reason=TerminationReason.CANCELLED, log_path=log_path)
            LOGGER.error(str(e))
            reason = TerminationReason.READINESS_TIMEOUT
            if e.reason == ReadinessFailure.PROCESS_EXITED.value:
                reason = TerminationReason.PROCESS_EXITED
            return RunOutcome(
                results=fail_all_tests(tree, str(e)),
                termination_reason=reason,
                connection=spec.connection,
                log_path=log_path,
            )

        handle = active.handle
        try:
            if on_ready is not None:
                on_ready(active)
            exit_code = await handle.wait(cancel_token)
        finally:
            await handle.cleanup()

        if handle.termination_reason == TerminationReason.CANCELLED:
            return RunOutcome(
                exit_code=exit_code,
                termination_reason=TerminationReason.CANCELLED,
                connection=spec.connection,
                log_path=log_path,
            )

        results = await self.collect_results(
            spec,
            tree,
            started_at=started_at,
            cancel_token=cancel_token,
        )
        return RunOutcome(
            results=results,
            exit_code=exit_code,
            termination_reason=handle.termination_reason,
            connection=spec.connection,
            log_path=log_path,
        )
