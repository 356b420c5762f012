"""Supervising a single test runner process.

The orchestrator spawns the process with its combined output redirected to a
log file, tails that file into an :class:`OutputForwarder`, optionally waits
for debugger readiness, and guarantees that the process, the forwarder and
any temporary files are released exactly once, however the run ends.
"""

from __future__ import annotations

import asyncio
import os
import signal
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Union

from gradle_test_bridge.config.models import BridgeConfig
from gradle_test_bridge.core.cancellation import CancellationToken
from gradle_test_bridge.core.errors import SpawnError
from gradle_test_bridge.core.logging import get_logger
from gradle_test_bridge.core.models import (
    ProcessState,
    ReadinessFailure,
    ReadinessOutcome,
    TerminationReason,
)
from gradle_test_bridge.core.streaming import DebugSession, OutputConsumer
from gradle_test_bridge.core.subprocess_runner import merged_env
from gradle_test_bridge.process.forwarder import ForwarderHandle, OutputForwarder
from gradle_test_bridge.process.readiness import (
    ReadinessDetector,
    ReadinessStrategy,
    create_strategy,
)
from gradle_test_bridge.process.sources import FileByteSource

LOGGER = get_logger(__name__)

# Seconds to wait for a killed process to be reaped.
KILL_WAIT_TIMEOUT = 5.0

READINESS_FAILURES = {
    TerminationReason.READINESS_TIMEOUT: ReadinessFailure.TIMEOUT,
    TerminationReason.CANCELLED: ReadinessFailure.CANCELLED,
}


class ProcessHandle:
    """Runtime state of one spawned process.

    State only moves forward: spawning, awaiting_readiness, ready, streaming,
    terminated. ``terminated`` is absorbing and records why the run ended.
    """

    def __init__(
        self,
        command: Sequence[str],
        config: BridgeConfig,
        forwarder: OutputForwarder,
        log_path: Path,
        owns_log: bool,
        temp_files: Sequence[Path] = (),
        await_debugger: bool = False,
        readiness: Optional[ReadinessStrategy] = None,
        cancel_token: Optional[CancellationToken] = None,
    ):
        self.command = list(command)
        self.config = config
        self.forwarder = forwarder
        self.log_path = log_path
        self.await_debugger = await_debugger or readiness is not None
        self.cancel_token = cancel_token
        self.state = ProcessState.SPAWNING
        self.termination_reason: Optional[TerminationReason] = None
        self.started_at: Optional[float] = None
        self.process: Optional[asyncio.subprocess.Process] = None

        self._owns_log = owns_log
        self._temp_files: List[Path] = list(temp_files)
        self._readiness = readiness
        self._pending_consumer: Optional[OutputConsumer] = None
        self._forwarder_handle: Optional[ForwarderHandle] = None
        self._cleanup_lock = asyncio.Lock()
        self._cleaned_up = False
        self._background: Set[asyncio.Task] = set()

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    @property
    def exit_code(self) -> Optional[int]:
        return self.process.returncode if self.process else None

    @property
    def terminated(self) -> bool:
        return self.state == ProcessState.TERMINATED

    @property
    def cleaned_up(self) -> bool:
        return self._cleaned_up

    def is_alive(self) -> bool:
        return self.process is not None and self.process.returncode is None

    def transition(
        self,
        new_state: ProcessState,
        reason: Optional[TerminationReason] = None,
    ) -> bool:
        """Move to ``new_state``; refused once terminated."""
        if self.state == ProcessState.TERMINATED:
            LOGGER.debug(f"Ignoring transition to {new_state.value}: already terminated")
            return False
        LOGGER.debug(f"Process {self.pid}: {self.state.value} -> {new_state.value}")
        self.state = new_state
        if new_state == ProcessState.TERMINATED:
            self.termination_reason = reason
        return True

    async def await_ready(
        self,
        timeout: Optional[float] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ReadinessOutcome:
        """Wait until a debugger can attach.

        Without a readiness check the process counts as ready immediately.
        Timeouts kill the process; an early exit or cancellation terminates
        the handle. All failures run cleanup before returning.
        """
        token = cancel_token or self.cancel_token
        if self.state != ProcessState.AWAITING_READINESS:
            if self.state in (ProcessState.READY, ProcessState.STREAMING):
                return ReadinessOutcome(ready=True)
            return ReadinessOutcome(ready=False, reason=READINESS_FAILURES.get(
                self.termination_reason, ReadinessFailure.PROCESS_EXITED
            ))

        if not self.await_debugger:
            self._become_ready()
            return ReadinessOutcome(ready=True)

        if self._readiness is None:
            self._readiness = create_strategy(
                self.config.readiness,
                self.config.dap_host,
                self.config.dap_port,
                FileByteSource(self.log_path),
            )
        detector = ReadinessDetector(
            self._readiness,
            self.is_alive,
            backoff=self.config.readiness.backoff,
        )
        wait_timeout = timeout if timeout is not None else self.config.readiness.effective_timeout
        outcome = await detector.wait_ready(wait_timeout, cancel_token=token)

        if outcome.ready:
            self._become_ready()
        elif outcome.reason == ReadinessFailure.TIMEOUT:
            await self._terminate(TerminationReason.READINESS_TIMEOUT)
        elif outcome.reason == ReadinessFailure.PROCESS_EXITED:
            await self._terminate(TerminationReason.PROCESS_EXITED)
        else:
            await self._terminate(TerminationReason.CANCELLED)
        return outcome

    def _become_ready(self) -> None:
        if not self.transition(ProcessState.READY):
            return
        consumer = self._pending_consumer
        if consumer is None and self.forwarder.session is not None:
            consumer = self.forwarder.session.output_consumer()
        if consumer is not None:
            self.attach_consumer(consumer)

    def attach_consumer(self, consumer: OutputConsumer) -> None:
        """Attach the output consumer.

        Before readiness this only records the consumer; from ``ready`` it
        starts streaming and flushes everything buffered so far.
        """
        if self.state in (ProcessState.SPAWNING, ProcessState.AWAITING_READINESS):
            self._pending_consumer = consumer
            return
        if self.state == ProcessState.TERMINATED:
            self.forwarder.attach(consumer)
            return
        self.forwarder.attach(consumer)
        if self.state == ProcessState.READY:
            self.transition(ProcessState.STREAMING)

    async def wait(self, cancel_token: Optional[CancellationToken] = None) -> Optional[int]:
        """Wait for the process to exit and clean up.

        Returns:
            The exit code, or None if the process never started.
        """
        token = cancel_token or self.cancel_token
        if self.process is None:
            await self.cleanup()
            return None

        if token is None:
            await self.process.wait()
        else:
            exit_task = asyncio.ensure_future(self.process.wait())
            cancel_task = asyncio.ensure_future(token.wait())
            try:
                await asyncio.wait(
                    {exit_task, cancel_task},
                    return_when=asyncio.FIRST_COMPLETED,
                )
            finally:
                for task in (exit_task, cancel_task):
                    if not task.done():
                        task.cancel()
            if token.cancelled and self.is_alive():
                await self.cancel()
                return self.exit_code

        await self._terminate(TerminationReason.COMPLETED)
        return self.exit_code

    async def cancel(self) -> None:
        """Cancel the run from any state. No-op once terminated."""
        if self.state != ProcessState.TERMINATED:
            LOGGER.info(f"Cancelling process {self.pid}")
        await self._terminate(TerminationReason.CANCELLED)

    async def _terminate(self, reason: TerminationReason) -> None:
        self.transition(ProcessState.TERMINATED, reason)
        await self.cleanup()

    async def cleanup(self) -> None:
        """Release the process, forwarder and temporary files exactly once.

        Always safe to call; failures are logged and never raised.
        """
        async with self._cleanup_lock:
            if self._cleaned_up:
                return
            self._cleaned_up = True

            if self.state != ProcessState.TERMINATED:
                self.transition(
                    ProcessState.TERMINATED,
                    TerminationReason.CANCELLED if self.is_alive() else TerminationReason.COMPLETED,
                )

            await self._kill()

            if self._forwarder_handle is not None:
                await self._forwarder_handle.stop()
            if self._readiness is not None:
                self._readiness.close()

            paths = list(self._temp_files)
            if self._owns_log:
                paths.append(self.log_path)
            for path in paths:
                remove_file(path)

    async def _kill(self) -> None:
        if self.process is None or not self.is_alive():
            return
        LOGGER.debug(f"Killing process {self.process.pid}")
        kill_process_tree(self.process)
        try:
            await asyncio.wait_for(self.process.wait(), timeout=KILL_WAIT_TIMEOUT)
        except asyncio.TimeoutError:
            LOGGER.warning(f"Process {self.process.pid} did not exit after kill")

    def _on_token_cancelled(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self.cancel())
        self._background.add(task)
        task.add_done_callback(self._on_cancel_done)

    def _on_cancel_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            LOGGER.warning(f"Cancelling process {self.pid} failed: {error}")


def kill_process_tree(process: asyncio.subprocess.Process) -> None:
    """Kill ``process`` and the process group it leads (POSIX)."""
    try:
        if os.name == "posix":
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass
    except PermissionError as e:
        LOGGER.debug(f"Cannot kill process group {process.pid}: {e}")
        try:
            process.kill()
        except ProcessLookupError:
            pass


def remove_file(path: Path) -> None:
    """Best-effort removal of a temporary file."""
    try:
        path.unlink()
    except FileNotFoundError:
        LOGGER.debug(f"Temporary file already removed: {path}")
    except OSError as e:
        LOGGER.debug(f"Failed to remove temporary file {path}: {e}")


class ProcessOrchestrator:
    """Spawns test runner processes; one handle per run.

    Args:
        config: Bridge configuration (readiness and output settings).
        session: Debug session whose output consumer receives process output.
    """

    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        session: Optional[DebugSession] = None,
    ):
        self.config = config or BridgeConfig()
        self.session = session

    def _new_forwarder(self) -> OutputForwarder:
        return OutputForwarder(
            session=self.session,
            backlog_limit=self.config.output.backlog_limit,
            poll_interval=self.config.output.poll_interval,
        )

    async def spawn(
        self,
        command: Sequence[str],
        cwd: Union[str, Path],
        env: Optional[Dict[str, str]] = None,
        *,
        await_debugger: bool = False,
        readiness: Optional[ReadinessStrategy] = None,
        log_path: Optional[Path] = None,
        temp_files: Sequence[Path] = (),
        cancel_token: Optional[CancellationToken] = None,
    ) -> ProcessHandle:
        """Start ``command`` and return its handle in ``awaiting_readiness``.

        Args:
            command: Executable and arguments.
            cwd: Working directory.
            env: Extra environment variables.
            await_debugger: Whether ``await_ready`` should wait for the
                configured readiness strategy.
            readiness: Explicit readiness strategy (implies await_debugger).
            log_path: File receiving stdout and stderr. A temporary file is
                created (and removed on cleanup) when omitted.
            temp_files: Files removed during cleanup.
            cancel_token: Cancels the run when fired.

        Raises:
            SpawnError: If the process could not be created.
        """
        owns_log = log_path is None
        if log_path is None:
            fd, name = tempfile.mkstemp(prefix="gradle-test-", suffix=".log")
            os.close(fd)
            log_path = Path(name)

        handle = ProcessHandle(
            command,
            self.config,
            self._new_forwarder(),
            log_path,
            owns_log=owns_log,
            temp_files=temp_files,
            await_debugger=await_debugger,
            readiness=readiness,
            cancel_token=cancel_token,
        )

        try:
            with open(log_path, "ab") as log_handle:
                process = await asyncio.create_subprocess_exec(
                    *command,
                    cwd=str(cwd),
                    env=merged_env(env),
                    stdin=subprocess.DEVNULL,
                    stdout=log_handle,
                    stderr=subprocess.STDOUT,
                    start_new_session=os.name == "posix",
                )
        except OSError as e:
            LOGGER.error(f"Failed to start {command[0]}: {e}")
            handle.transition(ProcessState.TERMINATED, TerminationReason.SPAWN_FAILURE)
            await handle.cleanup()
            raise SpawnError(command[0], e) from e

        handle.process = process
        handle.started_at = time.time()
        handle.transition(ProcessState.AWAITING_READINESS)
        LOGGER.info(f"Started {command[0]} (PID {process.pid})")

        handle._forwarder_handle = handle.forwarder.start(FileByteSource(log_path))
        if cancel_token is not None:
            cancel_token.add_callback(handle._on_token_cancelled)
        return handle
