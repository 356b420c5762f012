"""Run command implementation."""

from __future__ import annotations

import asyncio
import json
import signal
import sys
from argparse import Namespace

from gradle_test_bridge.cli.commands import Command
from gradle_test_bridge.cli.commands._common import load_command_config, load_tree
from gradle_test_bridge.cli.exit_codes import EXIT_SUCCESS, EXIT_TESTS_FAILED
from gradle_test_bridge.cli.output import outcome_to_dict, write_json
from gradle_test_bridge.config import BridgeConfig
from gradle_test_bridge.coordinator import ActiveRun, RunCoordinator, RunOutcome
from gradle_test_bridge.core.cancellation import CancellationToken
from gradle_test_bridge.core.logging import get_logger
from gradle_test_bridge.core.models import Position, RunStrategy
from gradle_test_bridge.core.streaming import CLIOutputConsumer
from gradle_test_bridge.core.tree import PositionTree

LOGGER = get_logger(__name__)


class RunCommand(Command):
    """Run Gradle tests for a position and print the results as JSON."""

    @property
    def name(self) -> str:
        """Command identifier."""
        return "run"

    def execute(self, args: Namespace) -> int:
        """Execute the run command.

        Ctrl-C cancels the run: Gradle is killed, temporary files are removed
        and the (empty) outcome is still printed.

        Args:
            args: Parsed command-line arguments.

        Returns:
            EXIT_SUCCESS when every test passed, EXIT_TESTS_FAILED otherwise.
        """
        tree, position = load_tree(args)
        config = load_command_config(args, position)
        strategy = RunStrategy.parse(args.strategy)

        outcome = asyncio.run(self._run(args, config, tree, position, strategy))
        write_json(outcome_to_dict(outcome), args.output)

        if outcome.passed:
            return EXIT_SUCCESS
        return EXIT_TESTS_FAILED

    async def _run(
        self,
        args: Namespace,
        config: BridgeConfig,
        tree: PositionTree,
        position: Position,
        strategy: RunStrategy,
    ) -> RunOutcome:
        token = CancellationToken()
        loop = asyncio.get_running_loop()
        handles_sigint = False
        try:
            loop.add_signal_handler(signal.SIGINT, token.cancel)
            handles_sigint = True
        except NotImplementedError:
            LOGGER.debug("No asyncio signal handlers on this platform; Ctrl-C aborts the run")

        coordinator = RunCoordinator(config)
        consumer = CLIOutputConsumer(show_output=not args.no_stream)
        try:
            return await coordinator.run(
                tree,
                position,
                strategy,
                consumer=consumer,
                cancel_token=token,
                log_path=args.log_file,
                on_ready=_announce_connection,
            )
        finally:
            if handles_sigint:
                loop.remove_signal_handler(signal.SIGINT)


def _announce_connection(active: ActiveRun) -> None:
    """Tell the user where to attach the debugger."""
    if active.connection is None:
        return
    print(
        f"Debugger can attach: {json.dumps(active.connection.to_dict())}",
        file=sys.stderr,
        flush=True,
    )
