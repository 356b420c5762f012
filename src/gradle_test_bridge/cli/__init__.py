"""Command-line interface for gradle-test-bridge."""

from __future__ import annotations

import sys
from typing import Dict, List, Optional

from gradle_test_bridge import __version__
from gradle_test_bridge.cli.arguments import build_parser
from gradle_test_bridge.cli.commands import Command
from gradle_test_bridge.cli.commands.results import ResultsCommand
from gradle_test_bridge.cli.commands.run import RunCommand
from gradle_test_bridge.cli.commands.serve import ServeCommand
from gradle_test_bridge.cli.exit_codes import (
    EXIT_BRIDGE_ERROR,
    EXIT_INVALID_USAGE,
    EXIT_SUCCESS,
)
from gradle_test_bridge.core.errors import BridgeError
from gradle_test_bridge.core.logging import configure_logging, get_logger

LOGGER = get_logger(__name__)


def _commands() -> Dict[str, Command]:
    commands: List[Command] = [RunCommand(), ResultsCommand(), ServeCommand()]
    return {command.name: command for command in commands}


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point.

    Args:
        argv: Arguments without the program name (default: ``sys.argv[1:]``).

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"gradle-test-bridge {__version__}")
        return EXIT_SUCCESS

    configure_logging(debug=args.debug, verbose=args.verbose, quiet=args.quiet)

    command = _commands().get(args.command or "")
    if command is None:
        parser.print_help(sys.stderr)
        return EXIT_INVALID_USAGE

    try:
        return command.execute(args)
    except BridgeError as e:
        LOGGER.error(str(e))
        return EXIT_BRIDGE_ERROR
    except KeyboardInterrupt:
        LOGGER.error("Interrupted")
        return EXIT_BRIDGE_ERROR


__all__ = ["main"]
