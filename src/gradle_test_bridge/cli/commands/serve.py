"""Serve command implementation."""

from __future__ import annotations

import asyncio
from argparse import Namespace

from gradle_test_bridge.cli.commands import Command
from gradle_test_bridge.cli.exit_codes import EXIT_INVALID_USAGE, EXIT_SUCCESS
from gradle_test_bridge.config import load_config
from gradle_test_bridge.core.logging import get_logger

LOGGER = get_logger(__name__)


class ServeCommand(Command):
    """Run gradle-test-bridge as an MCP server."""

    @property
    def name(self) -> str:
        """Command identifier."""
        return "serve"

    def execute(self, args: Namespace) -> int:
        """Execute the serve command.

        Args:
            args: Parsed command-line arguments.

        Returns:
            Exit code.
        """
        if not args.mcp:
            print("No server mode specified. Use --mcp.")
            return EXIT_INVALID_USAGE

        project_root = args.project_root.resolve()
        config = load_config(project_root=project_root, config_path=args.config)

        # Imported here so the CLI works without the optional mcp extra.
        from gradle_test_bridge.mcp.server import GradleTestBridgeMCPServer

        LOGGER.info(f"Serving MCP for {project_root}")
        server = GradleTestBridgeMCPServer(project_root, config)
        asyncio.run(server.run())
        return EXIT_SUCCESS
