"""MCP server exposing gradle-test-bridge tools over stdio."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from gradle_test_bridge.config import BridgeConfig
from gradle_test_bridge.core.logging import get_logger
from gradle_test_bridge.mcp.tools import MCPToolExecutor

LOGGER = get_logger(__name__)

SERVER_NAME = "gradle-test-bridge"

TREE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "description": (
        "Position tree: nested objects with id, type (file, namespace or "
        "test), path and children."
    ),
}


def tool_definitions() -> List[Tool]:
    return [
        Tool(
            name="run_tests",
            description=(
                "Run the Gradle tests of a position (file, class or single test) "
                "and return per-position results."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "tree": TREE_SCHEMA,
                    "position_id": {
                        "type": "string",
                        "description": "Position to run (default: tree root).",
                    },
                    "strategy": {
                        "type": "string",
                        "enum": ["integrated", "debug-attach"],
                        "default": "integrated",
                    },
                },
                "required": ["tree"],
            },
        ),
        Tool(
            name="collect_results",
            description="Map existing JUnit XML reports onto a position tree.",
            inputSchema={
                "type": "object",
                "properties": {
                    "tree": TREE_SCHEMA,
                    "results_dir": {
                        "type": "string",
                        "description": "Report directory, relative to the project root or absolute.",
                    },
                },
                "required": ["tree", "results_dir"],
            },
        ),
        Tool(
            name="cancel_runs",
            description="Cancel all test runs in progress.",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="get_status",
            description="Show the project, Gradle executable and active runs.",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]


class GradleTestBridgeMCPServer:
    """MCP server wrapping :class:`MCPToolExecutor`."""

    def __init__(self, project_root: Path, config: BridgeConfig):
        """Initialize the server.

        Args:
            project_root: Gradle project to serve.
            config: Loaded configuration.
        """
        self.project_root = project_root
        self.config = config
        self.executor = MCPToolExecutor(project_root, config)
        self.server = Server(SERVER_NAME)
        self._register_tools()

    def _register_tools(self) -> None:
        @self.server.list_tools()
        async def list_tools() -> List[Tool]:
            return tool_definitions()

        @self.server.call_tool()
        async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
            result = await self.handle_tool_call(name, arguments or {})
            return [TextContent(type="text", text=json.dumps(result, indent=2))]

    async def handle_tool_call(self, name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """Dispatch one tool call to the executor."""
        LOGGER.debug(f"MCP tool call: {name}")
        if name == "run_tests":
            if "tree" not in arguments:
                return {"error": "Missing required argument: tree"}
            return await self.executor.run_tests(
                arguments["tree"],
                position_id=arguments.get("position_id"),
                strategy=arguments.get("strategy", "integrated"),
            )
        if name == "collect_results":
            if "tree" not in arguments or "results_dir" not in arguments:
                return {"error": "Missing required arguments: tree, results_dir"}
            return await self.executor.collect_results(
                arguments["tree"],
                arguments["results_dir"],
            )
        if name == "cancel_runs":
            return await self.executor.cancel_runs()
        if name == "get_status":
            return await self.executor.get_status()
        return {"error": f"Unknown tool: {name}"}

    async def run(self) -> None:
        """Serve MCP requests on stdin/stdout until the client disconnects."""
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )
