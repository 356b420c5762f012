"""MCP (Model Context Protocol) integration for gradle-test-bridge.

Lets AI tools and editors run tests through an MCP server.

Note: the MCP server requires the optional 'mcp' extra:
    pip install gradle-test-bridge[mcp]

The tool executor is available without the mcp dependency.
"""

from __future__ import annotations

from gradle_test_bridge.mcp.tools import MCPToolExecutor


def __getattr__(name: str):
    """Lazy import for MCP server (requires mcp library)."""
    if name == "GradleTestBridgeMCPServer":
        from gradle_test_bridge.mcp.server import GradleTestBridgeMCPServer

        return GradleTestBridgeMCPServer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "GradleTestBridgeMCPServer",
    "MCPToolExecutor",
]
