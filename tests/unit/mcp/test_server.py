"""Unit tests for MCP server."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from gradle_test_bridge.config import BridgeConfig
from gradle_test_bridge.mcp.server import GradleTestBridgeMCPServer, tool_definitions
from gradle_test_bridge.mcp.tools import MCPToolExecutor


class TestGradleTestBridgeMCPServer:
    """Tests for GradleTestBridgeMCPServer."""

    @pytest.fixture
    def project_root(self, tmp_path: Path) -> Path:
        """Create a temporary project root."""
        return tmp_path

    @pytest.fixture
    def config(self) -> BridgeConfig:
        """Create a test configuration."""
        return BridgeConfig()

    @pytest.fixture
    def server(self, project_root: Path, config: BridgeConfig) -> GradleTestBridgeMCPServer:
        """Create a server instance."""
        return GradleTestBridgeMCPServer(project_root, config)

    def test_server_initialization(
        self, server: GradleTestBridgeMCPServer, project_root: Path, config: BridgeConfig
    ) -> None:
        """Test server initialization."""
        assert server.project_root == project_root
        assert server.config is config
        assert server.server is not None

    def test_server_name(self, server: GradleTestBridgeMCPServer) -> None:
        """Test server has correct name."""
        assert server.server.name == "gradle-test-bridge"

    def test_server_executor(
        self, server: GradleTestBridgeMCPServer, project_root: Path, config: BridgeConfig
    ) -> None:
        """Test server executor shares project root and config."""
        assert isinstance(server.executor, MCPToolExecutor)
        assert server.executor.project_root == project_root
        assert server.executor.config is config

    @pytest.mark.asyncio
    async def test_unknown_tool(self, server: GradleTestBridgeMCPServer) -> None:
        """Test unknown tools return an error."""
        result = await server.handle_tool_call("scan", {})
        assert result == {"error": "Unknown tool: scan"}

    @pytest.mark.asyncio
    async def test_run_tests_requires_tree(self, server: GradleTestBridgeMCPServer) -> None:
        """Test run_tests without a tree returns an error."""
        result = await server.handle_tool_call("run_tests", {})
        assert "error" in result

    @pytest.mark.asyncio
    async def test_collect_results_requires_arguments(
        self, server: GradleTestBridgeMCPServer
    ) -> None:
        """Test collect_results needs both tree and results_dir."""
        result = await server.handle_tool_call("collect_results", {"tree": {}})
        assert "error" in result

    @pytest.mark.asyncio
    async def test_run_tests_dispatch(self, server: GradleTestBridgeMCPServer) -> None:
        """Test run_tests arguments are passed to the executor."""
        server.executor.run_tests = AsyncMock(return_value={"run_id": "1"})  # type: ignore[method-assign]
        tree = {"id": "pkg.FooTest", "type": "namespace"}

        result = await server.handle_tool_call(
            "run_tests", {"tree": tree, "position_id": "pkg.FooTest", "strategy": "debug-attach"}
        )

        assert result == {"run_id": "1"}
        server.executor.run_tests.assert_awaited_once_with(
            tree, position_id="pkg.FooTest", strategy="debug-attach"
        )

    @pytest.mark.asyncio
    async def test_get_status_dispatch(self, server: GradleTestBridgeMCPServer) -> None:
        """Test get_status returns a JSON-serializable status."""
        result = await server.handle_tool_call("get_status", {})
        assert result["active_runs"] == []
        json.dumps(result)


class TestToolDefinitions:
    """Tests for the advertised tools."""

    def test_tool_names(self) -> None:
        """Test every executor operation is advertised."""
        names = [tool.name for tool in tool_definitions()]
        assert names == ["run_tests", "collect_results", "cancel_runs", "get_status"]

    def test_required_arguments(self) -> None:
        """Test required arguments are declared in the schemas."""
        tools = {tool.name: tool for tool in tool_definitions()}
        assert tools["run_tests"].inputSchema["required"] == ["tree"]
        assert tools["collect_results"].inputSchema["required"] == ["tree", "results_dir"]
