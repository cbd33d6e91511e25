"""Tests for the MCP server entry point.

Tests cover:
1. run_tool: error families mapped to error results
2. render_result: JSON block plus hub warnings
3. call_tool / list_tools: MCP protocol handlers
4. cli_health_check: exit code from gateway reachability
"""

from __future__ import annotations

import json
from unittest.mock import patch

import httpx
import pytest
from conftest import make_context

from wisdom.core.exceptions import ConfigException, GatewayConnectionError
from wisdom.gateway.client import CRITICAL_WARNING, GatewayClient
from wisdom.mcp.context import ServerContext
from wisdom.mcp.server import call_tool, cli_health_check, list_tools, render_result, run_tool, set_context
from wisdom.mcp.tools import WISDOM_TOOLS


@pytest.fixture
def installed(ctx):
    set_context(ctx)
    yield ctx
    set_context(None)


# ---------------------------------------------------------------------------
# Tests: run_tool
# ---------------------------------------------------------------------------


class TestRunTool:
    def test_success_passes_through(self, ctx):
        assert run_tool(ctx, "wisdom_select_preset", {"fragment_type": "FACT"})["success"] is True

    def test_unexpected_error_is_internal(self, ctx):
        """Unexpected exceptions become internal errors without details."""
        with patch("wisdom.mcp.server.handle_wisdom_tool", side_effect=RuntimeError("boom")):
            assert run_tool(ctx, "wisdom_whoami", {}) == {"success": False, "error": "Internal error: boom"}

    def test_config_error(self, ctx):
        with patch("wisdom.mcp.server.handle_wisdom_tool", side_effect=ConfigException("disk full", path="/x.json")):
            result = run_tool(ctx, "wisdom_configure", {})
        assert result["error"] == "Configuration error: disk full"
        assert result["details"] == {"path": "/x.json"}

    def test_connection_error(self, ctx):
        error = GatewayConnectionError("http://gw:8080", "refused")
        with patch("wisdom.mcp.server.handle_wisdom_tool", side_effect=error):
            result = run_tool(ctx, "wisdom_list_tags", {})
        assert result["error"] == "Gateway error: Cannot connect to gateway at http://gw:8080: refused"


# ---------------------------------------------------------------------------
# Tests: render_result
# ---------------------------------------------------------------------------


class TestRenderResult:
    def test_single_block(self, ctx):
        content = render_result(ctx, {"success": True, "value": 1})
        assert len(content) == 1
        assert json.loads(content[0].text) == {"success": True, "value": 1}

    def test_hub_warnings_appended(self, ctx, gateway):
        gateway.warnings = ["Hub storage at 91%"]
        content = render_result(ctx, {"success": False, "error": "Gateway error: quota"})
        assert len(content) == 2
        assert content[1].text == "\n---\nHub storage at 91%"

    def test_hub_warning_not_carried_to_next_call(self, project_root, keypair, agent_uuid):
        def critical(request):
            return httpx.Response(200, json={"status": "ok"}, headers={"X-Hub-Status": "critical"})

        client = GatewayClient("http://gateway.test", transport=httpx.MockTransport(critical))
        ctx = make_context(project_root, client, keypair, agent_uuid)

        first = render_result(ctx, run_tool(ctx, "wisdom_whoami", {}))
        assert len(first) == 2
        assert CRITICAL_WARNING in first[1].text

        second = render_result(ctx, run_tool(ctx, "wisdom_select_preset", {"fragment_type": "FACT"}))
        assert len(second) == 1


# ---------------------------------------------------------------------------
# Tests: call_tool / list_tools
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_tools_returns_wisdom_tools():
    """list_tools should return the WISDOM_TOOLS definition."""
    result = await list_tools()
    assert result == WISDOM_TOOLS


@pytest.mark.asyncio
async def test_call_tool_returns_json(installed):
    content = await call_tool("wisdom_whoami", {})
    data = json.loads(content[0].text)
    assert data["success"] is True
    assert data["agent_uuid"] == installed.config.agent_uuid


@pytest.mark.asyncio
async def test_call_tool_unknown(installed):
    content = await call_tool("wisdom_unknown", {})
    assert json.loads(content[0].text)["error"] == "Unknown tool: wisdom_unknown"


@pytest.mark.asyncio
async def test_call_tool_validation_error(installed):
    content = await call_tool("wisdom_get_fragment", {"uuid": "nope"})
    data = json.loads(content[0].text)
    assert data["success"] is False
    assert data["error"].startswith("Validation error")


# ---------------------------------------------------------------------------
# Tests: cli_health_check
# ---------------------------------------------------------------------------


class TestHealthCheck:
    def test_reachable(self, capsys, ctx):
        with patch.object(ServerContext, "create", return_value=ctx):
            assert cli_health_check() == 0
        report = json.loads(capsys.readouterr().out)
        assert report["gateway_reachable"] is True
        assert report["has_private_key"] is True

    def test_unreachable(self, capsys, ctx, gateway):
        gateway.reachable = False
        with patch.object(ServerContext, "create", return_value=ctx):
            assert cli_health_check() == 1
        assert json.loads(capsys.readouterr().out)["gateway_reachable"] is False
