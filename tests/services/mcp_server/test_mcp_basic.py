"""
Basic tests for MCP Server

Tests server identity and tool registration.
"""

import pytest
from analytics.services.mcp_server.main import mcp


@pytest.mark.asyncio
async def test_mcp_server_initialization():
    """Test MCP server initializes correctly."""
    assert mcp.name == "Platform Analytics"
    assert mcp.version == "1.0.0"


@pytest.mark.asyncio
async def test_tools_registered():
    """All platform analytics tools are registered with the server."""
    tools = await mcp.get_tools()

    assert set(tools) >= {
        "load_platform_data",
        "get_platform_analytics",
        "create_analytics_snapshot",
        "list_analytics_snapshots",
        "compare_analytics_snapshots",
        "run_custom_report",
        "health_check",
    }
