"""
Platform Analytics MCP Server

This module provides the main MCP server for platform-wide analytics:
organization, user, usage and revenue metrics with period-over-period growth.
"""

import logging
import sys

import structlog

# Logs go to stderr; stdout carries the MCP JSON protocol
logging.basicConfig(
    format="%(message)s",
    stream=sys.stderr,
    level=logging.INFO,
)

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
)

logger = structlog.get_logger(__name__)

from analytics.services.mcp_server.instance import mcp  # noqa: E402

# Each module registers its tools with @mcp.tool(); these imports MUST happen
# before mcp.run() is called
from analytics.services.mcp_server.tools import (  # noqa: E402, F401
    data_loader,
    health_check,
    platform_analytics,
    reports,
    snapshots,
)

logger.info(
    "mcp_server_initialized",
    tools=[
        "load_platform_data",
        "get_platform_analytics",
        "create_analytics_snapshot",
        "list_analytics_snapshots",
        "compare_analytics_snapshots",
        "run_custom_report",
        "health_check",
    ],
)


def run() -> None:
    """Console entry point for the MCP server."""
    mcp.run()


if __name__ == "__main__":
    run()
