"""Health Check MCP Tool

This tool provides system health monitoring for the MCP server and its
dependencies.

It checks:
1. MCP server status
2. Shared state availability
3. Platform data readiness
4. Memory and system resources
5. Circuit breaker states

Usage:
    Call health_check() to get current system health status
"""

import time
from datetime import datetime, timezone
from typing import Any

import psutil
import structlog
from fastmcp import Context
from pydantic import BaseModel, Field

from analytics.services.mcp_server.instance import mcp
from analytics.services.mcp_server.metrics import update_system_metrics
from analytics.services.mcp_server.resilience import get_circuit_breaker_status
from analytics.services.mcp_server.state import (
    DATA_STORE_KEY,
    DATA_STORE_METADATA_KEY,
    LATEST_ANALYTICS_KEY,
    SNAPSHOTS_KEY,
    get_shared_state,
)

logger = structlog.get_logger(__name__)


class HealthCheckResponse(BaseModel):
    """Health check response with system status."""

    status: str = Field(
        description="Overall health status: 'healthy', 'degraded', or 'unhealthy'"
    )
    timestamp: str = Field(description="ISO timestamp of health check")
    checks: dict[str, str] = Field(description="Individual component health checks")
    uptime_seconds: float | None = Field(
        default=None, description="Server uptime in seconds (if available)"
    )
    data_status: dict[str, bool] = Field(description="Platform data availability")
    circuit_breakers: dict[str, dict[str, Any]] = Field(
        default_factory=dict, description="Circuit breaker states"
    )
    resource_usage: dict[str, float] | None = Field(
        default=None, description="System resource usage metrics"
    )


_SERVER_START_TIME = time.time()


async def _health_check_impl(ctx: Context) -> HealthCheckResponse:
    """Implementation of the health check."""
    checks: dict[str, str] = {"mcp_server": "healthy"}
    status = "healthy"

    shared_state = get_shared_state()
    checks["shared_state"] = "healthy"

    data_status = {
        "data_store": shared_state.has(DATA_STORE_KEY),
        "latest_analytics": shared_state.has(LATEST_ANALYTICS_KEY),
        "snapshots": shared_state.has(SNAPSHOTS_KEY),
    }
    if data_status["data_store"]:
        metadata = shared_state.get(DATA_STORE_METADATA_KEY) or {}
        checks["platform_data"] = f"loaded from {metadata.get('file_path', 'memory')}"
    else:
        # Missing data is informational, not a health failure
        checks["platform_data"] = "no data loaded (use load_platform_data)"

    breakers = get_circuit_breaker_status()
    open_breakers = sorted(
        name for name, info in breakers.items() if info["state"] != "closed"
    )
    if open_breakers:
        status = "degraded"
        checks["circuit_breakers"] = f"not closed: {', '.join(open_breakers)}"
    else:
        checks["circuit_breakers"] = "healthy"

    resource_usage: dict[str, float] | None = None
    try:
        process = psutil.Process()
        resource_usage = {
            "memory_rss_mb": process.memory_info().rss / 1024 / 1024,
            "memory_percent": process.memory_percent(),
            "cpu_percent": process.cpu_percent(interval=0.1),
        }
        update_system_metrics()
        checks["system_resources"] = "healthy"
    except psutil.Error as e:
        checks["system_resources"] = f"check failed: {e}"
        logger.error("system_resources_check_failed", error=str(e))

    uptime_seconds = time.time() - _SERVER_START_TIME

    logger.info(
        "health_check_complete",
        status=status,
        checks=checks,
        uptime_seconds=uptime_seconds,
    )
    await ctx.info(f"Health status: {status}")

    return HealthCheckResponse(
        status=status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        checks=checks,
        uptime_seconds=uptime_seconds,
        data_status=data_status,
        circuit_breakers=breakers,
        resource_usage=resource_usage,
    )


@mcp.tool()
async def health_check(ctx: Context) -> HealthCheckResponse:
    """
    Check health of MCP server and all dependencies.

    Reports server uptime, platform data availability, circuit breaker states
    and process resource usage. Any circuit breaker that is not closed marks
    the server as degraded.

    Returns:
        HealthCheckResponse with detailed health status and component checks
    """
    return await _health_check_impl(ctx)
