"""Platform analytics MCP tool.

Wraps :class:`PlatformAnalyticsService` for the request layer: transient data
store errors are retried with exponential backoff, every run is timed into
Prometheus, and failures surface as a tool error with a generic message.
"""

import time
from datetime import datetime, timezone
from typing import Any

import structlog
from fastmcp import Context
from fastmcp.exceptions import ToolError
from opentelemetry import trace
from pydantic import BaseModel, Field
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from analytics.services.mcp_server.config import ServerConfig
from analytics.services.mcp_server.instance import mcp
from analytics.services.mcp_server.metrics import (
    decrement_active_aggregations,
    increment_active_aggregations,
    record_operation,
)
from analytics.services.mcp_server.state import (
    LATEST_ANALYTICS_KEY,
    get_shared_state,
    require_data_store,
)
from platform_analytics.analyses.platform import PlatformAnalytics
from platform_analytics.monitoring.exports import get_analytics_summary
from platform_analytics.service import AnalyticsAggregationError, PlatformAnalyticsService

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

RETRY_ATTEMPTS = 3
TRANSIENT_ERRORS = (ConnectionError, TimeoutError)


class PlatformAnalyticsRequest(BaseModel):
    """Request for platform analytics."""

    period: str | None = Field(
        default=None,
        description=(
            "Period length in days such as '30d' or '7'. Unparseable or "
            "non-positive values fall back to 30 days. Defaults to "
            "ANALYTICS_DEFAULT_PERIOD."
        ),
    )
    now: str | None = Field(
        default=None,
        description="End of the current window (ISO timestamp). Defaults to now.",
    )


class PlatformAnalyticsResponse(BaseModel):
    """Platform analytics response."""

    data: dict[str, Any] = Field(description="Analytics result keyed by field name")
    summary: dict[str, Any] = Field(
        description="Growth direction, engagement band and revenue headline"
    )


def _is_transient(exc: BaseException) -> bool:
    """True when an aggregation failed because of a transient store error."""
    if isinstance(exc, AnalyticsAggregationError):
        return isinstance(exc.__cause__, TRANSIENT_ERRORS)
    return isinstance(exc, TRANSIENT_ERRORS)


def _log_retry(retry_state) -> None:
    logger.warning(
        "platform_analytics_retrying",
        attempt=retry_state.attempt_number,
        error=str(retry_state.outcome.exception()),
    )


@retry(
    stop=stop_after_attempt(RETRY_ATTEMPTS),
    wait=wait_exponential(multiplier=0.2, max=2),
    retry=retry_if_exception(_is_transient),
    before_sleep=_log_retry,
    reraise=True,
)
async def compute_with_retry(
    store, period: str | None, now: datetime | None
) -> PlatformAnalytics:
    """Run one aggregation, retrying transient data store failures."""
    return await PlatformAnalyticsService(store).compute(period, now=now)


def _parse_now(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValueError(f"Invalid 'now' timestamp: {value}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


async def _get_platform_analytics_impl(
    request: PlatformAnalyticsRequest, ctx: Context
) -> PlatformAnalyticsResponse:
    """Implementation of the platform analytics tool."""
    store = require_data_store()
    period = request.period or ServerConfig.from_env().default_period
    now = _parse_now(request.now)

    await ctx.info(f"Computing platform analytics for period {period}")

    start_time = time.perf_counter()
    increment_active_aggregations()
    with tracer.start_as_current_span("platform_analytics_execution") as span:
        span.set_attribute("period", period)
        try:
            analytics = await compute_with_retry(store, period, now)
        except AnalyticsAggregationError as e:
            record_operation(
                "platform_analytics", time.perf_counter() - start_time, False
            )
            logger.error(
                "platform_analytics_tool_failed",
                period=period,
                error=str(e.__cause__ or e),
                error_type=type(e.__cause__ or e).__name__,
            )
            raise ToolError("Failed to fetch analytics") from e
        finally:
            decrement_active_aggregations()

        span.set_attribute("total_orgs", analytics.metrics.total_orgs)
        span.set_attribute("mrr", float(analytics.metrics.mrr))

    record_operation("platform_analytics", time.perf_counter() - start_time, True)
    await ctx.report_progress(0.9, "Summarising results...")

    get_shared_state().set(LATEST_ANALYTICS_KEY, analytics)

    await ctx.info("Platform analytics complete")

    return PlatformAnalyticsResponse(
        data=analytics.as_dict(),
        summary=get_analytics_summary(analytics),
    )


@mcp.tool()
async def get_platform_analytics(
    request: PlatformAnalyticsRequest, ctx: Context
) -> PlatformAnalyticsResponse:
    """
    Platform-wide analytics for the current period versus the previous one.

    Reports organization, user, engagement, usage and revenue metrics for the
    platform, growth rates against the previous period of equal length,
    organization breakdowns by plan and industry, and the top features.

    Requires platform data to be loaded first with load_platform_data.

    Args:
        request: Period and optional window end

    Returns:
        Analytics payload under ``data`` plus a short summary
    """
    return await _get_platform_analytics_impl(request, ctx)
