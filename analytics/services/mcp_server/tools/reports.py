"""Custom report MCP tool."""

import uuid
from datetime import datetime, timezone
from typing import Any

import structlog
from fastmcp import Context
from pydantic import BaseModel, Field

from analytics.services.mcp_server.instance import mcp
from analytics.services.mcp_server.state import require_data_store
from platform_analytics.analyses.reports import (
    CustomReport,
    ReportType,
    calculate_next_run,
    run_report,
)

logger = structlog.get_logger(__name__)


class RunReportRequest(BaseModel):
    """Request to run a custom report."""

    name: str = Field(default="Ad-hoc report", description="Report display name")
    report_type: str = Field(
        default=ReportType.USAGE.value,
        description="USAGE, REVENUE, USER_ACTIVITY or CUSTOM_SQL",
    )
    days: int | None = Field(
        default=None, description="Lookback in days (default: 30)"
    )
    schedule: str | None = Field(
        default=None,
        description="Optional schedule (daily, weekly, monthly) used to report the next run",
    )


class RunReportResponse(BaseModel):
    """Custom report result."""

    success: bool
    result: dict[str, Any]
    next_run_at: str | None = None


async def _run_custom_report_impl(
    request: RunReportRequest, ctx: Context
) -> RunReportResponse:
    """Implementation of the custom report tool."""
    store = require_data_store()
    now = datetime.now(timezone.utc)

    report = CustomReport(
        report_id=str(uuid.uuid4()),
        name=request.name,
        report_type=request.report_type,
        query={} if request.days is None else {"days": request.days},
        schedule=request.schedule,
    )

    await ctx.info(f"Running {report.report_type} report '{report.name}'")
    result = await run_report(report, store, now=now)
    await ctx.info("Report complete")

    next_run_at = None
    if request.schedule:
        next_run_at = calculate_next_run(request.schedule, now).isoformat()

    return RunReportResponse(
        success=True, result=result.as_dict(), next_run_at=next_run_at
    )


@mcp.tool()
async def run_custom_report(
    request: RunReportRequest, ctx: Context
) -> RunReportResponse:
    """
    Run a custom analytics report against the loaded platform data.

    Report types:
    - USAGE: agent runs, tokens, API calls, active organizations and sessions
    - REVENUE: revenue by plan, MRR, ARR and ARPU
    - USER_ACTIVITY: users, new users, active sessions and top audit actions
    - CUSTOM_SQL: not executed; returns a manual-execution message

    Args:
        request: Report type, lookback and optional schedule

    Returns:
        Report result and, for scheduled reports, the next run time
    """
    return await _run_custom_report_impl(request, ctx)
