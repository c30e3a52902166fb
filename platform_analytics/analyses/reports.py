"""Custom analytics reports.

A custom report is a saved definition (type, lookback query, optional
schedule) that is executed on demand against the data store. Supported
types:

- ``USAGE``: agent runs, token usage, API calls, active orgs and sessions
- ``REVENUE``: MRR estimated from plan pricing, ARR and ARPU
- ``USER_ACTIVITY``: user totals, active sessions and top audit actions
- ``CUSTOM_SQL``: never executed automatically; returns a notice

Unknown types return a notice instead of failing.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

import structlog

from platform_analytics.analyses.breakdowns import fold_grouped_counts
from platform_analytics.analyses.derived import calculate_arpu, calculate_arr
from platform_analytics.foundation.periods import parse_period_days, resolve_period_pair
from platform_analytics.foundation.store import AnalyticsDataStore

logger = structlog.get_logger(__name__)

# Monthly list price per organization, by plan tier
PLAN_PRICING: dict[str, Decimal] = {
    "STARTER": Decimal("0"),
    "PROFESSIONAL": Decimal("9900"),
    "ENTERPRISE": Decimal("49900"),
}

USAGE_METRIC_COUNT = 5
TOP_ACTIONS_LIMIT = 10


class ReportType(str, Enum):
    USAGE = "USAGE"
    REVENUE = "REVENUE"
    USER_ACTIVITY = "USER_ACTIVITY"
    CUSTOM_SQL = "CUSTOM_SQL"


class ReportInactiveError(ValueError):
    """Raised when an inactive report is run."""


@dataclass(frozen=True)
class CustomReport:
    """Saved report definition.

    Attributes
    ----------
    report_id:
        Unique identifier
    name:
        Display name
    report_type:
        One of :class:`ReportType` values; unknown strings are allowed
    query:
        Report parameters; ``days`` sets the lookback (default 30)
    schedule:
        ``daily``, ``weekly``, ``monthly`` or a free-form expression
    is_active:
        Inactive reports cannot be run
    """

    report_id: str
    name: str
    report_type: str
    query: Mapping[str, Any] = field(default_factory=dict)
    schedule: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class ReportResult:
    """Outcome of one report run."""

    report_type: str
    generated_at: datetime
    metrics: dict[str, Any] = field(default_factory=dict)
    record_count: int = 0
    period: str | None = None
    message: str | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "generatedAt": self.generated_at.isoformat(),
            "recordCount": self.record_count,
        }
        if self.period is not None:
            payload["period"] = self.period
        if self.metrics:
            payload["metrics"] = dict(self.metrics)
        if self.message is not None:
            payload["message"] = self.message
        return payload


def calculate_next_run(schedule: str | None, now: datetime) -> datetime:
    """Next midnight-aligned run time for a report schedule.

    - ``daily``: next midnight
    - ``weekly``: the coming Sunday at midnight (a week ahead on Sundays)
    - ``monthly``: first day of next month at midnight
    - anything else: next midnight
    """
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if schedule == "weekly":
        # Sunday-based day of week: Sunday=0 ... Saturday=6
        day_of_week = (now.weekday() + 1) % 7
        return midnight + timedelta(days=7 - day_of_week)
    if schedule == "monthly":
        if now.month == 12:
            return midnight.replace(year=now.year + 1, month=1, day=1)
        return midnight.replace(month=now.month + 1, day=1)
    return midnight + timedelta(days=1)


async def _usage_report(
    store: AnalyticsDataStore, days: int, now: datetime
) -> ReportResult:
    window = resolve_period_pair(days, now=now).current
    counters, active_sessions = await asyncio.gather(
        store.fetch_counters(window), store.fetch_active_sessions(now)
    )
    return ReportResult(
        report_type=ReportType.USAGE.value,
        generated_at=now,
        period=f"{days} days",
        metrics={
            "agentRuns": counters.total_agent_runs,
            "tokenUsage": counters.total_tokens or 0,
            "apiCalls": counters.total_api_calls or 0,
            "activeOrgs": counters.active_orgs,
            "activeSessions": active_sessions,
        },
        record_count=USAGE_METRIC_COUNT,
    )


async def _revenue_report(
    store: AnalyticsDataStore, days: int, now: datetime
) -> ReportResult:
    window = resolve_period_pair(days, now=now).current
    counters, plan_rows = await asyncio.gather(
        store.fetch_counters(window), store.fetch_orgs_by_plan()
    )

    revenue_by_plan: dict[str, int | float] = {}
    total_mrr = Decimal("0")
    for plan, count in fold_grouped_counts(plan_rows).items():
        revenue = PLAN_PRICING.get(plan, Decimal("0")) * count
        revenue_by_plan[plan] = int(revenue)
        total_mrr += revenue

    return ReportResult(
        report_type=ReportType.REVENUE.value,
        generated_at=now,
        period=f"{days} days",
        metrics={
            "totalOrgs": counters.total_orgs,
            "newOrgs": counters.new_orgs,
            "mrr": int(total_mrr),
            "arr": int(calculate_arr(total_mrr)),
            "revenueByPlan": revenue_by_plan,
            "arpu": calculate_arpu(total_mrr, counters.total_orgs),
        },
        record_count=len(revenue_by_plan),
    )


async def _user_activity_report(
    store: AnalyticsDataStore, days: int, now: datetime
) -> ReportResult:
    window = resolve_period_pair(days, now=now).current
    counters, active_sessions, action_rows = await asyncio.gather(
        store.fetch_counters(window),
        store.fetch_active_sessions(now),
        store.fetch_top_actions(window, limit=TOP_ACTIONS_LIMIT),
    )
    top_actions = fold_grouped_counts(action_rows)
    return ReportResult(
        report_type=ReportType.USER_ACTIVITY.value,
        generated_at=now,
        period=f"{days} days",
        metrics={
            "totalUsers": counters.total_users,
            "newUsers": counters.new_users,
            "activeSessions": active_sessions,
            "topActions": top_actions,
        },
        record_count=len(top_actions),
    )


_GENERATORS = {
    ReportType.USAGE.value: _usage_report,
    ReportType.REVENUE.value: _revenue_report,
    ReportType.USER_ACTIVITY.value: _user_activity_report,
}


async def run_report(
    report: CustomReport,
    store: AnalyticsDataStore,
    now: datetime | None = None,
) -> ReportResult:
    """Execute a saved report against the data store.

    Parameters
    ----------
    report:
        Report definition to run
    store:
        Data store to read from
    now:
        Run time (defaults to the current UTC time)

    Returns
    -------
    ReportResult

    Raises
    ------
    ReportInactiveError
        If the report is inactive.
    """
    if not report.is_active:
        raise ReportInactiveError(
            f"Report '{report.name}' is inactive and cannot be run"
        )

    now = now or datetime.now(timezone.utc)
    days = parse_period_days(report.query.get("days"))
    logger.info(
        "custom_report_started",
        report_id=report.report_id,
        report_type=report.report_type,
        days=days,
    )

    if report.report_type == ReportType.CUSTOM_SQL.value:
        return ReportResult(
            report_type=report.report_type,
            generated_at=now,
            message="Custom SQL reports require manual execution",
        )

    generator = _GENERATORS.get(report.report_type)
    if generator is None:
        logger.warning(
            "custom_report_unknown_type",
            report_id=report.report_id,
            report_type=report.report_type,
        )
        return ReportResult(
            report_type=report.report_type,
            generated_at=now,
            message="Unknown report type",
        )

    try:
        result = await generator(store, days, now)
    except Exception as e:
        logger.error(
            "custom_report_failed",
            report_id=report.report_id,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise

    logger.info(
        "custom_report_completed",
        report_id=report.report_id,
        record_count=result.record_count,
    )
    return result
