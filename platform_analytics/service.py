"""Platform analytics service.

Resolves the period windows, reads every input from the data store
concurrently, and assembles the result. The four reads have no data
dependency on each other:

- counters for the current window
- counters for the previous window
- organizations by plan
- organizations by industry

They are issued together with ``asyncio.gather``. The first failure aborts the
whole aggregation: no partial result is ever returned and nothing is retried
here.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime

import structlog

from platform_analytics.analyses.platform import (
    PlatformAnalytics,
    assemble_platform_analytics,
)
from platform_analytics.foundation.periods import DEFAULT_PERIOD, resolve_period_pair
from platform_analytics.foundation.store import AnalyticsDataStore

logger = structlog.get_logger(__name__)


class AnalyticsAggregationError(RuntimeError):
    """A data store read failed, so no analytics could be produced."""


class PlatformAnalyticsService:
    """Computes platform analytics from an :class:`AnalyticsDataStore`."""

    def __init__(self, store: AnalyticsDataStore):
        self.store = store

    async def compute(
        self,
        period: str | int | None = DEFAULT_PERIOD,
        now: datetime | None = None,
    ) -> PlatformAnalytics:
        """Compute analytics for ``period`` ending at ``now``.

        Args:
            period: Period specifier such as ``"30d"`` or ``"7"``; unparseable
                values fall back to 30 days
            now: End of the current window (defaults to the current UTC time)

        Returns:
            The assembled analytics result

        Raises:
            AnalyticsAggregationError: If any data store read fails
        """
        pair = resolve_period_pair(period, now=now)
        logger.info(
            "platform_analytics_started",
            period_days=pair.period_days,
            current_start=pair.current.start.isoformat(),
            current_end=pair.current.end.isoformat(),
        )

        start_time = time.time()
        try:
            current, previous, plan_rows, industry_rows = await asyncio.gather(
                self.store.fetch_counters(pair.current),
                self.store.fetch_counters(pair.previous),
                self.store.fetch_orgs_by_plan(),
                self.store.fetch_orgs_by_industry(),
            )
        except Exception as e:
            logger.error(
                "platform_analytics_failed",
                period_days=pair.period_days,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise AnalyticsAggregationError("Failed to fetch analytics") from e

        analytics = assemble_platform_analytics(
            pair, current, previous, plan_rows, industry_rows
        )

        logger.info(
            "platform_analytics_computed",
            period_days=pair.period_days,
            total_orgs=analytics.metrics.total_orgs,
            total_users=analytics.metrics.total_users,
            duration_ms=(time.time() - start_time) * 1000,
        )
        return analytics


async def compute_platform_analytics(
    store: AnalyticsDataStore,
    period: str | int | None = DEFAULT_PERIOD,
    now: datetime | None = None,
) -> PlatformAnalytics:
    """Convenience wrapper around :meth:`PlatformAnalyticsService.compute`."""
    return await PlatformAnalyticsService(store).compute(period, now=now)
