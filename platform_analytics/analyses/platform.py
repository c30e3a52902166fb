"""Platform analytics response assembly.

Combines derived metrics, plan/industry breakdowns and the top-features list
into one flat, fully enumerated result. Every metric is always present, even
when its value is zero.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Sequence

from platform_analytics.analyses.breakdowns import (
    FeatureUsage,
    build_top_features,
    fold_grouped_counts,
)
from platform_analytics.analyses.derived import DerivedMetrics, calculate_derived_metrics
from platform_analytics.foundation.counters import GroupedCount, RawCounters
from platform_analytics.foundation.periods import PeriodPair


def _number(value: Decimal) -> int | float:
    """JSON-friendly number: integral Decimals become int."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


@dataclass(frozen=True)
class PlatformAnalytics:
    """Complete analytics result for one period comparison.

    Attributes
    ----------
    period:
        The resolved current/previous windows
    metrics:
        Derived metrics for the current window against the previous one
    orgs_by_plan:
        Organization count per plan tier
    orgs_by_industry:
        Organization count per industry (organizations without one excluded)
    top_features:
        Agent runs followed by the four heuristic usage estimates
    """

    period: PeriodPair
    metrics: DerivedMetrics
    orgs_by_plan: dict[str, int] = field(default_factory=dict)
    orgs_by_industry: dict[str, int] = field(default_factory=dict)
    top_features: tuple[FeatureUsage, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        """Return the JSON-serialisable response record (camelCase keys)."""
        m = self.metrics
        return {
            "period": self.period.label,
            "periodStart": self.period.current.start.isoformat(),
            "periodEnd": self.period.current.end.isoformat(),
            # Platform
            "totalOrgs": m.total_orgs,
            "activeOrgs": m.active_orgs,
            "newOrgsThisPeriod": m.new_orgs_this_period,
            "churnedOrgs": m.churned_orgs,
            "totalUsers": m.total_users,
            "activeUsers": m.active_users,
            "newUsersThisPeriod": m.new_users_this_period,
            "dauMau": m.dau_mau,
            # Usage
            "totalAgentRuns": m.total_agent_runs,
            "totalTokens": m.total_tokens,
            "totalApiCalls": m.total_api_calls,
            "avgSessionDuration": _number(m.avg_session_duration),
            # Revenue
            "mrr": _number(m.mrr),
            "arr": _number(m.arr),
            "arpu": m.arpu,
            "ltv": m.ltv,
            "churnRate": _number(m.churn_rate),
            "netRevenueRetention": _number(m.net_revenue_retention),
            # Growth
            "orgGrowthRate": _number(m.org_growth_rate),
            "userGrowthRate": _number(m.user_growth_rate),
            "revenueGrowthRate": _number(m.revenue_growth_rate),
            # Breakdowns
            "orgsByPlan": dict(self.orgs_by_plan),
            "orgsByIndustry": dict(self.orgs_by_industry),
            "topFeatures": [
                {"name": feature.name, "usage": feature.usage}
                for feature in self.top_features
            ],
        }


def assemble_platform_analytics(
    period: PeriodPair,
    current: RawCounters,
    previous: RawCounters,
    plan_rows: Sequence[GroupedCount] = (),
    industry_rows: Sequence[GroupedCount] = (),
) -> PlatformAnalytics:
    """Build the complete analytics result from already-fetched inputs.

    Parameters
    ----------
    period:
        Resolved windows the counters were fetched for
    current:
        Counters for ``period.current``
    previous:
        Counters for ``period.previous``
    plan_rows:
        Grouped organization counts by plan tier
    industry_rows:
        Grouped organization counts by industry

    Returns
    -------
    PlatformAnalytics
    """
    metrics = calculate_derived_metrics(current, previous)
    return PlatformAnalytics(
        period=period,
        metrics=metrics,
        orgs_by_plan=fold_grouped_counts(plan_rows),
        orgs_by_industry=fold_grouped_counts(industry_rows, drop_blank=True),
        top_features=tuple(
            build_top_features(metrics.total_agent_runs, metrics.total_orgs)
        ),
    )
