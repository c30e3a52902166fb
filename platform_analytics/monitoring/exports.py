"""Export platform analytics results to various formats.

This module provides utilities for saving analytics results for dashboards,
scheduled reporting, and audit trails.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from platform_analytics.analyses.platform import PlatformAnalytics
from platform_analytics.pandas.analytics import analytics_to_dataframes

logger = logging.getLogger(__name__)

# Engagement bands for the DAU/MAU ratio
LOW_ENGAGEMENT_THRESHOLD = 20
HIGH_ENGAGEMENT_THRESHOLD = 50


def export_analytics_json(
    analytics: PlatformAnalytics,
    output_path: str | Path,
    metadata: dict[str, Any] | None = None,
) -> None:
    """Export an analytics result to JSON format.

    Parameters
    ----------
    analytics:
        Result to export
    output_path:
        Path where JSON file will be saved
    metadata:
        Optional metadata to include in the document (e.g. data source)

    Examples
    --------
    >>> export_analytics_json(
    ...     analytics,
    ...     "platform_analytics_2024-01-15.json",
    ...     metadata={"source": "production"},
    ... )
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    report_data = {
        "metadata": metadata or {},
        "timestamp": datetime.now().isoformat(),
        "data": analytics.as_dict(),
    }

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(report_data, f, indent=2)

    logger.info(f"Analytics report exported to {output_path}")


def export_analytics_csv(
    analytics: PlatformAnalytics,
    output_path: str | Path,
) -> None:
    """Export the scalar metrics of an analytics result as a one-row CSV.

    Breakdowns are written alongside as ``<stem>_orgs_by_plan.csv``,
    ``<stem>_orgs_by_industry.csv`` and ``<stem>_top_features.csv``.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    frames = analytics_to_dataframes(analytics)
    frames["metrics"].to_csv(output_path, index=False)
    for name in ("orgs_by_plan", "orgs_by_industry", "top_features"):
        frames[name].to_csv(
            output_path.with_name(f"{output_path.stem}_{name}.csv"), index=False
        )

    logger.info(f"Analytics report exported to {output_path}")


def export_analytics_markdown(
    analytics: PlatformAnalytics,
    output_path: str | Path,
    title: str = "Platform Analytics Report",
) -> None:
    """Export an analytics result to a human-readable Markdown report."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    data = analytics.as_dict()

    lines = []
    lines.append(f"# {title}\n")
    lines.append(f"**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append(
        f"**Period:** {data['period']} ({data['periodStart']} to {data['periodEnd']})\n"
    )

    lines.append("## Platform\n")
    lines.append(f"- **Total Organizations:** {data['totalOrgs']}")
    lines.append(f"- **Active Organizations:** {data['activeOrgs']}")
    lines.append(f"- **New Organizations:** {data['newOrgsThisPeriod']}")
    lines.append(f"- **Churned Organizations:** {data['churnedOrgs']}")
    lines.append(f"- **Total Users:** {data['totalUsers']}")
    lines.append(f"- **Active Users:** {data['activeUsers']}")
    lines.append(f"- **New Users:** {data['newUsersThisPeriod']}")
    lines.append(f"- **DAU/MAU:** {data['dauMau']}%\n")

    lines.append("## Usage\n")
    lines.append(f"- **Agent Runs:** {data['totalAgentRuns']}")
    lines.append(f"- **Tokens:** {data['totalTokens']}")
    lines.append(f"- **API Calls:** {data['totalApiCalls']}")
    lines.append(f"- **Avg Session Duration:** {data['avgSessionDuration']} min\n")

    lines.append("## Revenue\n")
    lines.append(f"- **MRR:** {data['mrr']}")
    lines.append(f"- **ARR:** {data['arr']}")
    lines.append(f"- **ARPU:** {data['arpu']}")
    lines.append(f"- **LTV:** {data['ltv']}")
    lines.append(f"- **Churn Rate:** {data['churnRate']}%")
    lines.append(f"- **Net Revenue Retention:** {data['netRevenueRetention']}%\n")

    lines.append("## Growth\n")
    lines.append("| Metric | Change |")
    lines.append("|--------|--------|")
    lines.append(f"| Organizations | {data['orgGrowthRate']:.1f}% |")
    lines.append(f"| Users | {data['userGrowthRate']:.1f}% |")
    lines.append(f"| Revenue | {data['revenueGrowthRate']:.1f}% |")
    lines.append("")

    for heading, key in (("Plan", "orgsByPlan"), ("Industry", "orgsByIndustry")):
        lines.append(f"## Organizations by {heading}\n")
        if data[key]:
            lines.append(f"| {heading} | Organizations |")
            lines.append("|------|---------------|")
            for group, count in sorted(data[key].items()):
                lines.append(f"| {group} | {count} |")
        else:
            lines.append("_No data_")
        lines.append("")

    lines.append("## Top Features\n")
    lines.append("| Feature | Usage |")
    lines.append("|---------|-------|")
    for feature in data["topFeatures"]:
        lines.append(f"| {feature['name']} | {feature['usage']} |")
    lines.append("")
    lines.append(
        "_Feature usage other than agent runs is estimated from organization count._"
    )

    with open(output_path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))

    logger.info(f"Analytics report exported to {output_path}")


def get_analytics_summary(analytics: PlatformAnalytics) -> dict[str, Any]:
    """Summarise an analytics result for dashboards or alerting.

    Returns
    -------
    dict[str, Any]
        Growth direction per dimension, engagement band and revenue headline
    """
    m = analytics.metrics

    def direction(rate) -> str:
        if rate > 0:
            return "growing"
        if rate < 0:
            return "declining"
        return "flat"

    if m.dau_mau >= HIGH_ENGAGEMENT_THRESHOLD:
        engagement = "high"
    elif m.dau_mau >= LOW_ENGAGEMENT_THRESHOLD:
        engagement = "moderate"
    else:
        engagement = "low"

    return {
        "period": analytics.period.label,
        "org_growth": direction(m.org_growth_rate),
        "user_growth": direction(m.user_growth_rate),
        "revenue_growth": direction(m.revenue_growth_rate),
        "engagement": engagement,
        "mrr": float(m.mrr),
        "arr": float(m.arr),
        "churned_orgs": m.churned_orgs,
    }
