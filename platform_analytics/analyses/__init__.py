"""Platform analytics computations.

The engine turns per-window raw counters into period-over-period business
metrics in three steps:

1. Derived metrics - growth, churn, revenue and engagement ratios
2. Breakdowns - plan/industry mappings and feature-usage estimates
3. Assembly - one flat, fully enumerated result

Snapshots and custom reports build on the same metrics.
"""

from .breakdowns import (
    FEATURE_USAGE_MULTIPLIERS,
    FeatureUsage,
    build_top_features,
    estimate_feature_usage,
    fold_grouped_counts,
)
from .derived import (
    DerivedMetrics,
    calculate_arpu,
    calculate_arr,
    calculate_churn_rate_pct,
    calculate_churned_orgs,
    calculate_dau_mau,
    calculate_derived_metrics,
    calculate_ltv,
    calculate_mrr,
    calculate_net_revenue_retention,
    calculate_percent_change,
)
from .platform import PlatformAnalytics, assemble_platform_analytics
from .reports import (
    PLAN_PRICING,
    CustomReport,
    ReportInactiveError,
    ReportResult,
    ReportType,
    calculate_next_run,
    run_report,
)
from .snapshots import (
    AnalyticsSnapshot,
    Page,
    SnapshotType,
    build_snapshot,
    compare_snapshots,
    filter_snapshots,
    is_duplicate_snapshot,
    is_uptrend,
    paginate,
)

__all__ = [
    # Derived metrics
    "DerivedMetrics",
    "calculate_arpu",
    "calculate_arr",
    "calculate_churn_rate_pct",
    "calculate_churned_orgs",
    "calculate_dau_mau",
    "calculate_derived_metrics",
    "calculate_ltv",
    "calculate_mrr",
    "calculate_net_revenue_retention",
    "calculate_percent_change",
    # Breakdowns
    "FEATURE_USAGE_MULTIPLIERS",
    "FeatureUsage",
    "build_top_features",
    "estimate_feature_usage",
    "fold_grouped_counts",
    # Assembly
    "PlatformAnalytics",
    "assemble_platform_analytics",
    # Snapshots
    "AnalyticsSnapshot",
    "Page",
    "SnapshotType",
    "build_snapshot",
    "compare_snapshots",
    "filter_snapshots",
    "is_duplicate_snapshot",
    "is_uptrend",
    "paginate",
    # Reports
    "PLAN_PRICING",
    "CustomReport",
    "ReportInactiveError",
    "ReportResult",
    "ReportType",
    "calculate_next_run",
    "run_report",
]
