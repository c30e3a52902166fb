"""Pandas DataFrame adapters for platform analytics results."""

from typing import Dict

import pandas as pd  # type: ignore

from platform_analytics.analyses.platform import PlatformAnalytics

_BREAKDOWN_KEYS = ("orgsByPlan", "orgsByIndustry", "topFeatures")


def analytics_to_dataframes(analytics: PlatformAnalytics) -> Dict[str, pd.DataFrame]:
    """Convert a PlatformAnalytics result to multiple DataFrames.

    Args:
        analytics: Result of a platform analytics computation

    Returns:
        Dictionary with keys:
        - 'metrics': Single-row DataFrame with every scalar metric
        - 'orgs_by_plan': Rows of (plan, organizations), sorted by plan
        - 'orgs_by_industry': Rows of (industry, organizations), sorted by industry
        - 'top_features': Rows of (name, usage) in list order

    Example:
        >>> dfs = analytics_to_dataframes(analytics)
        >>> dfs['metrics'].to_csv('platform_metrics.csv', index=False)
    """
    payload = analytics.as_dict()
    scalars = {key: value for key, value in payload.items() if key not in _BREAKDOWN_KEYS}
    metrics_df = pd.DataFrame([scalars])

    def mapping_frame(mapping: dict[str, int], label: str) -> pd.DataFrame:
        if not mapping:
            return pd.DataFrame(columns=[label, "organizations"])
        frame = pd.DataFrame(
            [{label: key, "organizations": value} for key, value in mapping.items()]
        )
        return frame.sort_values(label).reset_index(drop=True)

    top_features_df = pd.DataFrame(
        payload["topFeatures"], columns=["name", "usage"]
    )

    return {
        "metrics": metrics_df,
        "orgs_by_plan": mapping_frame(payload["orgsByPlan"], "plan"),
        "orgs_by_industry": mapping_frame(payload["orgsByIndustry"], "industry"),
        "top_features": top_features_df,
    }
