"""Monitoring exports for platform analytics results.

This module provides tools for exporting analytics results to JSON, CSV and
Markdown, and for summarising them for dashboards and alerts.
"""

from platform_analytics.monitoring.exports import (
    export_analytics_csv,
    export_analytics_json,
    export_analytics_markdown,
    get_analytics_summary,
)

__all__ = [
    "export_analytics_csv",
    "export_analytics_json",
    "export_analytics_markdown",
    "get_analytics_summary",
]
