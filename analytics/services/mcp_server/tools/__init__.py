"""MCP Tools for Platform Analytics.

This module exports all MCP tools for data loading, analytics, snapshots,
reports and health monitoring.
"""

from .data_loader import load_platform_data
from .health_check import health_check
from .platform_analytics import get_platform_analytics
from .reports import run_custom_report
from .snapshots import (
    compare_analytics_snapshots,
    create_analytics_snapshot,
    list_analytics_snapshots,
)

__all__ = [
    "load_platform_data",
    "get_platform_analytics",
    "create_analytics_snapshot",
    "list_analytics_snapshots",
    "compare_analytics_snapshots",
    "run_custom_report",
    "health_check",
]
