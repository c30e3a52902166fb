"""Foundational building blocks for platform analytics.

This package exposes period window resolution, the raw counter records a
data store supplies per window, and the data store contract itself.
"""

from .counters import GroupedCount, RawCounters
from .periods import (
    DEFAULT_PERIOD,
    DEFAULT_PERIOD_DAYS,
    PeriodPair,
    PeriodWindow,
    parse_period_days,
    resolve_period_pair,
)
from .store import AnalyticsDataStore

__all__ = [
    "AnalyticsDataStore",
    "DEFAULT_PERIOD",
    "DEFAULT_PERIOD_DAYS",
    "GroupedCount",
    "PeriodPair",
    "PeriodWindow",
    "RawCounters",
    "parse_period_days",
    "resolve_period_pair",
]
