"""Data store contract for the analytics engine.

The engine performs no I/O of its own. Everything it aggregates is read
through an object satisfying :class:`AnalyticsDataStore`; a pandas-backed
implementation lives in :mod:`platform_analytics.pandas.store`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from platform_analytics.foundation.counters import GroupedCount, RawCounters
from platform_analytics.foundation.periods import PeriodWindow


@runtime_checkable
class AnalyticsDataStore(Protocol):
    """Read-only collaborator supplying counters and grouped counts.

    "Active organization" is decided here, not by the engine: an organization
    is active in a window when it has at least one membership joined within
    the window OR at least one agent run started within the window.
    """

    async def fetch_counters(self, window: PeriodWindow) -> RawCounters:
        """Counts and sums for one window."""
        ...

    async def fetch_orgs_by_plan(self) -> list[GroupedCount]:
        """Organization counts grouped by plan tier."""
        ...

    async def fetch_orgs_by_industry(self) -> list[GroupedCount]:
        """Organization counts grouped by industry (key may be None)."""
        ...

    async def fetch_active_sessions(self, at: datetime) -> int:
        """Sessions whose expiry is at or after ``at``."""
        ...

    async def fetch_top_actions(
        self, window: PeriodWindow, limit: int = 10
    ) -> list[GroupedCount]:
        """Most frequent audit-log actions in the window, descending."""
        ...
