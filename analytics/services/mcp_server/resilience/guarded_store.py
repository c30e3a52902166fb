"""Data store wrapper that routes every read through a circuit breaker.

pybreaker guards synchronous callables, so the wrapper runs the DataFrame
store's synchronous ``compute_*`` queries through ``breaker.call`` on a worker
thread. Each read is also timed into the Prometheus fetch histogram.
"""

import asyncio
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

from pybreaker import CircuitBreaker

from analytics.services.mcp_server.metrics import record_fetch
from platform_analytics.foundation.counters import GroupedCount, RawCounters
from platform_analytics.foundation.periods import PeriodWindow
from platform_analytics.pandas.store import DataFrameDataStore


class BreakerGuardedStore:
    """AnalyticsDataStore that protects a DataFrameDataStore with a breaker.

    Args:
        store: Loaded DataFrame store
        breaker: Circuit breaker shared by all reads
    """

    def __init__(self, store: DataFrameDataStore, breaker: CircuitBreaker):
        self.store = store
        self.breaker = breaker

    async def _guarded(self, query: str, func: Callable[..., Any], *args) -> Any:
        start = time.perf_counter()
        try:
            return await asyncio.to_thread(self.breaker.call, func, *args)
        finally:
            record_fetch(query, time.perf_counter() - start)

    async def fetch_counters(self, window: PeriodWindow) -> RawCounters:
        return await self._guarded("counters", self.store.compute_counters, window)

    async def fetch_orgs_by_plan(self) -> list[GroupedCount]:
        return await self._guarded("orgs_by_plan", self.store.compute_orgs_by_plan)

    async def fetch_orgs_by_industry(self) -> list[GroupedCount]:
        return await self._guarded(
            "orgs_by_industry", self.store.compute_orgs_by_industry
        )

    async def fetch_active_sessions(self, at: datetime) -> int:
        return await self._guarded(
            "active_sessions", self.store.compute_active_sessions, at
        )

    async def fetch_top_actions(
        self, window: PeriodWindow, limit: int = 10
    ) -> list[GroupedCount]:
        return await self._guarded(
            "top_actions", self.store.compute_top_actions, window, limit
        )
