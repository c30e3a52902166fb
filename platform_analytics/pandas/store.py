"""DataFrame-backed data store.

Implements :class:`~platform_analytics.foundation.store.AnalyticsDataStore`
over in-memory tables, one DataFrame per entity:

============== ==========================================================
Table          Columns
============== ==========================================================
organizations  id, plan_tier, industry, created_at
memberships    organization_id, user_id, joined_at
users          id, created_at
agent_runs     organization_id, started_at
usage_records  organization_id, metric_type, quantity, recorded_at
subscriptions  organization_id, amount, status, started_at, cancelled_at
sessions       user_id, started_at, ended_at, expires
audit_logs     action, timestamp
============== ==========================================================

All timestamps are parsed as UTC. Windows are half-open: ``start <= ts < end``.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Mapping

import pandas as pd  # type: ignore
import structlog

from platform_analytics.analyses.derived import calculate_mrr
from platform_analytics.foundation.counters import GroupedCount, RawCounters
from platform_analytics.foundation.periods import PeriodWindow
from ._utils import ensure_columns, group_key_or_none

logger = structlog.get_logger(__name__)

TOKENS_CONSUMED = "TOKENS_CONSUMED"
API_CALLS = "API_CALLS"

TABLE_SCHEMAS: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    # table: (columns, datetime columns)
    "organizations": (
        ("id", "plan_tier", "industry", "created_at"),
        ("created_at",),
    ),
    "memberships": (
        ("organization_id", "user_id", "joined_at"),
        ("joined_at",),
    ),
    "users": (("id", "created_at"), ("created_at",)),
    "agent_runs": (("organization_id", "started_at"), ("started_at",)),
    "usage_records": (
        ("organization_id", "metric_type", "quantity", "recorded_at"),
        ("recorded_at",),
    ),
    "subscriptions": (
        ("organization_id", "amount", "status", "started_at", "cancelled_at"),
        ("started_at", "cancelled_at"),
    ),
    "sessions": (
        ("user_id", "started_at", "ended_at", "expires"),
        ("started_at", "ended_at", "expires"),
    ),
    "audit_logs": (("action", "timestamp"), ("timestamp",)),
}


def _in_window(series: pd.Series, window: PeriodWindow) -> pd.Series:
    return (series >= window.start) & (series < window.end)


def _grouped(series: pd.Series) -> list[GroupedCount]:
    counts = series.value_counts(dropna=False, sort=False)
    return [
        GroupedCount(group_key=group_key_or_none(key), count=int(count))
        for key, count in counts.items()
    ]


class DataFrameDataStore:
    """In-memory data store over pandas tables.

    Parameters
    ----------
    tables:
        Mapping of table name to DataFrame. Missing tables are treated as
        empty; unknown tables are ignored.
    """

    def __init__(self, tables: Mapping[str, pd.DataFrame | None]):
        unknown = set(tables) - set(TABLE_SCHEMAS)
        if unknown:
            logger.warning("data_store_unknown_tables", tables=sorted(unknown))

        self.tables: dict[str, pd.DataFrame] = {
            name: ensure_columns(tables.get(name), columns, datetime_columns)
            for name, (columns, datetime_columns) in TABLE_SCHEMAS.items()
        }
        logger.info(
            "data_store_initialized",
            row_counts={name: len(df) for name, df in self.tables.items()},
        )

    @classmethod
    def from_records(
        cls, records: Mapping[str, list[dict[str, Any]]]
    ) -> "DataFrameDataStore":
        """Build a store from ``{table: [row, ...]}`` plain records."""
        return cls(
            {
                name: pd.DataFrame(rows) if rows else None
                for name, rows in records.items()
            }
        )

    @classmethod
    def from_json_file(cls, path: str | Path) -> "DataFrameDataStore":
        """Load ``{table: [row, ...]}`` from a JSON document."""
        with Path(path).open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
        if not isinstance(payload, dict):
            raise ValueError(
                f"Expected a JSON object mapping table names to rows, got {type(payload).__name__}"
            )
        return cls.from_records(payload)

    # ------------------------------------------------------------------
    # Synchronous computations (run in worker threads by the async API)
    # ------------------------------------------------------------------

    def _usage_sum(self, metric_type: str, window: PeriodWindow) -> int | None:
        usage = self.tables["usage_records"]
        mask = (usage["metric_type"] == metric_type) & _in_window(
            usage["recorded_at"], window
        )
        selected = pd.to_numeric(usage.loc[mask, "quantity"], errors="coerce").dropna()
        if selected.empty:
            return None
        return int(selected.sum())

    def _mrr_at(self, at: datetime) -> Decimal:
        """MRR of subscriptions running at ``at`` whose status is active."""
        subs = self.tables["subscriptions"]
        running = (
            (subs["started_at"] < at)
            & (subs["cancelled_at"].isna() | (subs["cancelled_at"] >= at))
            & subs["amount"].notna()
        )
        return calculate_mrr(
            subs.loc[running, ["amount", "status"]].to_dict("records")
        )

    def _avg_session_minutes(self, window: PeriodWindow) -> Decimal:
        sessions = self.tables["sessions"]
        mask = _in_window(sessions["started_at"], window) & sessions["ended_at"].notna()
        durations = sessions.loc[mask, "ended_at"] - sessions.loc[mask, "started_at"]
        if durations.empty:
            return Decimal("0")
        minutes = durations.dt.total_seconds().mean() / 60
        return Decimal(str(minutes)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    def compute_counters(self, window: PeriodWindow) -> RawCounters:
        orgs = self.tables["organizations"]
        memberships = self.tables["memberships"]
        runs = self.tables["agent_runs"]
        users = self.tables["users"]
        subs = self.tables["subscriptions"]
        sessions = self.tables["sessions"]

        existing_orgs = orgs.loc[orgs["created_at"] < window.end, "id"]
        orgs_at_start = int((orgs["created_at"] < window.start).sum())

        # Active: a membership joined OR a run started within the window
        active_org_ids = set(
            memberships.loc[
                _in_window(memberships["joined_at"], window), "organization_id"
            ]
        ) | set(runs.loc[_in_window(runs["started_at"], window), "organization_id"])
        active_orgs = int(existing_orgs.isin(active_org_ids).sum())

        churned_orgs = int(
            subs.loc[_in_window(subs["cancelled_at"], window), "organization_id"].nunique()
        )
        churn_rate = (
            Decimal(churned_orgs) / Decimal(orgs_at_start)
            if orgs_at_start > 0
            else Decimal("0")
        )

        active_users = int(
            sessions.loc[_in_window(sessions["started_at"], window), "user_id"].nunique()
        )

        return RawCounters.from_mapping(
            {
                "total_orgs": int(len(existing_orgs)),
                "active_orgs": active_orgs,
                "new_orgs": int(_in_window(orgs["created_at"], window).sum()),
                "churned_orgs": churned_orgs,
                "churn_rate": churn_rate,
                "total_users": int((users["created_at"] < window.end).sum()),
                "active_users": active_users,
                "new_users": int(_in_window(users["created_at"], window).sum()),
                "total_agent_runs": int(_in_window(runs["started_at"], window).sum()),
                "total_tokens": self._usage_sum(TOKENS_CONSUMED, window),
                "total_api_calls": self._usage_sum(API_CALLS, window),
                "avg_session_duration": self._avg_session_minutes(window),
                "mrr": self._mrr_at(window.end),
            }
        )

    def compute_orgs_by_plan(self) -> list[GroupedCount]:
        return _grouped(self.tables["organizations"]["plan_tier"])

    def compute_orgs_by_industry(self) -> list[GroupedCount]:
        return _grouped(self.tables["organizations"]["industry"])

    def compute_active_sessions(self, at: datetime) -> int:
        return int((self.tables["sessions"]["expires"] >= at).sum())

    def compute_top_actions(self, window: PeriodWindow, limit: int) -> list[GroupedCount]:
        logs = self.tables["audit_logs"]
        actions = logs.loc[_in_window(logs["timestamp"], window), "action"].dropna()
        counts = actions.value_counts().head(limit)
        return [
            GroupedCount(group_key=str(action), count=int(count))
            for action, count in counts.items()
        ]

    # ------------------------------------------------------------------
    # AnalyticsDataStore protocol
    # ------------------------------------------------------------------

    async def fetch_counters(self, window: PeriodWindow) -> RawCounters:
        return await asyncio.to_thread(self.compute_counters, window)

    async def fetch_orgs_by_plan(self) -> list[GroupedCount]:
        return await asyncio.to_thread(self.compute_orgs_by_plan)

    async def fetch_orgs_by_industry(self) -> list[GroupedCount]:
        return await asyncio.to_thread(self.compute_orgs_by_industry)

    async def fetch_active_sessions(self, at: datetime) -> int:
        return await asyncio.to_thread(self.compute_active_sessions, at)

    async def fetch_top_actions(
        self, window: PeriodWindow, limit: int = 10
    ) -> list[GroupedCount]:
        return await asyncio.to_thread(self.compute_top_actions, window, limit)
