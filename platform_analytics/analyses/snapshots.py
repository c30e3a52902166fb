"""Point-in-time analytics snapshots and their comparison.

Snapshots freeze a :class:`PlatformAnalytics` result under a type (daily,
weekly or monthly) and a date so that metrics can be listed, paged and
compared over time.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Sequence, TypeVar

from platform_analytics.analyses.derived import calculate_percent_change
from platform_analytics.analyses.platform import PlatformAnalytics

DEFAULT_PAGE_SIZE = 30
DEFAULT_LOOKBACK_DAYS = 30

_BREAKDOWN_KEYS = ("orgsByPlan", "orgsByIndustry", "topFeatures")

T = TypeVar("T")


class SnapshotType(str, Enum):
    """Snapshot cadence."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """Stored analytics metrics for one date.

    Attributes
    ----------
    snapshot_id:
        Unique identifier
    snapshot_type:
        Cadence of the snapshot
    date:
        Date the snapshot represents
    metrics:
        Scalar metrics keyed by response field name
    breakdown:
        Plan/industry breakdowns and top features
    created_at:
        When the snapshot was recorded
    """

    snapshot_id: str
    snapshot_type: SnapshotType
    date: datetime
    metrics: dict[str, Any]
    breakdown: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.snapshot_id,
            "type": self.snapshot_type.value,
            "date": self.date.isoformat(),
            "metrics": dict(self.metrics),
            "breakdown": dict(self.breakdown),
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class Page:
    """One page of a paginated listing."""

    items: tuple
    total: int
    page: int
    limit: int
    total_pages: int
    skip: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "totalPages": self.total_pages,
        }


def build_snapshot(
    analytics: PlatformAnalytics,
    snapshot_type: SnapshotType | str,
    date: datetime | None = None,
) -> AnalyticsSnapshot:
    """Freeze an analytics result as a snapshot.

    ``date`` defaults to the current UTC time.
    """
    snapshot_type = SnapshotType(snapshot_type)
    payload = analytics.as_dict()
    breakdown = {key: payload.pop(key) for key in _BREAKDOWN_KEYS}
    return AnalyticsSnapshot(
        snapshot_id=str(uuid.uuid4()),
        snapshot_type=snapshot_type,
        date=date or datetime.now(timezone.utc),
        metrics=payload,
        breakdown=breakdown,
    )


def is_duplicate_snapshot(
    existing: Iterable[AnalyticsSnapshot], candidate: AnalyticsSnapshot
) -> bool:
    """True when a snapshot of the same type already exists for the same date."""
    return any(
        snapshot.snapshot_type == candidate.snapshot_type
        and snapshot.date.date() == candidate.date.date()
        for snapshot in existing
    )


def filter_snapshots(
    snapshots: Iterable[AnalyticsSnapshot],
    start: datetime | None = None,
    end: datetime | None = None,
    snapshot_type: SnapshotType | str | None = None,
    now: datetime | None = None,
) -> list[AnalyticsSnapshot]:
    """Select snapshots in an inclusive date range, newest first.

    When neither bound is given the range defaults to the last 30 days before
    ``now``.
    """
    if start is None and end is None:
        now = now or datetime.now(timezone.utc)
        start = now - timedelta(days=DEFAULT_LOOKBACK_DAYS)
    wanted_type = SnapshotType(snapshot_type) if snapshot_type is not None else None

    selected = [
        snapshot
        for snapshot in snapshots
        if (start is None or snapshot.date >= start)
        and (end is None or snapshot.date <= end)
        and (wanted_type is None or snapshot.snapshot_type == wanted_type)
    ]
    return sorted(selected, key=lambda s: s.date, reverse=True)


def paginate(
    items: Sequence[T], page: int = 1, limit: int = DEFAULT_PAGE_SIZE
) -> Page:
    """Slice ``items`` into one page.

    Examples
    --------
    >>> result = paginate(list(range(90)), page=2, limit=30)
    >>> result.total_pages, result.skip
    (3, 30)
    """
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")
    skip = (page - 1) * limit
    return Page(
        items=tuple(items[skip : skip + limit]),
        total=len(items),
        page=page,
        limit=limit,
        total_pages=math.ceil(len(items) / limit),
        skip=skip,
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def compare_snapshots(
    current: AnalyticsSnapshot,
    previous: AnalyticsSnapshot,
    metric_names: Sequence[str] = ("totalOrgs", "totalUsers", "mrr"),
) -> dict[str, Decimal]:
    """Percent change per metric between two snapshots.

    Metrics missing from either snapshot, or holding a non-numeric value
    such as ``period`` or a breakdown mapping, are skipped. A zero previous
    value follows the growth-rate rule (100 when current is positive, else 0).
    """
    changes: dict[str, Decimal] = {}
    for name in metric_names:
        if name not in current.metrics or name not in previous.metrics:
            continue
        if not (_is_number(current.metrics[name]) and _is_number(previous.metrics[name])):
            continue
        changes[name] = calculate_percent_change(
            Decimal(str(current.metrics[name])), Decimal(str(previous.metrics[name]))
        )
    return changes


def is_uptrend(snapshots: Iterable[AnalyticsSnapshot], metric_name: str) -> bool:
    """True when ``metric_name`` never decreases across snapshots ordered by date."""
    ordered = sorted(snapshots, key=lambda s: s.date)
    values = [s.metrics[metric_name] for s in ordered if metric_name in s.metrics]
    return all(later >= earlier for earlier, later in zip(values, values[1:]))
