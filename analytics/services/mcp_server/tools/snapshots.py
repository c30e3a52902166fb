"""Analytics snapshot MCP tools.

Snapshots freeze the analytics of one date so they can be listed and compared
later. They live in shared state for the lifetime of the server process.
"""

from datetime import datetime, timezone
from typing import Any

import structlog
from fastmcp import Context
from fastmcp.exceptions import ToolError
from pydantic import BaseModel, Field

from analytics.services.mcp_server.config import ServerConfig
from analytics.services.mcp_server.instance import mcp
from analytics.services.mcp_server.state import (
    SNAPSHOTS_KEY,
    get_shared_state,
    require_data_store,
)
from analytics.services.mcp_server.tools.platform_analytics import compute_with_retry
from platform_analytics.analyses.snapshots import (
    DEFAULT_PAGE_SIZE,
    SnapshotType,
    build_snapshot,
    compare_snapshots,
    filter_snapshots,
    is_duplicate_snapshot,
    is_uptrend,
    paginate,
)
from platform_analytics.service import AnalyticsAggregationError

logger = structlog.get_logger(__name__)


def _parse_date(value: str | None, field_name: str) -> datetime | None:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValueError(f"Invalid {field_name} timestamp: {value}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class CreateSnapshotRequest(BaseModel):
    """Request to record an analytics snapshot."""

    snapshot_type: SnapshotType = Field(
        default=SnapshotType.DAILY, description="Snapshot cadence: DAILY, WEEKLY or MONTHLY"
    )
    period: str | None = Field(
        default=None, description="Period for the captured analytics (e.g. '30d')"
    )
    date: str | None = Field(
        default=None,
        description="Snapshot date (ISO timestamp); also the end of the analytics window. Defaults to now.",
    )


class SnapshotResponse(BaseModel):
    """A stored snapshot."""

    snapshot: dict[str, Any]


class ListSnapshotsRequest(BaseModel):
    """Request to list stored snapshots."""

    start: str | None = Field(default=None, description="Inclusive lower date bound (ISO)")
    end: str | None = Field(default=None, description="Inclusive upper date bound (ISO)")
    snapshot_type: SnapshotType | None = Field(
        default=None, description="Only return snapshots of this cadence"
    )
    page: int = Field(default=1, ge=1, description="Page number, starting at 1")
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, description="Page size")


class ListSnapshotsResponse(BaseModel):
    """One page of snapshots, newest first."""

    snapshots: list[dict[str, Any]]
    pagination: dict[str, int]


class CompareSnapshotsRequest(BaseModel):
    """Request to compare two snapshots."""

    current_id: str = Field(description="Identifier of the newer snapshot")
    previous_id: str = Field(description="Identifier of the older snapshot")
    metrics: list[str] = Field(
        default_factory=lambda: ["totalOrgs", "totalUsers", "mrr"],
        description="Metric names to compare",
    )


class CompareSnapshotsResponse(BaseModel):
    """Percent change per metric between two snapshots."""

    current: dict[str, Any]
    previous: dict[str, Any]
    changes: dict[str, float]
    uptrend: dict[str, bool] = Field(
        description="Whether each metric never decreased across all stored snapshots of the same type"
    )


def _stored_snapshots() -> list:
    return list(get_shared_state().get(SNAPSHOTS_KEY) or [])


async def _create_snapshot_impl(
    request: CreateSnapshotRequest, ctx: Context
) -> SnapshotResponse:
    """Implementation of snapshot creation."""
    store = require_data_store()
    date = _parse_date(request.date, "date") or datetime.now(timezone.utc)
    period = request.period or ServerConfig.from_env().default_period

    await ctx.info(f"Creating {request.snapshot_type.value} snapshot for {date.date()}")

    try:
        analytics = await compute_with_retry(store, period, date)
    except AnalyticsAggregationError as e:
        raise ToolError("Failed to fetch analytics") from e

    snapshot = build_snapshot(analytics, request.snapshot_type, date=date)
    if is_duplicate_snapshot(_stored_snapshots(), snapshot):
        raise ValueError(
            f"A {snapshot.snapshot_type.value} snapshot already exists for {date.date()}"
        )

    get_shared_state().append(SNAPSHOTS_KEY, snapshot)
    logger.info(
        "analytics_snapshot_created",
        snapshot_id=snapshot.snapshot_id,
        snapshot_type=snapshot.snapshot_type.value,
        date=date.isoformat(),
    )

    return SnapshotResponse(snapshot=snapshot.as_dict())


@mcp.tool()
async def create_analytics_snapshot(
    request: CreateSnapshotRequest, ctx: Context
) -> SnapshotResponse:
    """
    Record the current platform analytics as a snapshot.

    At most one snapshot per cadence and calendar date is kept.

    Args:
        request: Cadence, period and snapshot date

    Returns:
        The stored snapshot
    """
    return await _create_snapshot_impl(request, ctx)


async def _list_snapshots_impl(
    request: ListSnapshotsRequest, ctx: Context
) -> ListSnapshotsResponse:
    """Implementation of snapshot listing."""
    selected = filter_snapshots(
        _stored_snapshots(),
        start=_parse_date(request.start, "start"),
        end=_parse_date(request.end, "end"),
        snapshot_type=request.snapshot_type,
    )
    page = paginate(selected, page=request.page, limit=request.limit)

    await ctx.info(f"Found {page.total} snapshots")

    return ListSnapshotsResponse(
        snapshots=[snapshot.as_dict() for snapshot in page.items],
        pagination=page.as_dict(),
    )


@mcp.tool()
async def list_analytics_snapshots(
    request: ListSnapshotsRequest, ctx: Context
) -> ListSnapshotsResponse:
    """
    List stored analytics snapshots, newest first.

    Without date bounds only snapshots from the last 30 days are returned.

    Args:
        request: Date range, cadence filter and pagination

    Returns:
        One page of snapshots with pagination details
    """
    return await _list_snapshots_impl(request, ctx)


async def _compare_snapshots_impl(
    request: CompareSnapshotsRequest, ctx: Context
) -> CompareSnapshotsResponse:
    """Implementation of snapshot comparison."""
    snapshots = _stored_snapshots()
    by_id = {snapshot.snapshot_id: snapshot for snapshot in snapshots}

    missing = [sid for sid in (request.current_id, request.previous_id) if sid not in by_id]
    if missing:
        raise ValueError(f"Snapshots not found: {', '.join(missing)}")

    current = by_id[request.current_id]
    previous = by_id[request.previous_id]
    changes = compare_snapshots(current, previous, request.metrics)

    same_type = [s for s in snapshots if s.snapshot_type == current.snapshot_type]
    uptrend = {name: is_uptrend(same_type, name) for name in changes}

    await ctx.info(f"Compared {len(changes)} metrics")

    return CompareSnapshotsResponse(
        current=current.as_dict(),
        previous=previous.as_dict(),
        changes={name: float(value) for name, value in changes.items()},
        uptrend=uptrend,
    )


@mcp.tool()
async def compare_analytics_snapshots(
    request: CompareSnapshotsRequest, ctx: Context
) -> CompareSnapshotsResponse:
    """
    Compare two stored snapshots metric by metric.

    Percent change uses the growth-rate rule: a zero previous value gives 100
    when the current value is positive, otherwise 0.

    Args:
        request: Snapshot identifiers and metric names

    Returns:
        Both snapshots, the percent change per metric and trend flags
    """
    return await _compare_snapshots_impl(request, ctx)
