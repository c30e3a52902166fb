"""Grouped-count breakdowns and feature-usage estimates."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from platform_analytics.foundation.counters import GroupedCount

AGENT_RUNS_FEATURE = "AI Agent Runs"

# Provisional heuristics: fixed multiples of organization count, not measured
# telemetry. Order here is the order of the top-features list.
FEATURE_USAGE_MULTIPLIERS: tuple[tuple[str, int], ...] = (
    ("Dashboard Views", 15),
    ("Report Generation", 8),
    ("Data Source Connections", 3),
    ("API Calls", 100),
)


@dataclass(frozen=True)
class FeatureUsage:
    """A named feature and its usage count."""

    name: str
    usage: int

    def __post_init__(self) -> None:
        if self.usage < 0:
            raise ValueError(f"Feature usage cannot be negative: {self.usage}")


def fold_grouped_counts(
    rows: Iterable[GroupedCount], drop_blank: bool = False
) -> dict[str, int]:
    """Fold grouping rows into a ``{group_key: count}`` mapping.

    Rows with a None group key are dropped rather than reported under a
    placeholder key. With ``drop_blank`` empty-string keys are dropped too;
    the industry breakdown uses this since a blank industry is unrecorded.

    Examples
    --------
    >>> fold_grouped_counts([GroupedCount(None, 5), GroupedCount("Tech", 40)])
    {'Tech': 40}
    """
    folded: dict[str, int] = {}
    for row in rows:
        if row.group_key is None or (drop_blank and row.group_key == ""):
            continue
        folded[row.group_key] = row.count
    return folded


def estimate_feature_usage(total_orgs: int) -> list[FeatureUsage]:
    """Heuristic usage estimates derived from organization count."""
    return [
        FeatureUsage(name=name, usage=max(0, math.floor(total_orgs * multiplier)))
        for name, multiplier in FEATURE_USAGE_MULTIPLIERS
    ]


def build_top_features(total_agent_runs: int, total_orgs: int) -> list[FeatureUsage]:
    """Fixed-shape feature list: measured agent runs, then the four estimates.

    The list always has five entries in the same order, even when values are
    zero.
    """
    return [
        FeatureUsage(name=AGENT_RUNS_FEATURE, usage=total_agent_runs),
        *estimate_feature_usage(total_orgs),
    ]
