"""Derived platform metrics: growth, churn, revenue and engagement ratios.

Every metric here is a pure function of one or two :class:`RawCounters`
records (current window and, optionally, previous window). No function reads
the clock, and every division guards its denominator: a zero denominator
yields the documented fallback instead of an error, NaN or Infinity.

Formulas
--------
- DAU/MAU:   ``min(100, round(active_users / total_users * 100 * 3))``
- ARR:       ``mrr * 12``
- ARPU:      ``round(mrr / total_orgs)``
- LTV:       ``arpu * 24``
- Churned:   ``max(0, floor(total_orgs * churn_rate))``
- Growth:    ``(current - previous) / previous * 100``; when previous is 0 the
  rate is 100 if current > 0, else 0
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping

from platform_analytics.foundation.counters import RawCounters

# Module-level constants
DAU_MAU_MULTIPLIER = 3  # Approximates daily-over-monthly from window activity
DAU_MAU_CAP = 100
MONTHS_PER_YEAR = 12
LTV_MONTHS = 24  # Lifetime value horizon
PERCENTAGE_PRECISION = Decimal("0.01")
ACTIVE_SUBSCRIPTION_STATUS = "active"


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _as_count(value: object) -> int:
    """Return ``value`` when it is an integer count, else 0."""
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value


def calculate_percent_change(
    current: int | Decimal, previous: int | Decimal
) -> Decimal:
    """Period-over-period percentage change.

    Parameters
    ----------
    current:
        Value for the current window
    previous:
        Value for the previous window

    Returns
    -------
    Decimal
        ``(current - previous) / previous * 100``. When ``previous`` is zero
        the result is 100 if ``current`` is positive and 0 otherwise.

    Examples
    --------
    >>> calculate_percent_change(30, 20)
    Decimal('50.0')
    >>> calculate_percent_change(10, 0)
    Decimal('100')
    """
    current_dec = Decimal(current)
    previous_dec = Decimal(previous)
    if previous_dec == 0:
        return Decimal("100") if current_dec > 0 else Decimal("0")
    # Computed in double precision, then carried as Decimal
    rate = float(current_dec - previous_dec) / float(previous_dec) * 100
    return Decimal(str(rate))


def calculate_dau_mau(active_users: int, total_users: int) -> int:
    """Heuristic DAU/MAU engagement ratio, clamped to ``[0, 100]``."""
    if total_users <= 0:
        return 0
    ratio = Decimal(active_users) / Decimal(total_users) * 100 * DAU_MAU_MULTIPLIER
    return max(0, min(DAU_MAU_CAP, _round_half_up(ratio)))


def calculate_arr(mrr: Decimal) -> Decimal:
    return mrr * MONTHS_PER_YEAR


def calculate_arpu(mrr: Decimal, total_orgs: int) -> int:
    """Average revenue per organization; 0 when there are no organizations."""
    if total_orgs <= 0:
        return 0
    return _round_half_up(Decimal(mrr) / Decimal(total_orgs))


def calculate_ltv(arpu: int) -> int:
    return arpu * LTV_MONTHS


def calculate_churned_orgs(total_orgs: int, churn_rate: Decimal) -> int:
    """Estimated organizations lost: ``max(0, floor(total_orgs * churn_rate))``.

    A negative churn rate never produces a negative count.
    """
    return max(0, math.floor(Decimal(total_orgs) * Decimal(churn_rate)))


def calculate_churn_rate_pct(churn_rate: Decimal) -> Decimal:
    """Churn fraction as a percentage with two decimals, never below zero.

    Examples
    --------
    >>> calculate_churn_rate_pct(Decimal("0.025"))
    Decimal('2.50')
    """
    pct = (Decimal(churn_rate) * 100).quantize(
        PERCENTAGE_PRECISION, rounding=ROUND_HALF_UP
    )
    return max(Decimal("0.00"), pct)


def calculate_net_revenue_retention(
    current_mrr: Decimal, previous_mrr: Decimal
) -> Decimal:
    """Current MRR as a percentage of previous-window MRR.

    When previous MRR is zero the result follows the growth-rate rule: 100 if
    current MRR is positive, else 0.
    """
    if previous_mrr <= 0:
        return Decimal("100.00") if current_mrr > 0 else Decimal("0.00")
    return (Decimal(current_mrr) / Decimal(previous_mrr) * 100).quantize(
        PERCENTAGE_PRECISION, rounding=ROUND_HALF_UP
    )


def calculate_mrr(subscriptions: Iterable[Mapping[str, object]]) -> Decimal:
    """Sum ``amount`` over subscriptions whose status is ``active``.

    Examples
    --------
    >>> calculate_mrr([
    ...     {"amount": 100, "status": "active"},
    ...     {"amount": 200, "status": "active"},
    ...     {"amount": 150, "status": "cancelled"},
    ... ])
    Decimal('300')
    """
    total = Decimal("0")
    for subscription in subscriptions:
        if subscription.get("status") != ACTIVE_SUBSCRIPTION_STATUS:
            continue
        amount = subscription.get("amount")
        if amount is None:
            continue
        total += Decimal(str(amount))
    return total


@dataclass(frozen=True)
class DerivedMetrics:
    """Period metrics derived from current and previous window counters.

    Attributes
    ----------
    total_orgs, active_orgs, new_orgs_this_period:
        Organization counts for the current window
    churned_orgs:
        ``max(0, floor(total_orgs * churn_rate))``
    total_users, active_users, new_users_this_period:
        User counts for the current window
    dau_mau:
        Engagement ratio in ``[0, 100]``
    total_agent_runs, total_tokens, total_api_calls:
        Usage sums for the current window (missing sums are 0)
    avg_session_duration:
        Average session length in minutes
    mrr, arr, arpu, ltv:
        Revenue metrics
    churn_rate:
        Churn percentage (2 decimal places, never negative)
    net_revenue_retention:
        Current MRR as a percentage of previous MRR
    org_growth_rate, user_growth_rate, revenue_growth_rate:
        Percentage change against the previous window
    """

    total_orgs: int
    active_orgs: int
    new_orgs_this_period: int
    churned_orgs: int
    total_users: int
    active_users: int
    new_users_this_period: int
    dau_mau: int
    total_agent_runs: int
    total_tokens: int
    total_api_calls: int
    avg_session_duration: Decimal
    mrr: Decimal
    arr: Decimal
    arpu: int
    ltv: int
    churn_rate: Decimal
    net_revenue_retention: Decimal
    org_growth_rate: Decimal
    user_growth_rate: Decimal
    revenue_growth_rate: Decimal

    def __post_init__(self) -> None:
        if not 0 <= self.dau_mau <= DAU_MAU_CAP:
            raise ValueError(f"DAU/MAU must be 0-{DAU_MAU_CAP}: {self.dau_mau}")
        if self.churned_orgs < 0:
            raise ValueError(f"Churned orgs cannot be negative: {self.churned_orgs}")
        if self.arpu < 0:
            raise ValueError(f"ARPU cannot be negative: {self.arpu}")


def calculate_derived_metrics(
    current: RawCounters,
    previous: RawCounters | None = None,
) -> DerivedMetrics:
    """Derive all platform metrics from window counters.

    Parameters
    ----------
    current:
        Counters for the current window
    previous:
        Counters for the previous window. When omitted, every previous value
        is treated as zero (growth rates become 100 or 0).

    Returns
    -------
    DerivedMetrics
        Fully populated metrics; identical inputs always give identical output.

    Examples
    --------
    >>> from decimal import Decimal
    >>> metrics = calculate_derived_metrics(
    ...     RawCounters(total_orgs=30, new_orgs=30, mrr=Decimal("150000")),
    ...     RawCounters(new_orgs=20),
    ... )
    >>> metrics.arpu, metrics.ltv, metrics.arr
    (5000, 120000, Decimal('1800000'))
    >>> float(metrics.org_growth_rate)
    50.0
    """
    if previous is None:
        previous = RawCounters()

    active_users = _as_count(current.active_users)
    arpu = calculate_arpu(current.mrr, current.total_orgs)
    return DerivedMetrics(
        total_orgs=current.total_orgs,
        active_orgs=current.active_orgs,
        new_orgs_this_period=current.new_orgs,
        churned_orgs=calculate_churned_orgs(current.total_orgs, current.churn_rate),
        total_users=current.total_users,
        active_users=active_users,
        new_users_this_period=current.new_users,
        dau_mau=calculate_dau_mau(active_users, current.total_users),
        total_agent_runs=current.total_agent_runs,
        total_tokens=current.total_tokens or 0,
        total_api_calls=current.total_api_calls or 0,
        avg_session_duration=current.avg_session_duration,
        mrr=current.mrr,
        arr=calculate_arr(current.mrr),
        arpu=arpu,
        ltv=calculate_ltv(arpu),
        churn_rate=calculate_churn_rate_pct(current.churn_rate),
        net_revenue_retention=calculate_net_revenue_retention(
            current.mrr, previous.mrr
        ),
        org_growth_rate=calculate_percent_change(current.new_orgs, previous.new_orgs),
        user_growth_rate=calculate_percent_change(
            current.new_users, previous.new_users
        ),
        revenue_growth_rate=calculate_percent_change(current.mrr, previous.mrr),
    )
