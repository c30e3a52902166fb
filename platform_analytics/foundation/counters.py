"""Raw counter records supplied by the data store for one period window."""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal

_DECIMAL_FIELDS = frozenset({"churn_rate", "avg_session_duration", "mrr"})
_NULLABLE_FIELDS = frozenset({"total_tokens", "total_api_calls"})


@dataclass(frozen=True)
class RawCounters:
    """Scalar counts and sums for a single period window.

    All values are already aggregated by the data store; the engine never
    mutates them.

    Attributes
    ----------
    total_orgs:
        Organizations existing at window end
    active_orgs:
        Organizations with a membership joined or an agent run started
        within the window
    new_orgs:
        Organizations created within the window
    churned_orgs:
        Subscription cancellations recorded within the window
    churn_rate:
        Churn as a fraction of organizations at window start (0.02 == 2%)
    total_users:
        Users existing at window end
    active_users:
        Users active within the window
    new_users:
        Users created within the window
    total_agent_runs:
        Agent runs started within the window
    total_tokens:
        Summed TOKENS_CONSUMED usage quantity, or None when no records exist
    total_api_calls:
        Summed API_CALLS usage quantity, or None when no records exist
    avg_session_duration:
        Average session length in minutes
    mrr:
        Monthly recurring revenue at window end
    """

    total_orgs: int = 0
    active_orgs: int = 0
    new_orgs: int = 0
    churned_orgs: int = 0
    churn_rate: Decimal = Decimal("0")
    total_users: int = 0
    active_users: int = 0
    new_users: int = 0
    total_agent_runs: int = 0
    total_tokens: int | None = None
    total_api_calls: int | None = None
    avg_session_duration: Decimal = Decimal("0")
    mrr: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        for name in (
            "total_orgs",
            "active_orgs",
            "new_orgs",
            "churned_orgs",
            "total_users",
            "new_users",
            "total_agent_runs",
        ):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} cannot be negative: {value}")
        if self.mrr < 0:
            raise ValueError(f"mrr cannot be negative: {self.mrr}")

    @classmethod
    def from_mapping(cls, data: dict[str, object]) -> "RawCounters":
        """Build counters from a plain mapping such as an aggregate query row.

        Unknown keys are ignored. A null count or sum becomes zero, except
        ``total_tokens`` and ``total_api_calls`` which stay None.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {key: value for key, value in data.items() if key in known}
        for name, value in kwargs.items():
            if name in _DECIMAL_FIELDS:
                kwargs[name] = Decimal("0") if value is None else Decimal(str(value))
            elif value is None and name not in _NULLABLE_FIELDS:
                kwargs[name] = 0
        return cls(**kwargs)


@dataclass(frozen=True)
class GroupedCount:
    """One row of a grouping query (e.g. organizations per plan tier).

    ``group_key`` is None for rows whose grouping column is unset, such as
    organizations with no recorded industry.
    """

    group_key: str | None
    count: int

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError(f"Group count cannot be negative: {self.count}")
