"""Period window resolution for current vs. previous comparisons.

A period specifier such as ``"30d"``, ``"7"`` or ``"90d"`` is turned into two
contiguous, equal-length windows:

- current:  ``[now - days, now)``
- previous: ``[now - 2 * days, now - days)``

Windows are fixed-length durations measured in days. No calendar clamping
(month or week boundaries) is applied.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

DEFAULT_PERIOD_DAYS = 30
DEFAULT_PERIOD = f"{DEFAULT_PERIOD_DAYS}d"

# One optional trailing day-unit suffix
_PERIOD_PATTERN = re.compile(r"^([+-]?\d+)[dD]?$")


@dataclass(frozen=True)
class PeriodWindow:
    """Half-open time interval ``[start, end)``.

    Attributes
    ----------
    start:
        Inclusive lower bound
    end:
        Exclusive upper bound
    """

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(
                f"Window end must be after start: start={self.start}, end={self.end}"
            )

    @property
    def length(self) -> timedelta:
        return self.end - self.start

    def contains(self, ts: datetime) -> bool:
        return self.start <= ts < self.end


@dataclass(frozen=True)
class PeriodPair:
    """Current and previous windows of equal length.

    Attributes
    ----------
    current:
        The window ending at the resolution time
    previous:
        The window immediately preceding ``current``
    period_days:
        Length of each window in days
    """

    current: PeriodWindow
    previous: PeriodWindow
    period_days: int

    def __post_init__(self) -> None:
        if self.current.start != self.previous.end:
            raise ValueError(
                "Previous window must end where the current window starts: "
                f"previous.end={self.previous.end}, current.start={self.current.start}"
            )
        if self.current.length != self.previous.length:
            raise ValueError(
                f"Windows must have equal length: current={self.current.length}, "
                f"previous={self.previous.length}"
            )
        if self.current.length != timedelta(days=self.period_days):
            raise ValueError(
                f"Window length {self.current.length} does not match "
                f"period_days={self.period_days}"
            )

    @property
    def label(self) -> str:
        return f"{self.period_days}d"


def parse_period_days(period: str | int | None) -> int:
    """Parse a period specifier into a number of days.

    Parameters
    ----------
    period:
        ``"30d"``, ``"7"``, ``90`` or ``None``. One trailing ``d`` is accepted.

    Returns
    -------
    int
        The parsed day count, or ``DEFAULT_PERIOD_DAYS`` when the specifier is
        absent, unparseable, zero or negative. Never raises.

    Examples
    --------
    >>> parse_period_days("90")
    90
    >>> parse_period_days("7d")
    7
    >>> parse_period_days("last-quarter")
    30
    """
    if period is None:
        return DEFAULT_PERIOD_DAYS
    if isinstance(period, bool):
        return DEFAULT_PERIOD_DAYS
    if isinstance(period, int):
        return period if period > 0 else DEFAULT_PERIOD_DAYS

    match = _PERIOD_PATTERN.match(str(period).strip())
    if match is None:
        return DEFAULT_PERIOD_DAYS

    days = int(match.group(1))
    return days if days > 0 else DEFAULT_PERIOD_DAYS


def resolve_period_pair(
    period: str | int | None = None,
    now: datetime | None = None,
) -> PeriodPair:
    """Resolve a period specifier into current and previous windows.

    Parameters
    ----------
    period:
        Period specifier (see :func:`parse_period_days`). Defaults to 30 days.
    now:
        Resolution time. Defaults to the current UTC time. Naive datetimes are
        interpreted as UTC.

    Returns
    -------
    PeriodPair
        Contiguous windows, each exactly ``period_days`` long.
    """
    days = parse_period_days(period)
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    length = timedelta(days=days)
    current = PeriodWindow(start=now - length, end=now)
    previous = PeriodWindow(start=current.start - length, end=current.start)
    return PeriodPair(current=current, previous=previous, period_days=days)
