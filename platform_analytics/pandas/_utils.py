"""Shared utilities for pandas conversion operations."""

from typing import Iterable

import pandas as pd  # type: ignore


def ensure_columns(
    frame: pd.DataFrame | None,
    columns: Iterable[str],
    datetime_columns: Iterable[str] = (),
) -> pd.DataFrame:
    """Return ``frame`` with all ``columns`` present and timestamps parsed as UTC.

    Missing columns are added empty. A missing frame becomes an empty one
    with the expected columns.

    Args:
        frame: Input table (or None)
        columns: Columns the caller relies on
        datetime_columns: Columns to parse with ``pd.to_datetime(utc=True)``

    Returns:
        A new DataFrame; the input is not modified
    """
    columns = list(columns)
    result = pd.DataFrame(columns=columns) if frame is None else frame.copy()
    for column in columns:
        if column not in result.columns:
            result[column] = None
    for column in datetime_columns:
        result[column] = pd.to_datetime(
            result[column], utc=True, errors="coerce", format="ISO8601"
        )
    return result


def group_key_or_none(value: object) -> str | None:
    """Normalise a pandas group label: NaN/None become None."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    return str(value)
