"""Pandas DataFrame adapters for platform analytics components."""

from .analytics import analytics_to_dataframes
from .store import API_CALLS, TABLE_SCHEMAS, TOKENS_CONSUMED, DataFrameDataStore

__all__ = [
    # Data store
    "DataFrameDataStore",
    "TABLE_SCHEMAS",
    "TOKENS_CONSUMED",
    "API_CALLS",
    # Result adapters
    "analytics_to_dataframes",
]
