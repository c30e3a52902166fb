"""Resilience patterns for MCP Server

This package provides resilience patterns for handling failures:
- Circuit breakers: Prevent cascade failures
- Guarded store: Routes data store reads through the data_store breaker
- Retry logic: Exponential backoff with tenacity (in tools/platform_analytics.py)
"""

from analytics.services.mcp_server.resilience.circuit_breakers import (
    data_store_breaker,
    file_operations_breaker,
    get_circuit_breaker,
    get_circuit_breaker_status,
    reset_all_circuit_breakers,
)
from analytics.services.mcp_server.resilience.guarded_store import BreakerGuardedStore

__all__ = [
    "BreakerGuardedStore",
    "data_store_breaker",
    "file_operations_breaker",
    "get_circuit_breaker",
    "get_circuit_breaker_status",
    "reset_all_circuit_breakers",
]
