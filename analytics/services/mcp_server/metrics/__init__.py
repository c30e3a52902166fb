"""Metrics package for MCP Server

This package provides Prometheus metrics collection and export for monitoring.
"""

from analytics.services.mcp_server.metrics.prometheus_exporter import (
    decrement_active_aggregations,
    get_metrics_text,
    increment_active_aggregations,
    record_fetch,
    record_operation,
    start_metrics_server,
    update_circuit_breaker_state,
    update_system_metrics,
)

__all__ = [
    "start_metrics_server",
    "get_metrics_text",
    "record_operation",
    "record_fetch",
    "increment_active_aggregations",
    "decrement_active_aggregations",
    "update_system_metrics",
    "update_circuit_breaker_state",
]
