"""Prometheus Metrics Exporter

This module exports MCP server metrics to Prometheus for monitoring and alerting.

Metrics exported:
- analytics_operation_duration_seconds: Histogram of tool operation times
- analytics_operation_total: Counter of operations by status
- data_store_fetch_duration_seconds: Histogram of data store reads by query
- active_aggregations: Gauge of aggregations currently in flight
- system_memory_bytes: Gauge of process memory usage
- system_cpu_percent: Gauge of CPU usage

Usage:
    # Start Prometheus metrics server on port 8000
    >>> start_metrics_server(port=8000)

    # Metrics available at http://localhost:8000/metrics
"""

from threading import Lock

import psutil
import structlog
from prometheus_client import Counter, Gauge, Histogram, generate_latest, start_http_server

logger = structlog.get_logger(__name__)

# Metrics definitions
operation_duration = Histogram(
    "analytics_operation_duration_seconds",
    "Analytics operation duration in seconds",
    ["operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0],
)

operation_total = Counter(
    "analytics_operation_total",
    "Total analytics operations",
    ["operation", "status"],  # status: success or failure
)

fetch_duration = Histogram(
    "data_store_fetch_duration_seconds",
    "Duration of data store reads in seconds",
    ["query"],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
)

active_aggregations = Gauge(
    "active_aggregations", "Number of platform aggregations in flight"
)

system_memory_bytes = Gauge("system_memory_bytes", "Process memory usage in bytes")

system_cpu_percent = Gauge("system_cpu_percent", "Process CPU usage percentage")

# Circuit breaker state gauge
circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open, 2=half_open)",
    ["breaker_name"],
)

# Global state
_metrics_server_started = False
_metrics_lock = Lock()


def start_metrics_server(port: int = 8000):
    """Start Prometheus metrics HTTP server.

    Args:
        port: Port to expose metrics on (default: 8000)

    Raises:
        RuntimeError: If metrics server is already running
    """
    global _metrics_server_started

    with _metrics_lock:
        if _metrics_server_started:
            raise RuntimeError("Metrics server is already running")

        try:
            start_http_server(port)
            _metrics_server_started = True
            logger.info("prometheus_metrics_server_started", port=port)
        except Exception as e:
            logger.error(
                "prometheus_metrics_server_failed", port=port, error=str(e), error_type=type(e).__name__
            )
            raise


def get_metrics_text() -> bytes:
    """Get current Prometheus metrics in text format."""
    return generate_latest()


def record_operation(operation: str, duration_seconds: float, success: bool):
    """Record one analytics operation.

    Args:
        operation: Operation name (e.g., 'platform_analytics', 'custom_report')
        duration_seconds: Execution duration in seconds
        success: Whether execution succeeded

    Example:
        >>> record_operation('platform_analytics', 0.12, True)
    """
    status = "success" if success else "failure"

    operation_duration.labels(operation=operation).observe(duration_seconds)
    operation_total.labels(operation=operation, status=status).inc()


def record_fetch(query: str, duration_seconds: float):
    """Record the duration of one data store read."""
    fetch_duration.labels(query=query).observe(duration_seconds)


def increment_active_aggregations():
    """Call when an aggregation starts."""
    active_aggregations.inc()


def decrement_active_aggregations():
    """Call when an aggregation completes (success or failure)."""
    active_aggregations.dec()


def update_system_metrics():
    """Update system resource metrics (memory, CPU)."""
    try:
        process = psutil.Process()
        system_memory_bytes.set(process.memory_info().rss)
        system_cpu_percent.set(process.cpu_percent(interval=0.1))
    except psutil.Error as e:
        logger.warning("system_metrics_update_failed", error=str(e), error_type=type(e).__name__)


def update_circuit_breaker_state(breaker_name: str, state: str):
    """Update circuit breaker state metric.

    Args:
        breaker_name: Name of the circuit breaker
        state: State name ('closed', 'open', 'half-open')
    """
    normalized = state.lower().replace("-", "_")
    state_value = {"closed": 0, "open": 1, "half_open": 2}.get(normalized, 0)

    circuit_breaker_state.labels(breaker_name=breaker_name).set(state_value)
