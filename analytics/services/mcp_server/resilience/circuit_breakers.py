"""Circuit breakers for the platform analytics MCP server.

Circuit breakers stop repeated calls into a failing dependency (the file
system when loading tables, the data store when aggregating) so requests fail
fast until the dependency recovers.

Circuit breaker states:
- CLOSED: Normal operation, requests flow through
- OPEN: Failure threshold exceeded, requests fail fast
- HALF_OPEN: Testing if service recovered, limited requests allowed

Usage:
    >>> breaker = get_circuit_breaker("file_operations")
    >>> store = breaker.call(DataFrameDataStore.from_json_file, "/path/to/tables.json")
"""

from typing import Any

import structlog
from pybreaker import CircuitBreaker, CircuitBreakerListener

from analytics.services.mcp_server.metrics import update_circuit_breaker_state

logger = structlog.get_logger(__name__)

_circuit_breakers: dict[str, CircuitBreaker] = {}


def get_circuit_breaker(
    name: str,
    fail_max: int = 5,
    reset_timeout: int = 60,
    exclude: list[type[BaseException]] | None = None,
) -> CircuitBreaker:
    """Get or create a circuit breaker by name.

    Circuit breakers are singletons per name. If a breaker with the given name
    already exists, it will be returned. Otherwise, a new one is created.

    Args:
        name: Unique name for this circuit breaker (e.g., "data_store")
        fail_max: Maximum number of failures before opening the circuit (default: 5)
        reset_timeout: Seconds to keep circuit open before trying again (default: 60)
        exclude: Exception types that pass through without counting as failures

    Returns:
        CircuitBreaker instance
    """
    if name not in _circuit_breakers:
        logger.info(
            "creating_circuit_breaker",
            name=name,
            fail_max=fail_max,
            reset_timeout=reset_timeout,
        )
        _circuit_breakers[name] = CircuitBreaker(
            fail_max=fail_max,
            reset_timeout=reset_timeout,
            name=name,
            exclude=exclude or [],
            listeners=[_CircuitBreakerListener(name)],
        )
        update_circuit_breaker_state(name, "closed")

    return _circuit_breakers[name]


class _CircuitBreakerListener(CircuitBreakerListener):
    """Logs state transitions and mirrors them into the Prometheus gauge."""

    def __init__(self, name: str):
        self.name = name

    def failure(self, cb: CircuitBreaker, exc: BaseException) -> None:
        logger.warning(
            "circuit_breaker_failure",
            name=self.name,
            state=cb.current_state,
            fail_count=cb.fail_counter,
            error_type=type(exc).__name__,
            error=str(exc),
        )

    def state_change(self, cb: CircuitBreaker, old_state, new_state) -> None:
        old_name = getattr(old_state, "name", None)
        new_name = getattr(new_state, "name", str(new_state))
        logger.warning(
            "circuit_breaker_state_change",
            name=self.name,
            old_state=old_name,
            new_state=new_name,
            fail_count=cb.fail_counter,
        )
        update_circuit_breaker_state(self.name, new_name)


def get_circuit_breaker_status() -> dict[str, dict[str, Any]]:
    """Get current status of all circuit breakers.

    Returns:
        Dict mapping circuit breaker names to their status:
        {
            "data_store": {
                "state": "closed",  # or "open", "half-open"
                "fail_count": 0,
                "fail_max": 5,
                "reset_timeout": 60
            },
            ...
        }
    """
    return {
        name: {
            "state": str(breaker.current_state).lower(),
            "fail_count": breaker.fail_counter,
            "fail_max": breaker.fail_max,
            "reset_timeout": breaker.reset_timeout,
        }
        for name, breaker in _circuit_breakers.items()
    }


def reset_all_circuit_breakers():
    """Close every circuit breaker and clear its failure count.

    Used by tests and after maintenance windows; breakers otherwise recover on
    their own after ``reset_timeout``.
    """
    logger.info("resetting_all_circuit_breakers", count=len(_circuit_breakers))

    for name, breaker in _circuit_breakers.items():
        breaker.close()
        update_circuit_breaker_state(name, "closed")
        logger.info("circuit_breaker_reset", name=name)


# File system failures while loading tables; malformed content is a caller error
file_operations_breaker = get_circuit_breaker(
    name="file_operations",
    fail_max=5,
    reset_timeout=60,
    exclude=[ValueError],
)

# Collaborator reads during aggregation
data_store_breaker = get_circuit_breaker(
    name="data_store",
    fail_max=3,
    reset_timeout=120,
)
