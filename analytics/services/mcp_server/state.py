"""Shared state management for MCP server.

FastMCP's Context is per-request, so we need a shared state mechanism
to persist data (the loaded data store, snapshots, the last analytics result)
across tool calls.
"""

import threading
from typing import Any

DATA_STORE_KEY = "data_store"
DATA_STORE_METADATA_KEY = "data_store_metadata"
SNAPSHOTS_KEY = "analytics_snapshots"
LATEST_ANALYTICS_KEY = "latest_analytics"


class SharedState:
    """Thread-safe shared state storage for MCP tools.

    Uses threading.RLock for thread-safe access to shared data.
    Implements basic size-based eviction to prevent unbounded memory growth.

    Protected keys (data_store, analytics_snapshots) are only evicted as a last
    resort when all keys in the store are protected.
    """

    MAX_ITEMS = 100

    PROTECTED_KEYS = frozenset({DATA_STORE_KEY, DATA_STORE_METADATA_KEY, SNAPSHOTS_KEY})

    def __init__(self):
        self._store: dict[str, Any] = {}
        self._lock = threading.RLock()

    def set(self, key: str, value: Any) -> None:
        """Store a value in shared state.

        If MAX_ITEMS is reached, oldest items are evicted (FIFO).
        Protected keys are only evicted if all keys in the store are protected.

        Args:
            key: Storage key
            value: Value to store
        """
        with self._lock:
            if len(self._store) >= self.MAX_ITEMS and key not in self._store:
                evicted = False
                for k in self._store:
                    if k not in self.PROTECTED_KEYS:
                        del self._store[k]
                        evicted = True
                        break

                if not evicted:
                    first_key = next(iter(self._store))
                    del self._store[first_key]

            self._store[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Retrieve a value from shared state.

        Args:
            key: Storage key
            default: Value to return if key not found

        Returns:
            Stored value or default
        """
        with self._lock:
            return self._store.get(key, default)

    def append(self, key: str, value: Any) -> list[Any]:
        """Append to the list stored under ``key`` and return a copy of it."""
        with self._lock:
            items = list(self._store.get(key) or [])
            items.append(value)
            self.set(key, items)
            return list(items)

    def has(self, key: str) -> bool:
        """Check if a key exists in shared state."""
        with self._lock:
            return key in self._store

    def clear(self) -> None:
        """Clear all stored state."""
        with self._lock:
            self._store.clear()

    def keys(self) -> list[str]:
        """Get all keys in shared state (copy, not live view)."""
        with self._lock:
            return list(self._store.keys())


_shared_state = SharedState()


def get_shared_state() -> SharedState:
    """Get the global shared state instance."""
    return _shared_state


def require_data_store() -> Any:
    """Return the loaded data store.

    Raises:
        ValueError: If no platform data has been loaded yet
    """
    store = _shared_state.get(DATA_STORE_KEY)
    if store is None:
        raise ValueError(
            "No platform data loaded. Call load_platform_data first."
        )
    return store
