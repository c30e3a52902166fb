"""Data loading tool for the platform analytics MCP server."""

from pathlib import Path

import structlog
from fastmcp import Context
from pydantic import BaseModel, Field

from analytics.services.mcp_server.instance import mcp
from analytics.services.mcp_server.resilience import (
    BreakerGuardedStore,
    data_store_breaker,
    file_operations_breaker,
)
from analytics.services.mcp_server.state import (
    DATA_STORE_KEY,
    DATA_STORE_METADATA_KEY,
    get_shared_state,
)
from platform_analytics.pandas.store import DataFrameDataStore

logger = structlog.get_logger(__name__)

MAX_INPUT_BYTES = 25 * 1024 * 1024


class LoadPlatformDataRequest(BaseModel):
    """Request to load platform tables from a JSON file."""

    file_path: str = Field(
        default="platform_data.json",
        description=(
            "Path to a JSON object mapping table names (organizations, memberships, "
            "users, agent_runs, usage_records, subscriptions, sessions, audit_logs) "
            "to lists of rows. Relative paths resolve against the working directory."
        ),
    )


class LoadPlatformDataResponse(BaseModel):
    """Summary of the loaded tables."""

    file_path: str
    row_counts: dict[str, int]
    message: str


def resolve_data_path(file_path: str, base_dir: Path | None = None) -> Path:
    """Resolve ``file_path`` and check it stays within ``base_dir``.

    Args:
        file_path: Absolute path or path relative to ``base_dir``
        base_dir: Allowed root directory (defaults to the working directory)

    Returns:
        The resolved path

    Raises:
        ValueError: If the path escapes ``base_dir`` or the file is too large
        FileNotFoundError: If the file does not exist
    """
    base = (base_dir or Path.cwd()).resolve()
    path = Path(file_path)
    if not path.is_absolute():
        path = base / path
    resolved = path.resolve()

    try:
        resolved.relative_to(base)
    except ValueError as e:
        raise ValueError(
            f"Path {resolved} is outside allowed directory {base}. "
            f"Only files within the working directory can be loaded."
        ) from e

    if not resolved.exists():
        raise FileNotFoundError(f"Platform data file not found: {resolved}")

    size = resolved.stat().st_size
    if size > MAX_INPUT_BYTES:
        raise ValueError(
            f"Input file {resolved} is {size} bytes; exceeds limit of {MAX_INPUT_BYTES} bytes"
        )
    return resolved


def install_data_store(store: DataFrameDataStore, source: str) -> dict[str, int]:
    """Publish a loaded store to shared state behind the data_store breaker."""
    row_counts = {name: len(frame) for name, frame in store.tables.items()}
    shared_state = get_shared_state()
    shared_state.set(DATA_STORE_KEY, BreakerGuardedStore(store, data_store_breaker))
    shared_state.set(
        DATA_STORE_METADATA_KEY, {"file_path": source, "row_counts": row_counts}
    )
    return row_counts


def load_data_store_file(
    file_path: str, base_dir: Path | None = None
) -> tuple[Path, dict[str, int]]:
    """Load a JSON tables file into shared state.

    Returns:
        The resolved path and the row count per table
    """
    resolved = resolve_data_path(file_path, base_dir)
    store = file_operations_breaker.call(DataFrameDataStore.from_json_file, resolved)
    row_counts = install_data_store(store, str(resolved))
    logger.info("platform_data_loaded", file_path=str(resolved), row_counts=row_counts)
    return resolved, row_counts


async def _load_platform_data_impl(
    request: LoadPlatformDataRequest, ctx: Context
) -> LoadPlatformDataResponse:
    """Implementation of platform data loading."""
    await ctx.info(f"Loading platform data from {request.file_path}")

    resolved, row_counts = load_data_store_file(request.file_path)

    await ctx.info("Platform data loaded")

    total_rows = sum(row_counts.values())
    return LoadPlatformDataResponse(
        file_path=str(resolved),
        row_counts=row_counts,
        message=f"Loaded {total_rows} rows across {len(row_counts)} tables from {resolved.name}",
    )


@mcp.tool()
async def load_platform_data(
    request: LoadPlatformDataRequest, ctx: Context
) -> LoadPlatformDataResponse:
    """Load platform tables from a JSON file.

    The loaded tables back every analytics, snapshot and report tool until
    another file is loaded.

    Args:
        request: Request containing the file path

    Returns:
        Row counts per table
    """
    return await _load_platform_data_impl(request, ctx)
