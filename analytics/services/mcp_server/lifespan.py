"""Server lifespan: observability, metrics server and optional data preload."""

from contextlib import asynccontextmanager

import structlog

from analytics.services.mcp_server.config import VERSION, ServerConfig
from analytics.services.mcp_server.metrics import start_metrics_server
from analytics.services.mcp_server.observability import configure_observability

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def app_lifespan(app):
    """Initialize and cleanup MCP server resources.

    Sets up OpenTelemetry, starts the Prometheus metrics server and, when
    PLATFORM_DATA_PATH is set, preloads the platform tables.
    """
    config = ServerConfig.from_env()
    logger.info("mcp_server_starting", version=VERSION, environment=config.environment)

    configure_observability(config)

    try:
        start_metrics_server(port=config.metrics_port)
    except RuntimeError as e:
        # Server already running (e.g., during hot reload)
        logger.warning("prometheus_metrics_server_already_running", error=str(e))
    except OSError as e:
        logger.error(
            "prometheus_metrics_server_failed", error=str(e), port=config.metrics_port
        )

    if config.data_path:
        # Tool modules import the mcp instance, which imports this module
        from analytics.services.mcp_server.tools.data_loader import load_data_store_file

        try:
            load_data_store_file(config.data_path)
        except (OSError, ValueError) as e:
            logger.error(
                "platform_data_preload_failed",
                file_path=config.data_path,
                error=str(e),
                error_type=type(e).__name__,
            )

    yield

    logger.info("mcp_server_stopping")
