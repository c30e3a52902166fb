"""Server configuration read from the environment."""

import os
from dataclasses import dataclass

from platform_analytics.foundation.periods import DEFAULT_PERIOD

VERSION = "1.0.0"


@dataclass(frozen=True)
class ServerConfig:
    """Runtime settings for the platform analytics MCP server.

    Attributes:
        otlp_endpoint: OTLP gRPC endpoint; console export when None
        environment: Deployment environment (development, staging, production)
        sampling_rate: Trace sampling rate between 0.0 and 1.0
        metrics_port: Port for the Prometheus metrics HTTP server
        data_path: Optional JSON tables file loaded at startup
        default_period: Period used when a request omits one
    """

    otlp_endpoint: str | None = None
    environment: str = "development"
    sampling_rate: float = 1.0
    metrics_port: int = 8000
    data_path: str | None = None
    default_period: str = DEFAULT_PERIOD

    def __post_init__(self):
        if not 0.0 <= self.sampling_rate <= 1.0:
            raise ValueError(
                f"sampling_rate must be between 0.0 and 1.0, got {self.sampling_rate}"
            )
        if self.metrics_port <= 0:
            raise ValueError(f"metrics_port must be positive, got {self.metrics_port}")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "ServerConfig":
        """Build a config from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            ServerConfig populated from OTLP_ENDPOINT, ENVIRONMENT, SAMPLING_RATE,
            PROMETHEUS_METRICS_PORT, PLATFORM_DATA_PATH and ANALYTICS_DEFAULT_PERIOD
        """
        env = os.environ if environ is None else environ
        return cls(
            otlp_endpoint=env.get("OTLP_ENDPOINT") or None,
            environment=env.get("ENVIRONMENT", "development"),
            sampling_rate=float(env.get("SAMPLING_RATE", "1.0")),
            metrics_port=int(env.get("PROMETHEUS_METRICS_PORT", "8000")),
            data_path=env.get("PLATFORM_DATA_PATH") or None,
            default_period=env.get("ANALYTICS_DEFAULT_PERIOD", DEFAULT_PERIOD),
        )
