"""
OpenTelemetry setup for the platform analytics MCP server.

Spans and metrics go to an OTLP gRPC collector when ``OTLP_ENDPOINT`` is set
and to the console otherwise.
"""

import structlog
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import (
    ParentBasedTraceIdRatio,
    Sampler,
    TraceIdRatioBased,
)

from analytics.services.mcp_server.config import VERSION, ServerConfig

logger = structlog.get_logger(__name__)

SERVICE_NAME = "platform-analytics"
OTLP_EXPORT_INTERVAL_MS = 60_000
CONSOLE_EXPORT_INTERVAL_MS = 5_000


def create_sampler(sampling_rate: float) -> Sampler:
    """Sampler for a rate in [0, 1]; zero drops everything, even parented spans."""
    if sampling_rate <= 0.0:
        return TraceIdRatioBased(0.0)
    return ParentBasedTraceIdRatio(min(sampling_rate, 1.0))


def _tracer_provider(config: ServerConfig, resource: Resource) -> TracerProvider:
    provider = TracerProvider(
        resource=resource, sampler=create_sampler(config.sampling_rate)
    )
    if config.otlp_endpoint:
        exporter = OTLPSpanExporter(endpoint=config.otlp_endpoint, insecure=True)
    else:
        exporter = ConsoleSpanExporter()
    provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def _meter_provider(config: ServerConfig, resource: Resource) -> MeterProvider:
    if config.otlp_endpoint:
        reader = PeriodicExportingMetricReader(
            OTLPMetricExporter(endpoint=config.otlp_endpoint, insecure=True),
            export_interval_millis=OTLP_EXPORT_INTERVAL_MS,
        )
    else:
        reader = PeriodicExportingMetricReader(
            ConsoleMetricExporter(), export_interval_millis=CONSOLE_EXPORT_INTERVAL_MS
        )
    return MeterProvider(resource=resource, metric_readers=[reader])


def configure_observability(
    config: ServerConfig, service_name: str = SERVICE_NAME
) -> tuple[trace.Tracer, metrics.Meter]:
    """
    Install global tracer and meter providers.

    Args:
        config: Server settings; ``otlp_endpoint`` selects OTLP over console
            export and ``sampling_rate`` sets the trace sampler
        service_name: Service name recorded on every span and metric

    Returns:
        Tuple of (tracer, meter) for creating spans and metrics
    """
    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": VERSION,
            "deployment.environment": config.environment,
        }
    )

    trace.set_tracer_provider(_tracer_provider(config, resource))
    metrics.set_meter_provider(_meter_provider(config, resource))

    logger.info(
        "observability_configured",
        service_name=service_name,
        environment=config.environment,
        exporter="otlp" if config.otlp_endpoint else "console",
        otlp_endpoint=config.otlp_endpoint,
        sampling_rate=config.sampling_rate,
    )

    return trace.get_tracer(service_name), metrics.get_meter(service_name)
