"""OpenTelemetry tracing configuration for the load simulator."""

import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from load_simulator.config import settings
from load_simulator.logging_config import SERVICE_NAME


def configure_tracing(
    service_name: str = SERVICE_NAME,
    otlp_endpoint: str | None = None,
    *,
    enable_console_export: bool | None = None,
) -> TracerProvider:
    """Configure OpenTelemetry tracing for a simulator process.

    Spans are only exported when an OTLP endpoint or console export is
    configured; otherwise the provider still assigns trace ids so log lines
    can be correlated.

    Args:
        service_name: Name of the service for tracing
        otlp_endpoint: OTLP gRPC collector endpoint
        enable_console_export: Print finished spans to the console

    Returns:
        The installed tracer provider
    """
    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": os.getenv("SERVICE_VERSION", "1.0.0"),
        }
    )
    tracer_provider = TracerProvider(resource=resource)

    otlp_endpoint = otlp_endpoint or settings.otlp_endpoint
    if otlp_endpoint:
        tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )

    if enable_console_export is None:
        enable_console_export = settings.trace_console_export
    if enable_console_export:
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(tracer_provider)
    return tracer_provider
