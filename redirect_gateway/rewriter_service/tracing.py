"""Tracer provider bootstrap."""

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SimpleSpanProcessor

from redirect_gateway.shared.config import Settings
from redirect_gateway.shared.logging import get_logger

logger = get_logger(__name__)

OTLP_PROVIDER = "otlp"
NOOP_PROVIDER = "noop"
STDOUT_PROVIDER = "stdout"


def build_tracer_provider(settings: Settings) -> trace.TracerProvider:
    """
    Create the tracer provider named by ``settings.trace_provider``.

    ``otlp`` exports to ``settings.trace_endpoint``, ``noop`` records nothing
    and anything else prints spans to stdout unless export is skipped.
    """
    provider_name = settings.trace_provider.lower()

    if provider_name == NOOP_PROVIDER:
        return trace.NoOpTracerProvider()

    resource = Resource.create({"service.name": settings.service_name, "exporter": provider_name})
    provider = TracerProvider(resource=resource)

    if provider_name == OTLP_PROVIDER:
        exporter = OTLPSpanExporter(endpoint=settings.trace_endpoint or None)
        provider.add_span_processor(BatchSpanProcessor(exporter))
    elif not settings.trace_skip_export:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    return provider


def configure_tracer_provider(settings: Settings) -> trace.TracerProvider:
    """Build the tracer provider and install it globally."""
    provider = build_tracer_provider(settings)
    trace.set_tracer_provider(provider)
    logger.info(f"Tracer provider configured: {settings.trace_provider}")
    return provider
