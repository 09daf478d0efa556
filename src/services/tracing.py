"""
OpenTelemetry tracing setup.

Builds the tracer provider and span exporter used by the executor. Export
and collection happen in the OpenTelemetry SDK and the collector; this module
only wires them together from environment configuration.
"""

import logging
import os
from typing import Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)

from .transport import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = 'email-tool-server'
DEFAULT_OTLP_ENDPOINT = 'http://localhost:4317'


def _build_exporter() -> Optional[SpanExporter]:
    kind = os.environ.get('OTEL_TRACES_EXPORTER', 'otlp').strip().lower()

    if kind == 'none':
        return None
    if kind == 'console':
        return ConsoleSpanExporter()
    if kind == 'otlp':
        endpoint = os.environ.get('OTEL_EXPORTER_OTLP_ENDPOINT', DEFAULT_OTLP_ENDPOINT)
        return OTLPSpanExporter(endpoint=endpoint, insecure=endpoint.startswith('http://'))

    raise ConfigurationError(
        f"OTEL_TRACES_EXPORTER has invalid value '{kind}'. "
        f"Expected one of: otlp, console, none"
    )


def configure_tracing(
    exporter: Optional[SpanExporter] = None,
    service_name: Optional[str] = None,
    set_global: bool = True,
    instrument_logging: bool = True,
) -> TracerProvider:
    """
    Create a tracer provider with a batch exporter.

    Args:
        exporter: Span exporter (defaults to the one named by OTEL_TRACES_EXPORTER)
        service_name: Resource service name (defaults to OTEL_SERVICE_NAME)
        set_global: Install the provider as the global tracer provider
        instrument_logging: Inject trace/span ids into log records

    Returns:
        TracerProvider: The configured provider

    Raises:
        ConfigurationError: If OTEL_TRACES_EXPORTER is not recognized
    """
    service_name = service_name or os.environ.get('OTEL_SERVICE_NAME', DEFAULT_SERVICE_NAME)
    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)

    if exporter is None:
        exporter = _build_exporter()
    if exporter is not None:
        provider.add_span_processor(BatchSpanProcessor(exporter))
    else:
        logger.info("Trace export disabled (OTEL_TRACES_EXPORTER=none)")

    if set_global:
        trace.set_tracer_provider(provider)
    if instrument_logging:
        LoggingInstrumentor().instrument(set_logging_format=False)

    logger.info(
        f"Tracing configured: service_name={service_name}, "
        f"exporter={type(exporter).__name__ if exporter else 'none'}"
    )
    return provider
