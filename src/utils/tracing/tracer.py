"""
Tracer initialization and configuration for OpenTelemetry.

Until ``initialize_tracing`` is called, spans go to the OpenTelemetry API's
default provider and are no-ops.

OpenTelemetry accepts a global tracer provider only once per process, so
the provider created by the first ``initialize_tracing`` call is kept and
reused by later calls, including calls after ``shutdown_tracing``.
"""

import logging
import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "index-advisor"

_provider: TracerProvider | None = None
_exporters: set[str] = set()
_tracer: trace.Tracer | None = None
_is_initialized = False


def initialize_tracing(
    service_name: str = DEFAULT_SERVICE_NAME,
    otlp_endpoint: str | None = None,
    console_export: bool = False,
) -> trace.Tracer:
    """
    Initialize distributed tracing with OpenTelemetry.

    Args:
        service_name: Name of the service for identification
        otlp_endpoint: OTLP collector endpoint (e.g. "localhost:4317");
            falls back to the OTLP_ENDPOINT environment variable
        console_export: Also export spans to the console

    Returns:
        Configured tracer instance
    """
    global _provider, _tracer, _is_initialized

    if _is_initialized:
        logger.warning("Tracing already initialized, returning existing tracer")
        return _tracer

    if _provider is None:
        _provider = TracerProvider(resource=Resource(attributes={SERVICE_NAME: service_name}))
        trace.set_tracer_provider(_provider)
    else:
        logger.debug("Reusing the tracer provider of an earlier initialization")

    otlp_endpoint = otlp_endpoint or os.getenv("OTLP_ENDPOINT")
    if otlp_endpoint and "OTLP" not in _exporters:
        _provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )
        _exporters.add("OTLP")
        logger.info(f"OTLP exporter configured: {otlp_endpoint}")

    console_export = console_export or os.getenv("TRACE_CONSOLE", "").lower() == "true"
    if console_export and "Console" not in _exporters:
        _provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        _exporters.add("Console")

    if not _exporters:
        logger.warning("No trace exporters configured, tracing will be a no-op")

    # the global slot may hold a provider set elsewhere
    _tracer = _provider.get_tracer(service_name)
    _is_initialized = True

    logger.info(
        f"Tracing initialized: {service_name} (exporters: {', '.join(sorted(_exporters)) or 'none'})"
    )
    return _tracer


def get_tracer() -> trace.Tracer:
    """
    Return the configured tracer.

    Before the first initialization this is the API default tracer; after
    ``shutdown_tracing`` it is a no-op tracer, since the global provider is
    still ours.
    """
    if _tracer is not None:
        return _tracer
    if _provider is not None:
        return trace.NoOpTracer()
    return trace.get_tracer(DEFAULT_SERVICE_NAME)


def shutdown_tracing() -> None:
    """
    Flush pending spans and stop handing out the configured tracer.

    The provider stays registered for reuse; the SDK shuts it down at
    interpreter exit.
    """
    global _tracer, _is_initialized

    if not _is_initialized:
        return

    _provider.force_flush()
    _tracer = None
    _is_initialized = False
    logger.info("Tracing shutdown complete")
