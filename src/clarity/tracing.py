# src/clarity/tracing.py

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    SimpleSpanProcessor,
    ConsoleSpanExporter,
)


def configure_tracing(service_name: str = "clarity-backend", export_to_console: bool = False) -> None:
    """
    Configure OpenTelemetry tracing.

    Spans are always recorded so log lines carry trace/span ids; they are only
    printed when ``export_to_console`` is set (the batch jobs are noisy enough).
    """
    # If there's already a provider, don't reconfigure
    if isinstance(trace.get_tracer_provider(), TracerProvider):
        return

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    if export_to_console:
        # SimpleSpanProcessor exports synchronously; BatchSpanProcessor's worker
        # thread can outlive a short-lived CLI run.
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
