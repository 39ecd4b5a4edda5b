# Copyright (c) Microsoft. All rights reserved.

from collections.abc import Mapping, Sequence
from typing import Any, Final

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.trace import Tracer
from opentelemetry.util.types import AttributeValue

from . import __version__ as version_info
from ._logging import get_logger

__all__ = ["OBSERVABILITY_LOGGER_NAME", "TRACER_NAME", "get_tracer", "record", "setup_observability"]

OBSERVABILITY_LOGGER_NAME: Final[str] = "agent_samples.observability"
TRACER_NAME: Final[str] = "agent_samples"
DEFAULT_SERVICE_NAME: Final[str] = "agent_samples"

logger = get_logger(OBSERVABILITY_LOGGER_NAME)


def _to_attribute_value(value: Any) -> AttributeValue:
    """Span attributes only accept primitives and homogeneous sequences of primitives."""
    if isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, Sequence) and all(isinstance(item, str) for item in value):
        return list(value)
    return str(value)


def record(event: str, attributes: Mapping[str, Any] | None = None) -> None:
    """Record a named event with attributes.

    The event is logged at INFO level on the ``agent_samples.observability`` logger and,
    when a span is recording in the current context, added to that span as an event.

    Args:
        event: The event name, for example ``"agent.request"``.
        attributes: Key/value pairs describing the event.
    """
    span_attributes = {key: _to_attribute_value(value) for key, value in (attributes or {}).items()}
    logger.info(
        "%s %s",
        event,
        " ".join(f"{key}={value!r}" for key, value in span_attributes.items()),
        extra={"event_name": event, "event_attributes": span_attributes},
    )
    span = trace.get_current_span()
    if span.is_recording():
        span.add_event(event, attributes=span_attributes)


def get_tracer() -> Tracer:
    """Return the ``agent_samples`` tracer from the global tracer provider."""
    return trace.get_tracer(TRACER_NAME, version_info)


def setup_observability(
    console: bool = True,
    exporters: Sequence[SpanExporter] | None = None,
    service_name: str = DEFAULT_SERVICE_NAME,
) -> TracerProvider:
    """Install an OpenTelemetry SDK tracer provider as the global provider.

    The global tracer provider can only be set once per process; later calls create a
    provider that OpenTelemetry refuses to install and only warns about.

    Args:
        console: Export spans to the console.
        exporters: Additional span exporters.
        service_name: The ``service.name`` resource attribute.

    Returns:
        The tracer provider that was created.
    """
    span_exporters: list[SpanExporter] = list(exporters or [])
    if console:
        span_exporters.append(ConsoleSpanExporter())

    tracer_provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    for exporter in span_exporters:
        tracer_provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(tracer_provider)
    logger.debug("Tracer provider installed with %d exporter(s).", len(span_exporters))
    return tracer_provider
