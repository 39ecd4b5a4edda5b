# Copyright (c) Microsoft. All rights reserved.

import logging

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from agent_samples import ChatAgent
from agent_samples.middleware import LoggingMiddleware
from agent_samples.observability import OBSERVABILITY_LOGGER_NAME, get_tracer, record, setup_observability

from .conftest import MockChatClient


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter: InMemorySpanExporter) -> TracerProvider:
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider


def test_record_logs_event(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=OBSERVABILITY_LOGGER_NAME)

    record("sample.event", {"count": 2, "name": "demo"})

    [log_record] = [r for r in caplog.records if r.name == OBSERVABILITY_LOGGER_NAME]
    assert log_record.getMessage() == "sample.event count=2 name='demo'"
    assert log_record.event_name == "sample.event"  # type: ignore[attr-defined]
    assert log_record.event_attributes == {"count": 2, "name": "demo"}  # type: ignore[attr-defined]


def test_record_without_span_only_logs(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=OBSERVABILITY_LOGGER_NAME)

    record("sample.event")

    assert [r.event_name for r in caplog.records if r.name == OBSERVABILITY_LOGGER_NAME] == ["sample.event"]  # type: ignore[attr-defined]


def test_record_adds_span_event(tracer_provider: TracerProvider, span_exporter: InMemorySpanExporter) -> None:
    tracer = tracer_provider.get_tracer(__name__)

    with tracer.start_as_current_span("example"):
        record("sample.event", {"count": 2, "tags": ["a", "b"], "details": {"nested": True}})

    [span] = span_exporter.get_finished_spans()
    [event] = span.events
    assert event.name == "sample.event"
    assert dict(event.attributes or {}) == {"count": 2, "tags": ("a", "b"), "details": "{'nested': True}"}


async def test_logging_middleware_events_land_on_span(
    tracer_provider: TracerProvider, span_exporter: InMemorySpanExporter
) -> None:
    agent = ChatAgent(chat_client=MockChatClient(), name="Traced", middleware=[LoggingMiddleware()])
    tracer = tracer_provider.get_tracer(__name__)

    with tracer.start_as_current_span("example 1"):
        await agent.run("Hello")

    [span] = span_exporter.get_finished_spans()
    assert [event.name for event in span.events] == ["agent.request.started", "agent.request.completed"]
    assert span.events[0].attributes["agent"] == "Traced"  # type: ignore[index]


def test_get_tracer_returns_tracer() -> None:
    tracer = get_tracer()

    assert isinstance(tracer, trace.Tracer)


def test_setup_observability(monkeypatch: pytest.MonkeyPatch, span_exporter: InMemorySpanExporter) -> None:
    installed: list[trace.TracerProvider] = []
    monkeypatch.setattr(trace, "set_tracer_provider", installed.append)

    provider = setup_observability(console=False, exporters=[span_exporter], service_name="sample-tests")

    assert installed == [provider]
    assert provider.resource.attributes["service.name"] == "sample-tests"
    with provider.get_tracer(__name__).start_as_current_span("exported"):
        pass
    provider.force_flush()
    assert [span.name for span in span_exporter.get_finished_spans()] == ["exported"]
    provider.shutdown()
