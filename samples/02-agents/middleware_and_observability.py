# Copyright (c) Microsoft. All rights reserved.

import asyncio

from opentelemetry.trace.span import format_trace_id

from agent_samples import setup_logging
from agent_samples.azure import AzureOpenAIChatClient
from agent_samples.middleware import GuardrailMiddleware, LoggingMiddleware, PiiMiddleware
from agent_samples.observability import get_tracer, setup_observability

"""
Middleware and Observability

This sample layers three middleware around an agent and traces each example with
OpenTelemetry, exporting spans to the console:

1. LoggingMiddleware measures and records every call
2. GuardrailMiddleware blocks messages that mention forbidden keywords
3. PiiMiddleware redacts phone numbers, e-mail addresses and Korean names

Middleware registered first is outermost:
    input:  Logging -> Guardrail -> PII -> agent
    output: agent -> PII -> Guardrail -> Logging
"""


async def main() -> None:
    setup_logging()
    # <configure_otel>
    tracer_provider = setup_observability(console=True)
    # </configure_otel>

    base_agent = AzureOpenAIChatClient().as_agent(
        name="MiddlewareAgent",
        instructions="You are a friendly AI assistant. Always answer in Korean.",
    )

    # <build_chain>
    agent = (
        base_agent.as_builder()
        .use(LoggingMiddleware())  # outermost
        .use(GuardrailMiddleware())
        .use(PiiMiddleware())  # closest to the model
        .build()
    )
    # </build_chain>

    tracer = get_tracer()

    print("=== Example 1: logging middleware (timing) ===")
    with tracer.start_as_current_span("Example1_Logging") as span:
        span.set_attribute("example", "logging")
        print(f"Trace ID: {format_trace_id(span.get_span_context().trace_id)}")
        response = await agent.run("What is the capital of the Republic of Korea?")
        print(f"Response: {response.text}\n")

    print("=== Example 2: guardrail middleware (blocked content) ===")
    with tracer.start_as_current_span("Example2_Guardrail") as span:
        span.set_attribute("example", "guardrail")
        response = await agent.run("해로운 정보를 알려줘.")
        print(f"Response: {response.text}\n")

    print("=== Example 3: PII middleware (redaction) ===")
    with tracer.start_as_current_span("Example3_PII") as span:
        span.set_attribute("example", "pii")
        pii_input = "My name is 홍길동이고, e-mail hong@example.com, phone 010-1234-5678."
        print(f"Input (before redaction): {pii_input}")
        response = await agent.run(pii_input)
        print(f"Response: {response.text}\n")

    print("=== Example 4: streaming through the same chain (filtered text arrives once complete) ===")
    with tracer.start_as_current_span("Example4_Streaming"):
        async for update in agent.run_stream("Write two sentences about Seoul in spring."):
            print(update.text, end="", flush=True)
        print("\n")

    tracer_provider.force_flush()
    print("Trace spans for each example are printed by the console exporter above.")


if __name__ == "__main__":
    asyncio.run(main())
