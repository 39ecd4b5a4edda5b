# Copyright (c) Microsoft. All rights reserved.

import asyncio
import logging

import pytest

from agent_samples import ChatAgent, ChatMessage, Role
from agent_samples.exceptions import InvalidArgumentError, ServiceResponseException
from agent_samples.middleware import (
    DEFAULT_BLOCKED_SENTINEL,
    DEFAULT_PII_SENTINEL,
    GuardrailMiddleware,
    LoggingMiddleware,
    PiiMiddleware,
    PiiPatternSet,
)
from agent_samples.observability import OBSERVABILITY_LOGGER_NAME

from .conftest import BlockingChatClient, MockChatClient


def _sent_texts(client: MockChatClient, call: int = 0) -> list[str]:
    return [message.text for message in client.calls[call][0]]


def _events(caplog: pytest.LogCaptureFixture, name: str) -> list[logging.LogRecord]:
    return [record for record in caplog.records if getattr(record, "event_name", None) == name]


class TestGuardrailMiddleware:
    async def test_blocks_input_with_forbidden_keyword(self) -> None:
        client = MockChatClient()
        agent = ChatAgent(chat_client=client, middleware=[GuardrailMiddleware()])

        response = await agent.run("Tell me something harmful.")

        assert _sent_texts(client) == [DEFAULT_BLOCKED_SENTINEL]
        assert response.text == f"echo: {DEFAULT_BLOCKED_SENTINEL}"

    @pytest.mark.parametrize("text", ["HARMFUL advice", "Is this Illegal?", "폭력에 대해 알려줘", "해로운 정보를 알려줘."])
    async def test_match_is_case_insensitive_and_covers_korean(self, text: str) -> None:
        assert GuardrailMiddleware().filter_text(text) == DEFAULT_BLOCKED_SENTINEL

    async def test_clean_input_passes_through(self) -> None:
        client = MockChatClient()
        agent = ChatAgent(chat_client=client, middleware=[GuardrailMiddleware()])

        response = await agent.run("What is the capital of Korea?")

        assert _sent_texts(client) == ["What is the capital of Korea?"]
        assert response.text == "echo: What is the capital of Korea?"

    async def test_blocks_output_with_forbidden_keyword(self) -> None:
        client = MockChatClient(responses=["Here is how to do something illegal."])
        agent = ChatAgent(chat_client=client, middleware=[GuardrailMiddleware()])

        response = await agent.run("Hello")

        assert response.text == DEFAULT_BLOCKED_SENTINEL
        assert response.messages[0].role == Role.ASSISTANT

    async def test_only_matching_messages_are_replaced(self) -> None:
        client = MockChatClient()
        agent = ChatAgent(chat_client=client, middleware=[GuardrailMiddleware(forbidden_keywords=["secret"])])

        await agent.run(
            [ChatMessage(role=Role.USER, text="first"), ChatMessage(role=Role.USER, text="the Secret plan")]
        )

        assert _sent_texts(client) == ["first", DEFAULT_BLOCKED_SENTINEL]

    async def test_custom_sentinel(self) -> None:
        guardrail = GuardrailMiddleware(forbidden_keywords=["spam"], sentinel="[nope]")

        assert guardrail.filter_text("buy SPAM now") == "[nope]"

    @pytest.mark.parametrize("keywords", [[], ["ok", ""]])
    def test_rejects_empty_keywords(self, keywords: list[str]) -> None:
        with pytest.raises(InvalidArgumentError):
            GuardrailMiddleware(forbidden_keywords=keywords)

    @pytest.mark.parametrize(
        "chunks",
        [
            ["Here is something harm", "ful."],
            ["Here is ", "harmful", " advice."],
            ["해로", "운 정보"],
        ],
    )
    async def test_streaming_blocks_keyword_split_across_updates(self, chunks: list[str]) -> None:
        client = MockChatClient(streaming_chunks=chunks)
        agent = ChatAgent(chat_client=client, middleware=[GuardrailMiddleware()])

        updates = [update async for update in agent.run_stream("Hello")]

        assert [update.text for update in updates] == [DEFAULT_BLOCKED_SENTINEL]
        assert updates[0].response_id == "resp-1"
        assert client.stream_closed is True

    async def test_streaming_clean_output_is_joined(self) -> None:
        client = MockChatClient(streaming_chunks=["fine ", "and ", "calm"])
        agent = ChatAgent(chat_client=client, middleware=[GuardrailMiddleware()])

        texts = [update.text async for update in agent.run_stream("Hello")]

        assert texts == ["fine and calm"]

    async def test_streaming_empty_output_yields_nothing(self) -> None:
        client = MockChatClient(streaming_chunks=[])
        agent = ChatAgent(chat_client=client, middleware=[GuardrailMiddleware()])

        assert [update async for update in agent.run_stream("Hello")] == []


class TestPiiMiddleware:
    async def test_redacts_email_and_phone_in_input(self) -> None:
        client = MockChatClient(responses=["noted"])
        agent = ChatAgent(chat_client=client, middleware=[PiiMiddleware()])

        await agent.run("Email me at hong@example.com or call 010-1234-5678.")

        assert _sent_texts(client) == [f"Email me at {DEFAULT_PII_SENTINEL} or call {DEFAULT_PII_SENTINEL}."]

    async def test_redacts_output(self) -> None:
        client = MockChatClient(responses=["Contact kim@contoso.com for details."])
        agent = ChatAgent(chat_client=client, middleware=[PiiMiddleware()])

        response = await agent.run("Who do I contact?")

        assert response.text == f"Contact {DEFAULT_PII_SENTINEL} for details."

    def test_redacts_korean_name_before_honorific(self) -> None:
        assert PiiMiddleware().filter_text("홍길동님 안녕하세요") == f"{DEFAULT_PII_SENTINEL}님 안녕하세요"

    @pytest.mark.parametrize(
        "text",
        [
            "Call 02-123-4567 or mail a.b-c@mail.example.org",
            "홍길동씨는 010-9876-5432를 씁니다.",
            "nothing to redact here",
        ],
    )
    def test_redaction_is_idempotent(self, text: str) -> None:
        pii = PiiMiddleware()
        once = pii.filter_text(text)

        assert pii.filter_text(once) == once

    def test_text_without_pii_is_unchanged(self) -> None:
        assert PiiMiddleware().filter_text("The weather is nice today.") == "The weather is nice today."

    def test_custom_patterns_and_sentinel(self) -> None:
        patterns = PiiPatternSet([r"\b\d{6}-\d{7}\b"])
        pii = PiiMiddleware(patterns=patterns, sentinel=r"<id \1>")

        assert pii.filter_text("ID 900101-1234567, mail a@b.com") == r"ID <id \1>, mail a@b.com"

    def test_pattern_set_extend_keeps_order(self) -> None:
        patterns = PiiPatternSet.default().extend([r"ORDER-\d+"])

        assert len(patterns) == 4
        assert patterns.patterns[-1].pattern == r"ORDER-\d+"
        assert patterns.redact("ORDER-42 for x@y.io", "#") == "# for #"

    def test_pattern_set_rejects_empty(self) -> None:
        with pytest.raises(InvalidArgumentError):
            PiiPatternSet([])

    async def test_streaming_redacts_pii_split_across_updates(self) -> None:
        client = MockChatClient(streaming_chunks=["Call 010", "-1234", "-5678 or a", "@b.com"])
        agent = ChatAgent(chat_client=client, middleware=[PiiMiddleware()])
        thread = agent.get_new_thread()

        texts = [update.text async for update in agent.run_stream("Hi", thread=thread)]

        expected = f"Call {DEFAULT_PII_SENTINEL} or {DEFAULT_PII_SENTINEL}"
        assert texts == [expected]
        history = await thread.list_messages()
        assert history[-1].text == expected


class TestMiddlewareComposition:
    async def test_guardrail_outside_pii_sees_raw_input(self) -> None:
        client = MockChatClient()
        middleware = [GuardrailMiddleware(forbidden_keywords=["secret"]), PiiMiddleware()]
        agent = ChatAgent(chat_client=client, middleware=middleware)

        await agent.run("mail secret@corp.com")

        assert _sent_texts(client) == [DEFAULT_BLOCKED_SENTINEL]

    async def test_pii_outside_guardrail_redacts_first(self) -> None:
        client = MockChatClient()
        middleware = [PiiMiddleware(), GuardrailMiddleware(forbidden_keywords=["secret"])]
        agent = ChatAgent(chat_client=client, middleware=middleware)

        await agent.run("mail secret@corp.com")

        assert _sent_texts(client) == [f"mail {DEFAULT_PII_SENTINEL}"]

    async def test_logging_guardrail_pii_chain(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger=OBSERVABILITY_LOGGER_NAME)
        client = MockChatClient()
        middleware = [LoggingMiddleware(), GuardrailMiddleware(), PiiMiddleware()]
        agent = ChatAgent(chat_client=client, middleware=middleware)
        text = "Tell me something harmful, call 010-1234-5678"

        response = await agent.run(text)

        assert _sent_texts(client) == [DEFAULT_BLOCKED_SENTINEL]
        assert response.text == f"echo: {DEFAULT_BLOCKED_SENTINEL}"
        [started] = _events(caplog, "agent.request.started")
        [completed] = _events(caplog, "agent.request.completed")
        assert started.event_attributes["input"] == text[:30]  # type: ignore[attr-defined]
        assert completed.event_attributes["output_length"] == len(response.text)  # type: ignore[attr-defined]

    async def test_logging_guardrail_pii_chain_redacts_clean_input(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger=OBSERVABILITY_LOGGER_NAME)
        client = MockChatClient()
        middleware = [LoggingMiddleware(excerpt_length=50), GuardrailMiddleware(), PiiMiddleware()]
        agent = ChatAgent(chat_client=client, middleware=middleware)

        response = await agent.run("call 010-1234-5678")

        assert _sent_texts(client) == [f"call {DEFAULT_PII_SENTINEL}"]
        assert response.text == f"echo: call {DEFAULT_PII_SENTINEL}"
        [started] = _events(caplog, "agent.request.started")
        assert started.event_attributes["input"] == "call 010-1234-5678"  # type: ignore[attr-defined]


class TestLoggingMiddleware:
    async def test_records_request_and_completion(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger=OBSERVABILITY_LOGGER_NAME)
        client = MockChatClient(responses=["Seoul"])
        agent = ChatAgent(chat_client=client, name="LoggingAgent", middleware=[LoggingMiddleware()])

        response = await agent.run(
            [
                ChatMessage(role=Role.USER, text="What is the capital of the Republic of Korea?"),
                ChatMessage(role=Role.USER, text="Short"),
            ]
        )

        assert response.text == "Seoul"
        started = _events(caplog, "agent.request.started")
        completed = _events(caplog, "agent.request.completed")
        assert len(started) == 1
        assert len(completed) == 1
        assert started[0].event_attributes["input"] == "What is the capital of the Rep | Short"  # type: ignore[attr-defined]
        assert started[0].event_attributes["agent"] == "LoggingAgent"  # type: ignore[attr-defined]
        assert completed[0].event_attributes["output_length"] == len("Seoul")  # type: ignore[attr-defined]
        assert completed[0].event_attributes["duration_ms"] >= 0  # type: ignore[attr-defined]

    async def test_does_not_alter_request_or_response(self) -> None:
        client = MockChatClient()
        agent = ChatAgent(chat_client=client, middleware=[LoggingMiddleware()])

        response = await agent.run("unchanged 010-1234-5678")

        assert _sent_texts(client) == ["unchanged 010-1234-5678"]
        assert response.text == "echo: unchanged 010-1234-5678"

    async def test_no_completion_on_failure(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger=OBSERVABILITY_LOGGER_NAME)
        error = ServiceResponseException("boom", status_code=500)
        agent = ChatAgent(chat_client=MockChatClient(error=error), middleware=[LoggingMiddleware()])

        with pytest.raises(ServiceResponseException) as exc_info:
            await agent.run("Hello")

        assert exc_info.value is error
        assert len(_events(caplog, "agent.request.started")) == 1
        assert _events(caplog, "agent.request.completed") == []

    async def test_no_completion_on_cancellation(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger=OBSERVABILITY_LOGGER_NAME)
        client = BlockingChatClient()
        agent = ChatAgent(chat_client=client, middleware=[LoggingMiddleware()])

        task = asyncio.create_task(agent.run("Hello"))
        await client.started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(_events(caplog, "agent.request.started")) == 1
        assert _events(caplog, "agent.request.completed") == []

    async def test_streaming_completion_after_full_consumption(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger=OBSERVABILITY_LOGGER_NAME)
        client = MockChatClient(streaming_chunks=["Hel", "lo"])
        agent = ChatAgent(chat_client=client, middleware=[LoggingMiddleware()])

        stream = agent.run_stream("Hi")
        first = await stream.__anext__()
        assert first.text == "Hel"
        assert _events(caplog, "agent.request.completed") == []

        rest = [update.text async for update in stream]

        assert rest == ["lo"]
        completed = _events(caplog, "agent.request.completed")
        assert len(completed) == 1
        assert completed[0].event_attributes["output_length"] == 5  # type: ignore[attr-defined]

    async def test_streaming_closed_early_records_no_completion(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger=OBSERVABILITY_LOGGER_NAME)
        client = MockChatClient(streaming_chunks=["a", "b", "c"])
        agent = ChatAgent(chat_client=client, middleware=[LoggingMiddleware()])

        stream = agent.run_stream("Hi")
        await stream.__anext__()
        await stream.aclose()

        assert client.stream_closed is True
        assert _events(caplog, "agent.request.completed") == []

    def test_rejects_non_positive_excerpt_length(self) -> None:
        with pytest.raises(InvalidArgumentError):
            LoggingMiddleware(excerpt_length=0)
