# Copyright (c) Microsoft. All rights reserved.

import asyncio
from collections.abc import AsyncIterable, Sequence
from typing import Any

from pytest import MonkeyPatch, fixture

from agent_samples import (
    BaseChatClient,
    ChatAgent,
    ChatMessage,
    ChatOptions,
    ChatResponse,
    ChatResponseUpdate,
    Role,
)

AZURE_ENV_VARS = [
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_API_KEY",
    "AZURE_OPENAI_DEPLOYMENT_NAME",
    "AZURE_OPENAI_EMBEDDING_DEPLOYMENT",
    "AZURE_OPENAI_API_VERSION",
    "AZURE_OPENAI_TOKEN_ENDPOINT",
    "AZURE_OPENAI_AD_TOKEN",
    "OPENAI_API_VERSION",
]


class MockChatClient(BaseChatClient):
    """Chat client double that echoes the last message unless canned responses are queued."""

    def __init__(
        self,
        responses: Sequence[str] | None = None,
        streaming_chunks: Sequence[str] | None = None,
        error: Exception | None = None,
    ) -> None:
        super().__init__()
        self.responses = list(responses or [])
        self.streaming_chunks = list(streaming_chunks if streaming_chunks is not None else ["Hello", ", ", "world"])
        self.error = error
        self.calls: list[tuple[list[ChatMessage], ChatOptions]] = []
        self.stream_closed = False

    async def _inner_get_response(
        self,
        *,
        messages: list[ChatMessage],
        options: ChatOptions,
        **kwargs: Any,
    ) -> ChatResponse:
        self.calls.append((list(messages), options))
        if self.error is not None:
            raise self.error
        text = self.responses.pop(0) if self.responses else f"echo: {messages[-1].text}"
        return ChatResponse(
            messages=[ChatMessage(role=Role.ASSISTANT, text=text)],
            response_id="resp-1",
            model_id="mock-model",
            finish_reason="stop",
        )

    async def _inner_get_streaming_response(
        self,
        *,
        messages: list[ChatMessage],
        options: ChatOptions,
        **kwargs: Any,
    ) -> AsyncIterable[ChatResponseUpdate]:
        self.calls.append((list(messages), options))
        try:
            for chunk in self.streaming_chunks:
                await asyncio.sleep(0)
                yield ChatResponseUpdate(role=Role.ASSISTANT, text=chunk, response_id="resp-1")
            if self.error is not None:
                raise self.error
        finally:
            self.stream_closed = True


class BlockingChatClient(MockChatClient):
    """Chat client double whose calls never complete until cancelled."""

    def __init__(self) -> None:
        super().__init__()
        self.started = asyncio.Event()

    async def _inner_get_response(
        self,
        *,
        messages: list[ChatMessage],
        options: ChatOptions,
        **kwargs: Any,
    ) -> ChatResponse:
        self.calls.append((list(messages), options))
        self.started.set()
        await asyncio.Event().wait()
        raise AssertionError("unreachable")


class KeywordEmbeddingGenerator:
    """Embeds a text as keyword counts over a fixed vocabulary."""

    def __init__(self, vocabulary: Sequence[str]) -> None:
        self.vocabulary = [word.casefold() for word in vocabulary]
        self.calls: list[list[str]] = []

    async def generate(self, texts: Sequence[str], **kwargs: Any) -> list[list[float]]:
        self.calls.append(list(texts))
        return [[float(text.casefold().count(word)) for word in self.vocabulary] for text in texts]


@fixture(autouse=True)
def clean_azure_env(monkeypatch: MonkeyPatch) -> None:
    """Keep the developer's Azure OpenAI environment out of the tests."""
    for key in AZURE_ENV_VARS:
        monkeypatch.delenv(key, raising=False)


@fixture
def chat_client() -> MockChatClient:
    return MockChatClient()


@fixture
def agent(chat_client: MockChatClient) -> ChatAgent:
    return ChatAgent(chat_client=chat_client, instructions="You are a helpful assistant.", name="TestAgent")


@fixture
def embedding_generator() -> KeywordEmbeddingGenerator:
    return KeywordEmbeddingGenerator(["founded", "sla", "support", "price", "security"])


@fixture
def documents() -> list[tuple[str, str]]:
    return [
        ("Company", "Contoso was founded in Seoul in 2010 and builds cloud ERP software."),
        ("Product", "CloudERP Pro comes with a 99.9% SLA and an uptime SLA report."),
        ("Support", "Standard support runs on weekdays; premium support is 24/7."),
        ("Pricing", "The base price is 500,000 KRW per month for up to 10 users."),
        ("Security", "Contoso holds ISO 27001 and SOC 2 security certifications."),
    ]
