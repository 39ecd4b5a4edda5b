# Copyright (c) Microsoft. All rights reserved.

from collections.abc import Collection, Iterator, Sequence
from typing import Protocol

from ._types import ChatMessage

__all__ = ["AgentThread", "ChatMessageStore", "ListChatMessageStore"]


class ChatMessageStore(Protocol):
    """Stores and returns the chat messages of one thread.

    Messages are returned in ascending chronological order, with the oldest message first.
    A new store should be created for each thread.
    """

    async def list_messages(self) -> list[ChatMessage]:
        """Gets all the messages that should be used for the next agent invocation."""
        ...

    async def add_messages(self, messages: Collection[ChatMessage]) -> None:
        """Adds messages to the store."""
        ...


class ListChatMessageStore:
    """In-memory message store backed by a list."""

    def __init__(self, messages: Collection[ChatMessage] | None = None) -> None:
        self._messages: list[ChatMessage] = []
        if messages:
            self._messages.extend(messages)

    async def add_messages(self, messages: Collection[ChatMessage]) -> None:
        self._messages.extend(messages)

    async def list_messages(self) -> list[ChatMessage]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(self._messages)


class AgentThread:
    """An explicit, caller-owned conversation log.

    The caller passes the thread into each agent call. The agent reads the prior
    messages from it and, when the call succeeds, appends the input messages and the
    response messages. Nothing is persisted beyond the lifetime of the object.

    Examples:
        .. code-block:: python

            thread = agent.get_new_thread()
            await agent.run("My name is Kim.", thread=thread)
            response = await agent.run("What is my name?", thread=thread)
    """

    def __init__(self, message_store: ChatMessageStore | None = None) -> None:
        self.message_store: ChatMessageStore = message_store if message_store is not None else ListChatMessageStore()

    async def list_messages(self) -> list[ChatMessage]:
        return await self.message_store.list_messages()

    async def on_new_messages(self, new_messages: ChatMessage | Sequence[ChatMessage]) -> None:
        """Invoked when new messages have been contributed to the conversation."""
        if isinstance(new_messages, ChatMessage):
            new_messages = [new_messages]
        await self.message_store.add_messages(list(new_messages))
