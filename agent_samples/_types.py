# Copyright (c) Microsoft. All rights reserved.

from collections.abc import Iterable, Sequence
from enum import Enum
from typing import Any, TypedDict

from pydantic import BaseModel, Field

from .exceptions import InvalidArgumentError

__all__ = [
    "AgentResponse",
    "AgentResponseUpdate",
    "ChatMessage",
    "ChatOptions",
    "ChatResponse",
    "ChatResponseUpdate",
    "Role",
    "UsageDetails",
    "prepare_messages",
    "prepend_instructions_to_messages",
]


class Role(str, Enum):
    """Describes the intended purpose of a message within a chat interaction."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"

    def __str__(self) -> str:
        return self.value


class ChatMessage(BaseModel):
    """A single message in a chat conversation.

    Examples:
        .. code-block:: python

            from agent_samples import ChatMessage, Role

            message = ChatMessage(role=Role.USER, text="What is the capital of France?")
            reply = message.with_text("redacted")
    """

    role: Role = Role.USER
    text: str = ""
    author_name: str | None = None

    def with_text(self, text: str) -> "ChatMessage":
        """Return a copy of the message with its text replaced."""
        return self.model_copy(update={"text": text})


class UsageDetails(BaseModel):
    """Token usage reported by the service."""

    input_token_count: int | None = None
    output_token_count: int | None = None
    total_token_count: int | None = None


class ChatOptions(TypedDict, total=False):
    """Options for a chat request.

    Keys:
        model_id: The deployment (Azure) or model to use. Defaults to the client's deployment.
        instructions: Instructions sent as a leading system message.
        temperature: Sampling temperature.
        max_tokens: Maximum number of tokens to generate.
        top_p: Nucleus sampling probability mass.
        stop: Stop sequences.
    """

    model_id: str
    instructions: str
    temperature: float
    max_tokens: int
    top_p: float
    stop: str | list[str]


class ChatResponse(BaseModel):
    """The response to a chat request."""

    messages: list[ChatMessage] = Field(default_factory=list)
    response_id: str | None = None
    model_id: str | None = None
    finish_reason: str | None = None
    usage: UsageDetails | None = None
    raw_representation: Any | None = Field(default=None, exclude=True, repr=False)

    @property
    def text(self) -> str:
        """The concatenated text of all response messages."""
        return "".join(message.text for message in self.messages)

    def __str__(self) -> str:
        return self.text


class ChatResponseUpdate(BaseModel):
    """An incremental piece of a streamed chat response."""

    text: str = ""
    role: Role | None = None
    response_id: str | None = None
    model_id: str | None = None
    finish_reason: str | None = None
    raw_representation: Any | None = Field(default=None, exclude=True, repr=False)

    def with_text(self, text: str) -> "ChatResponseUpdate":
        """Return a copy of the update with its text replaced."""
        return self.model_copy(update={"text": text})

    def __str__(self) -> str:
        return self.text


class AgentResponse(ChatResponse):
    """The response of an agent run."""

    agent_name: str | None = None

    @classmethod
    def from_chat_response(cls, response: ChatResponse, agent_name: str | None = None) -> "AgentResponse":
        """Wrap a chat client response, stamping the agent name on assistant messages."""
        messages = [
            message.model_copy(update={"author_name": message.author_name or agent_name})
            if message.role == Role.ASSISTANT
            else message
            for message in response.messages
        ]
        return cls(
            messages=messages,
            response_id=response.response_id,
            model_id=response.model_id,
            finish_reason=response.finish_reason,
            usage=response.usage,
            raw_representation=response.raw_representation,
            agent_name=agent_name,
        )

    @classmethod
    def from_updates(cls, updates: Iterable[ChatResponseUpdate], agent_name: str | None = None) -> "AgentResponse":
        """Join streamed updates into a single assistant message."""
        updates = list(updates)
        if not updates:
            return cls(agent_name=agent_name)
        last = updates[-1]
        text = "".join(update.text for update in updates)
        return cls(
            messages=[ChatMessage(role=Role.ASSISTANT, text=text, author_name=agent_name)],
            response_id=next((u.response_id for u in updates if u.response_id), None),
            model_id=next((u.model_id for u in updates if u.model_id), None),
            finish_reason=last.finish_reason,
            agent_name=agent_name,
        )


class AgentResponseUpdate(ChatResponseUpdate):
    """An incremental piece of a streamed agent response."""

    author_name: str | None = None


def prepare_messages(messages: str | ChatMessage | Sequence[str | ChatMessage] | None) -> list[ChatMessage]:
    """Normalize the accepted input shapes to a fresh list of messages.

    Strings become user messages.

    Raises:
        InvalidArgumentError: If ``messages`` is None.
    """
    if messages is None:
        raise InvalidArgumentError("Messages are required.")
    if isinstance(messages, str):
        return [ChatMessage(role=Role.USER, text=messages)]
    if isinstance(messages, ChatMessage):
        return [messages]
    return [ChatMessage(role=Role.USER, text=m) if isinstance(m, str) else m for m in messages]


def prepend_instructions_to_messages(messages: Sequence[ChatMessage], instructions: str | None) -> list[ChatMessage]:
    """Return the messages with ``instructions`` as a leading system message."""
    if not instructions:
        return list(messages)
    return [ChatMessage(role=Role.SYSTEM, text=instructions), *messages]
