# Copyright (c) Microsoft. All rights reserved.

from abc import ABC, abstractmethod
from collections.abc import AsyncIterable, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ._middleware import AgentMiddlewareTypes
from ._types import ChatMessage, ChatOptions, ChatResponse, ChatResponseUpdate, prepare_messages

if TYPE_CHECKING:
    from ._agents import ChatAgent

__all__ = ["BaseChatClient", "ChatClientProtocol", "EmbeddingGeneratorProtocol"]


@runtime_checkable
class ChatClientProtocol(Protocol):
    """A protocol for a chat client that can generate responses.

    Note:
        Protocols use structural subtyping (duck typing). Classes don't need
        to explicitly inherit from this protocol to be considered compatible.

    Examples:
        .. code-block:: python

            from agent_samples import ChatClientProtocol, ChatMessage, ChatResponse, ChatResponseUpdate, Role


            class EchoChatClient:
                async def get_response(self, messages, *, options=None, **kwargs):
                    return ChatResponse(messages=[ChatMessage(role=Role.ASSISTANT, text=messages[-1].text)])

                async def get_streaming_response(self, messages, *, options=None, **kwargs):
                    yield ChatResponseUpdate(role=Role.ASSISTANT, text=messages[-1].text)


            assert isinstance(EchoChatClient(), ChatClientProtocol)
    """

    async def get_response(
        self,
        messages: str | ChatMessage | Sequence[str | ChatMessage],
        *,
        options: ChatOptions | None = None,
        **kwargs: Any,
    ) -> ChatResponse:
        """Send input and return the response.

        Args:
            messages: The sequence of input messages to send.
            options: Chat options as a TypedDict.
            **kwargs: Additional chat options.

        Returns:
            The response messages generated by the client.

        Raises:
            ValueError: If the input message sequence is ``None``.
        """
        ...

    def get_streaming_response(
        self,
        messages: str | ChatMessage | Sequence[str | ChatMessage],
        *,
        options: ChatOptions | None = None,
        **kwargs: Any,
    ) -> AsyncIterable[ChatResponseUpdate]:
        """Send input and stream the response.

        Args:
            messages: The sequence of input messages to send.
            options: Chat options as a TypedDict.
            **kwargs: Additional chat options.

        Returns:
            An async iterable of chat response updates representing the content of the response.
        """
        ...


@runtime_checkable
class EmbeddingGeneratorProtocol(Protocol):
    """Turns texts into embedding vectors, one vector per text in input order."""

    async def generate(self, texts: Sequence[str], **kwargs: Any) -> list[list[float]]: ...


class BaseChatClient(ABC):
    """Base class for chat clients.

    Subclasses implement ``_inner_get_response`` and ``_inner_get_streaming_response``;
    the public methods normalize the input messages first.
    """

    @abstractmethod
    async def _inner_get_response(
        self,
        *,
        messages: list[ChatMessage],
        options: ChatOptions,
        **kwargs: Any,
    ) -> ChatResponse:
        """Send a chat request to the AI service.

        Keyword Args:
            messages: The prepared chat messages to send.
            options: The options for the request.
            kwargs: Any additional keyword arguments.

        Returns:
            The chat response contents representing the response(s).
        """

    @abstractmethod
    def _inner_get_streaming_response(
        self,
        *,
        messages: list[ChatMessage],
        options: ChatOptions,
        **kwargs: Any,
    ) -> AsyncIterable[ChatResponseUpdate]:
        """Send a streaming chat request to the AI service.

        Keyword Args:
            messages: The prepared chat messages to send.
            options: The options for the request.
            kwargs: Any additional keyword arguments.

        Returns:
            An async iterable of ChatResponseUpdate.
        """

    async def get_response(
        self,
        messages: str | ChatMessage | Sequence[str | ChatMessage],
        *,
        options: ChatOptions | None = None,
        **kwargs: Any,
    ) -> ChatResponse:
        """Get a response from a chat client.

        Args:
            messages: The message or messages to send to the model.
            options: Chat options as a TypedDict.
            **kwargs: Other keyword arguments.

        Returns:
            A chat response from the model.
        """
        return await self._inner_get_response(
            messages=prepare_messages(messages), options=dict(options or {}), **kwargs  # type: ignore[arg-type]
        )

    async def get_streaming_response(
        self,
        messages: str | ChatMessage | Sequence[str | ChatMessage],
        *,
        options: ChatOptions | None = None,
        **kwargs: Any,
    ) -> AsyncIterable[ChatResponseUpdate]:
        """Get a streaming response from a chat client.

        Args:
            messages: The message or messages to send to the model.
            options: Chat options as a TypedDict.
            **kwargs: Other keyword arguments.

        Yields:
            ChatResponseUpdate: A stream representing the response(s) from the LLM.
        """
        stream = self._inner_get_streaming_response(
            messages=prepare_messages(messages), options=dict(options or {}), **kwargs  # type: ignore[arg-type]
        )
        try:
            async for update in stream:
                yield update
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    def service_url(self) -> str:
        """Get the URL of the service, or 'Unknown' if the client does not expose one."""
        return "Unknown"

    def as_agent(
        self,
        *,
        name: str | None = None,
        instructions: str | None = None,
        default_options: ChatOptions | None = None,
        middleware: Sequence[AgentMiddlewareTypes] | None = None,
    ) -> "ChatAgent":
        """Create a ChatAgent with this client.

        Keyword Args:
            name: The name of the agent.
            instructions: Optional instructions for the agent.
                These will be put into the messages sent to the chat client service as a system message.
            default_options: Chat options applied to every run of the agent.
            middleware: List of middleware to intercept agent invocations.

        Returns:
            A ChatAgent instance configured with this chat client.

        Examples:
            .. code-block:: python

                from agent_samples.azure import AzureOpenAIChatClient

                agent = AzureOpenAIChatClient().as_agent(
                    name="assistant",
                    instructions="You are a helpful assistant.",
                )
                response = await agent.run("Hello!")
        """
        from ._agents import ChatAgent

        return ChatAgent(
            chat_client=self,
            name=name,
            instructions=instructions,
            default_options=default_options,
            middleware=middleware,
        )
