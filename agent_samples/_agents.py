# Copyright (c) Microsoft. All rights reserved.

from collections.abc import AsyncIterable, Sequence
from typing import Any
from uuid import uuid4

from ._clients import ChatClientProtocol
from ._logging import get_logger
from ._middleware import AgentMiddlewarePipeline, AgentMiddlewareTypes, AgentRunContext
from ._threads import AgentThread
from ._types import (
    AgentResponse,
    AgentResponseUpdate,
    ChatMessage,
    ChatOptions,
    prepare_messages,
)

__all__ = ["AgentBuilder", "ChatAgent"]

logger = get_logger()


class ChatAgent:
    """An agent that answers through a chat client.

    The agent bundles a chat client with instructions, a name, default chat options and
    middleware. It keeps no conversation state of its own: pass an ``AgentThread`` to
    carry history across calls.

    Attributes:
        id: The unique identifier of the agent.
        name: The name of the agent.
        instructions: Instructions sent to the model as a leading system message.
        default_options: Chat options applied to every run, overridden per call by ``options``.

    Examples:
        .. code-block:: python

            from agent_samples import ChatAgent
            from agent_samples.azure import AzureOpenAIChatClient

            agent = ChatAgent(
                chat_client=AzureOpenAIChatClient(),
                instructions="You are a helpful assistant.",
                name="HelloAgent",
            )
            response = await agent.run("What is the capital of France?")
            print(response.text)

            async for update in agent.run_stream("Tell me a short story."):
                print(update.text, end="", flush=True)
    """

    def __init__(
        self,
        chat_client: ChatClientProtocol,
        instructions: str | None = None,
        name: str | None = None,
        middleware: Sequence[AgentMiddlewareTypes] | None = None,
        *,
        id: str | None = None,
        default_options: ChatOptions | None = None,
    ) -> None:
        """Initialize a ChatAgent.

        Args:
            chat_client: The chat client used to reach the model.
            instructions: Optional instructions for the agent.
            name: The name of the agent.
            middleware: Agent middleware in registration order; the first one is outermost.

        Keyword Args:
            id: The unique identifier of the agent. Generated when not provided.
            default_options: Chat options applied to every run.
        """
        self.chat_client = chat_client
        self.instructions = instructions
        self.name = name
        self.id = id or str(uuid4())
        self.default_options: ChatOptions = dict(default_options or {})  # type: ignore[assignment]
        self.middleware: list[AgentMiddlewareTypes] = list(middleware or [])
        self._pipeline = AgentMiddlewarePipeline(self.middleware)

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def get_new_thread(self) -> AgentThread:
        """Create a new, empty conversation thread."""
        return AgentThread()

    def as_builder(self) -> "AgentBuilder":
        """Start a builder that layers more middleware onto a copy of this agent."""
        return AgentBuilder(self)

    async def run(
        self,
        messages: str | ChatMessage | Sequence[str | ChatMessage],
        *,
        thread: AgentThread | None = None,
        options: ChatOptions | None = None,
        **kwargs: Any,
    ) -> AgentResponse:
        """Run the agent and return its complete response.

        The input passes through the middleware pipeline before it reaches the chat client.
        When a thread is given, its messages are sent ahead of the input, and the input and
        response messages are appended to it once the call succeeds.

        Args:
            messages: A string, a message, or a sequence of either.

        Keyword Args:
            thread: The conversation thread.
            options: Chat options for this call.
            kwargs: Additional keyword arguments passed to the chat client.

        Returns:
            The agent response.
        """
        context = AgentRunContext(
            agent=self,
            messages=prepare_messages(messages),
            options=self._merge_options(options),
            thread=thread,
            kwargs=kwargs,
        )
        response = await self._pipeline.execute(context, self._run_core)

        if thread is not None:
            await thread.on_new_messages([*context.messages, *response.messages])
        return response

    async def run_stream(
        self,
        messages: str | ChatMessage | Sequence[str | ChatMessage],
        *,
        thread: AgentThread | None = None,
        options: ChatOptions | None = None,
        **kwargs: Any,
    ) -> AsyncIterable[AgentResponseUpdate]:
        """Run the agent and stream its response.

        When a thread is given, the input and the concatenated response text are appended
        to it after the stream has been fully consumed. A stream that is closed early leaves
        the thread unchanged.

        Args:
            messages: A string, a message, or a sequence of either.

        Keyword Args:
            thread: The conversation thread.
            options: Chat options for this call.
            kwargs: Additional keyword arguments passed to the chat client.

        Yields:
            AgentResponseUpdate: The response increments, in order.
        """
        context = AgentRunContext(
            agent=self,
            messages=prepare_messages(messages),
            options=self._merge_options(options),
            thread=thread,
            kwargs=kwargs,
        )
        stream = await self._pipeline.execute_stream(context, self._run_stream_core)

        updates: list[AgentResponseUpdate] = []
        try:
            async for update in stream:
                updates.append(update)
                yield update
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        if thread is not None:
            response = AgentResponse.from_updates(updates, agent_name=self.name)
            await thread.on_new_messages([*context.messages, *response.messages])

    async def _run_core(self, context: AgentRunContext) -> AgentResponse:
        chat_messages = await self._prepare_chat_messages(context)
        logger.debug("Agent %s sending %d message(s).", self.display_name, len(chat_messages))
        response = await self.chat_client.get_response(chat_messages, options=context.options, **context.kwargs)
        return AgentResponse.from_chat_response(response, agent_name=self.name)

    async def _run_stream_core(self, context: AgentRunContext) -> AsyncIterable[AgentResponseUpdate]:
        chat_messages = await self._prepare_chat_messages(context)
        logger.debug("Agent %s streaming %d message(s).", self.display_name, len(chat_messages))
        stream = self.chat_client.get_streaming_response(chat_messages, options=context.options, **context.kwargs)
        try:
            async for update in stream:
                yield AgentResponseUpdate(
                    text=update.text,
                    role=update.role,
                    response_id=update.response_id,
                    model_id=update.model_id,
                    finish_reason=update.finish_reason,
                    raw_representation=update.raw_representation,
                    author_name=self.name,
                )
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _prepare_chat_messages(self, context: AgentRunContext) -> list[ChatMessage]:
        history = await context.thread.list_messages() if context.thread is not None else []
        return [*history, *context.messages]

    def _merge_options(self, options: ChatOptions | None) -> ChatOptions:
        merged: dict[str, Any] = {**self.default_options, **(options or {})}
        if self.instructions and "instructions" not in merged:
            merged["instructions"] = self.instructions
        return merged  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, middleware={len(self.middleware)})"


class AgentBuilder:
    """Layers middleware onto an agent.

    Each ``use`` call adds a layer closer to the chat client than the ones before it, so
    ``agent.as_builder().use(a).use(b).build()`` runs ``a`` first and ``b`` second.

    Examples:
        .. code-block:: python

            agent = base_agent.as_builder().use(LoggingMiddleware()).use(PiiMiddleware()).build()
    """

    def __init__(self, agent: ChatAgent) -> None:
        self._agent = agent
        self._middleware: list[AgentMiddlewareTypes] = []

    def use(self, middleware: AgentMiddlewareTypes) -> "AgentBuilder":
        self._middleware.append(middleware)
        return self

    def build(self) -> ChatAgent:
        """Return a new agent with the existing middleware followed by the added middleware."""
        agent = self._agent
        return ChatAgent(
            chat_client=agent.chat_client,
            instructions=agent.instructions,
            name=agent.name,
            middleware=[*agent.middleware, *self._middleware],
            id=agent.id,
            default_options=agent.default_options,
        )
