# Copyright (c) Microsoft. All rights reserved.

from abc import ABC, abstractmethod
from collections.abc import AsyncIterable, Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any, Generic, TypeAlias, TypeVar

from ._types import AgentResponse, AgentResponseUpdate, ChatMessage, ChatOptions
from .exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from ._agents import ChatAgent
    from ._threads import AgentThread

__all__ = [
    "AgentMiddleware",
    "AgentMiddlewarePipeline",
    "AgentMiddlewareTypes",
    "AgentRunContext",
    "MiddlewareWrapper",
    "compose",
]

TContext = TypeVar("TContext")


class AgentRunContext:
    """Context object for agent middleware invocations.

    This context is passed through the agent middleware pipeline and contains all information
    about the agent invocation.

    Attributes:
        agent: The agent being invoked.
        messages: The input messages of this invocation. Middleware may replace them.
        options: The chat options of this invocation.
        thread: The agent thread for this invocation, if any.
        is_streaming: Whether this is a streaming invocation.
        metadata: Metadata dictionary for sharing data between agent middleware.
        result: Agent execution result. Can be observed after calling ``next()``
                to see the actual execution result or can be set to override the execution result.
                For non-streaming: should be AgentResponse.
                For streaming: should be AsyncIterable[AgentResponseUpdate].
        kwargs: Additional keyword arguments passed to the agent run method.

    Examples:
        .. code-block:: python

            from agent_samples import AgentMiddleware, AgentRunContext


            class LoggingMiddleware(AgentMiddleware):
                async def process(self, context: AgentRunContext, next):
                    print(f"Agent: {context.agent.name}")
                    print(f"Messages: {len(context.messages)}")
                    print(f"Streaming: {context.is_streaming}")

                    # Continue execution
                    await next(context)

                    # Access result after execution
                    print(f"Result: {context.result}")
    """

    def __init__(
        self,
        agent: "ChatAgent",
        messages: list[ChatMessage],
        options: ChatOptions | None = None,
        thread: "AgentThread | None" = None,
        is_streaming: bool = False,
        metadata: dict[str, Any] | None = None,
        result: AgentResponse | AsyncIterable[AgentResponseUpdate] | None = None,
        kwargs: dict[str, Any] | None = None,
    ) -> None:
        self.agent = agent
        self.messages = messages
        self.options: ChatOptions = options if options is not None else {}
        self.thread = thread
        self.is_streaming = is_streaming
        self.metadata = metadata if metadata is not None else {}
        self.result = result
        self.kwargs = kwargs if kwargs is not None else {}


class AgentMiddleware(ABC):
    """Abstract base class for agent middleware that can intercept agent invocations.

    Agent middleware runs its own code before and after the rest of the pipeline. It can
    inspect or replace the input messages, short-circuit the call by setting
    ``context.result`` without calling ``next``, or rewrite ``context.result`` after
    ``next`` returns.

    Middleware registered as ``[A, B, C]`` nests as ``A(B(C(agent)))``: ``A`` runs its
    pre-logic first and its post-logic last.

    Examples:
        .. code-block:: python

            from agent_samples import AgentMiddleware, AgentRunContext, ChatAgent


            class UpperCaseMiddleware(AgentMiddleware):
                async def process(self, context: AgentRunContext, next):
                    await next(context)
                    if isinstance(context.result, AgentResponse):
                        context.result.messages = [m.with_text(m.text.upper()) for m in context.result.messages]


            agent = ChatAgent(chat_client=client, name="assistant", middleware=[UpperCaseMiddleware()])
    """

    @abstractmethod
    async def process(
        self,
        context: AgentRunContext,
        next: Callable[[AgentRunContext], Awaitable[None]],
    ) -> None:
        """Process an agent invocation.

        Args:
            context: Agent invocation context containing agent, messages, and metadata.
                    Use context.is_streaming to determine if this is a streaming call.
            next: Function to call the next middleware or final agent execution.
                  Does not return anything - all data flows through the context.

        Note:
            Middleware should not return anything. Set context.result to override execution,
            or observe context.result after calling next() for actual results.
        """
        ...


AgentMiddlewareCallable = Callable[[AgentRunContext, Callable[[AgentRunContext], Awaitable[None]]], Awaitable[None]]

AgentMiddlewareTypes: TypeAlias = AgentMiddleware | AgentMiddlewareCallable


class MiddlewareWrapper(Generic[TContext]):
    """Generic wrapper to convert pure functions into middleware protocol objects.

    Type Parameters:
        TContext: The type of context object this middleware operates on.
    """

    def __init__(self, func: Callable[[TContext, Callable[[TContext], Awaitable[None]]], Awaitable[None]]) -> None:
        self.func = func

    async def process(self, context: TContext, next: Callable[[TContext], Awaitable[None]]) -> None:
        await self.func(context, next)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({getattr(self.func, '__name__', self.func)!r})"


def compose(
    middleware: Sequence[AgentMiddleware],
    final_handler: Callable[[AgentRunContext], Awaitable[None]],
) -> Callable[[AgentRunContext], Awaitable[None]]:
    """Fold middleware around a final handler.

    The innermost layer is built first, starting from the last registered middleware,
    and each earlier one wraps the result. The returned handler runs
    ``middleware[0]`` first.

    Args:
        middleware: The middleware in registration order.
        final_handler: The handler that performs the actual call and sets ``context.result``.

    Returns:
        The outermost handler.
    """
    handler = final_handler
    for layer in reversed(middleware):
        handler = _bind(layer, handler)
    return handler


def _bind(
    layer: AgentMiddleware,
    next_handler: Callable[[AgentRunContext], Awaitable[None]],
) -> Callable[[AgentRunContext], Awaitable[None]]:
    async def current_handler(context: AgentRunContext) -> None:
        await layer.process(context, next_handler)

    return current_handler


class AgentMiddlewarePipeline:
    """Executes agent middleware in a chain.

    Manages the execution of multiple agent middleware in sequence, allowing each middleware
    to process the agent invocation and pass control to the next middleware in the chain.
    """

    def __init__(self, middleware: Sequence[AgentMiddlewareTypes] | None = None):
        """Initialize the agent middleware pipeline.

        Args:
            middleware: The list of agent middleware to include in the pipeline.

        Raises:
            InvalidArgumentError: If an item is neither an AgentMiddleware nor a callable.
        """
        self._middleware: list[AgentMiddleware] = []
        for item in middleware or []:
            self._register_middleware(item)

    def _register_middleware(self, middleware: AgentMiddlewareTypes) -> None:
        if isinstance(middleware, AgentMiddleware):
            self._middleware.append(middleware)
        elif callable(middleware):
            self._middleware.append(MiddlewareWrapper(middleware))  # type: ignore[arg-type]
        else:
            raise InvalidArgumentError(f"Unsupported middleware type: {type(middleware).__name__}.")

    @property
    def has_middlewares(self) -> bool:
        return bool(self._middleware)

    async def execute(
        self,
        context: AgentRunContext,
        final_handler: Callable[[AgentRunContext], Awaitable[AgentResponse]],
    ) -> AgentResponse:
        """Execute the agent middleware pipeline for non-streaming.

        Args:
            context: The agent invocation context.
            final_handler: The final handler that performs the actual agent execution.

        Returns:
            The agent response after processing through all middleware, or an empty
            response when no layer produced one.
        """
        context.is_streaming = False

        async def agent_final_handler(c: AgentRunContext) -> None:
            c.result = await final_handler(c)

        await compose(self._middleware, agent_final_handler)(context)

        if isinstance(context.result, AgentResponse):
            return context.result
        return AgentResponse()

    async def execute_stream(
        self,
        context: AgentRunContext,
        final_handler: Callable[[AgentRunContext], AsyncIterable[AgentResponseUpdate]],
    ) -> AsyncIterable[AgentResponseUpdate]:
        """Execute the agent middleware pipeline for streaming.

        The final handler returns the update stream without consuming it. Middleware that
        wants to observe or rewrite updates replaces ``context.result`` with a wrapping
        async generator after ``next`` returns.

        Args:
            context: The agent invocation context.
            final_handler: The final handler that returns the agent update stream.

        Returns:
            The update stream after processing through all middleware.
        """
        context.is_streaming = True

        async def agent_final_handler(c: AgentRunContext) -> None:
            c.result = final_handler(c)

        await compose(self._middleware, agent_final_handler)(context)

        if context.result is None:
            return _stream_from_response(AgentResponse())
        if isinstance(context.result, AgentResponse):
            # A short-circuiting middleware may answer a streaming call with a full response.
            return _stream_from_response(context.result)
        return context.result


async def _stream_from_response(response: AgentResponse) -> AsyncIterable[AgentResponseUpdate]:
    for message in response.messages:
        yield AgentResponseUpdate(
            text=message.text,
            role=message.role,
            author_name=message.author_name,
            response_id=response.response_id,
        )
