# Copyright (c) Microsoft. All rights reserved.

"""Built-in agent middleware: request logging, a keyword guardrail and PII redaction.

Examples:
    .. code-block:: python

        from agent_samples import ChatAgent
        from agent_samples.middleware import GuardrailMiddleware, LoggingMiddleware, PiiMiddleware

        agent = (
            ChatAgent(chat_client=client, name="assistant")
            .as_builder()
            .use(LoggingMiddleware())
            .use(GuardrailMiddleware())
            .use(PiiMiddleware())
            .build()
        )
"""

import re
import time
from abc import abstractmethod
from collections.abc import AsyncIterable, Awaitable, Callable, Iterable, Sequence
from typing import Final

from ._middleware import AgentMiddleware, AgentRunContext
from ._types import AgentResponse, AgentResponseUpdate, ChatMessage
from .exceptions import InvalidArgumentError
from .observability import record

__all__ = [
    "DEFAULT_BLOCKED_SENTINEL",
    "DEFAULT_FORBIDDEN_KEYWORDS",
    "DEFAULT_PII_SENTINEL",
    "GuardrailMiddleware",
    "LoggingMiddleware",
    "PiiMiddleware",
    "PiiPatternSet",
    "TextFilterMiddleware",
]

DEFAULT_BLOCKED_SENTINEL: Final[str] = "[Blocked: disallowed content]"
DEFAULT_PII_SENTINEL: Final[str] = "[PII removed]"
DEFAULT_FORBIDDEN_KEYWORDS: Final[tuple[str, ...]] = ("해로운", "harmful", "illegal", "violence", "폭력")

EXCERPT_LENGTH: Final[int] = 30

# 010-1234-5678, 02-123-4567
PHONE_NUMBER_PATTERN: Final[str] = r"\b\d{2,3}-\d{3,4}-\d{4}\b"
EMAIL_ADDRESS_PATTERN: Final[str] = r"\b[\w.\-]+@[\w.\-]+\.\w{2,}\b"
# Two to four Hangul syllables followed by an honorific or a subject/topic particle.
KOREAN_NAME_PATTERN: Final[str] = r"\b[가-힣]{2,4}(?=\s*(?:씨|님|이|가|은|는))"


async def _aclose(stream: AsyncIterable[AgentResponseUpdate]) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()


class LoggingMiddleware(AgentMiddleware):
    """Measures and records each agent call without altering it.

    Before delegating it records the agent name and an excerpt of every input message
    (the first 30 characters, joined by ``" | "``). After the call it records the
    elapsed time and the response length in characters. A call that fails or is
    cancelled records no completion.

    For streaming calls the completion is recorded once the stream has been fully
    consumed.
    """

    def __init__(self, excerpt_length: int = EXCERPT_LENGTH) -> None:
        if excerpt_length <= 0:
            raise InvalidArgumentError("excerpt_length must be a positive integer.")
        self.excerpt_length = excerpt_length

    def excerpt(self, messages: Sequence[ChatMessage]) -> str:
        return " | ".join(message.text[: self.excerpt_length] for message in messages)

    async def process(
        self,
        context: AgentRunContext,
        next: Callable[[AgentRunContext], Awaitable[None]],
    ) -> None:
        agent_name = getattr(context.agent, "name", None) or ""
        record(
            "agent.request.started",
            {"agent": agent_name, "input": self.excerpt(context.messages), "streaming": context.is_streaming},
        )
        start = time.perf_counter()

        await next(context)

        if context.is_streaming and context.result is not None and not isinstance(context.result, AgentResponse):
            context.result = self._observe_stream(context.result, agent_name, start)
            return

        output = context.result.text if isinstance(context.result, AgentResponse) else ""
        self._record_completion(agent_name, start, len(output))

    async def _observe_stream(
        self,
        stream: AsyncIterable[AgentResponseUpdate],
        agent_name: str,
        start: float,
    ) -> AsyncIterable[AgentResponseUpdate]:
        output_length = 0
        try:
            async for update in stream:
                output_length += len(update.text)
                yield update
        finally:
            await _aclose(stream)
        self._record_completion(agent_name, start, output_length)

    @staticmethod
    def _record_completion(agent_name: str, start: float, output_length: int) -> None:
        duration_ms = (time.perf_counter() - start) * 1000
        record(
            "agent.request.completed",
            {"agent": agent_name, "duration_ms": round(duration_ms, 2), "output_length": output_length},
        )


class TextFilterMiddleware(AgentMiddleware):
    """Base class for middleware that rewrites message text in both directions.

    Every input message is passed through :meth:`filter_text` before delegating, and
    every output message after. A streamed response is buffered until the inner
    stream completes and is then filtered as a whole and emitted as a single update,
    so a match split across increments is still caught.
    """

    event_name: str = "filter"

    @abstractmethod
    def filter_text(self, text: str) -> str:
        """Return the text to forward in place of ``text``."""
        ...

    def filter_messages(self, messages: Iterable[ChatMessage]) -> list[ChatMessage]:
        return [message.with_text(self.filter_text(message.text)) for message in messages]

    async def process(
        self,
        context: AgentRunContext,
        next: Callable[[AgentRunContext], Awaitable[None]],
    ) -> None:
        context.messages = self.filter_messages(context.messages)
        record(f"{self.event_name}.input_checked", {"messages": len(context.messages)})

        await next(context)

        if isinstance(context.result, AgentResponse):
            context.result.messages = self.filter_messages(context.result.messages)
            record(f"{self.event_name}.output_checked", {"messages": len(context.result.messages)})
        elif context.result is not None:
            context.result = self._filter_stream(context.result)

    async def _filter_stream(
        self, stream: AsyncIterable[AgentResponseUpdate]
    ) -> AsyncIterable[AgentResponseUpdate]:
        updates: list[AgentResponseUpdate] = []
        try:
            async for update in stream:
                updates.append(update)
        finally:
            await _aclose(stream)
        if updates:
            text = self.filter_text("".join(update.text for update in updates))
            yield updates[0].model_copy(update={"text": text, "finish_reason": updates[-1].finish_reason})
        record(f"{self.event_name}.output_checked", {"streaming": True, "updates": len(updates)})


class GuardrailMiddleware(TextFilterMiddleware):
    """Replaces any message that mentions a forbidden keyword.

    The check is a case-insensitive substring match. A matching message has its whole
    text replaced by the sentinel, in the input before delegating and in the output
    after.

    Args:
        forbidden_keywords: The keywords to block. Defaults to ``DEFAULT_FORBIDDEN_KEYWORDS``.
        sentinel: The replacement text.

    Raises:
        InvalidArgumentError: If the keyword list is empty or holds an empty keyword.
    """

    event_name = "guardrail"

    def __init__(
        self,
        forbidden_keywords: Iterable[str] = DEFAULT_FORBIDDEN_KEYWORDS,
        sentinel: str = DEFAULT_BLOCKED_SENTINEL,
    ) -> None:
        keywords = tuple(forbidden_keywords)
        if not keywords:
            raise InvalidArgumentError("At least one forbidden keyword is required.")
        if any(not keyword for keyword in keywords):
            raise InvalidArgumentError("Forbidden keywords must not be empty.")
        self.forbidden_keywords = keywords
        self.sentinel = sentinel
        self._folded_keywords = tuple(keyword.casefold() for keyword in keywords)

    def is_blocked(self, text: str) -> bool:
        folded = text.casefold()
        return any(keyword in folded for keyword in self._folded_keywords)

    def filter_text(self, text: str) -> str:
        return self.sentinel if self.is_blocked(text) else text


class PiiPatternSet:
    """An ordered set of compiled patterns that identify personal information.

    Patterns are applied in order; each match is replaced by the sentinel.

    Examples:
        .. code-block:: python

            patterns = PiiPatternSet.default().extend([r"\\b\\d{6}-\\d{7}\\b"])
            patterns.redact("Call 010-1234-5678", "[PII removed]")
    """

    def __init__(self, patterns: Iterable[str | re.Pattern[str]]) -> None:
        compiled = tuple(re.compile(pattern) if isinstance(pattern, str) else pattern for pattern in patterns)
        if not compiled:
            raise InvalidArgumentError("At least one PII pattern is required.")
        self.patterns: tuple[re.Pattern[str], ...] = compiled

    @classmethod
    def default(cls) -> "PiiPatternSet":
        """Phone numbers, e-mail addresses and Korean names followed by an honorific or particle."""
        return cls([PHONE_NUMBER_PATTERN, EMAIL_ADDRESS_PATTERN, KOREAN_NAME_PATTERN])

    def extend(self, patterns: Iterable[str | re.Pattern[str]]) -> "PiiPatternSet":
        """Return a new set with ``patterns`` applied after the existing ones."""
        return type(self)([*self.patterns, *patterns])

    def redact(self, text: str, sentinel: str) -> str:
        for pattern in self.patterns:
            text = pattern.sub(lambda _: sentinel, text)
        return text

    def __len__(self) -> int:
        return len(self.patterns)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({[pattern.pattern for pattern in self.patterns]!r})"


class PiiMiddleware(TextFilterMiddleware):
    """Redacts personal information from input and output messages.

    Args:
        patterns: The patterns to redact. Defaults to ``PiiPatternSet.default()``.
        sentinel: The replacement text.
    """

    event_name = "pii"

    def __init__(self, patterns: PiiPatternSet | None = None, sentinel: str = DEFAULT_PII_SENTINEL) -> None:
        self.patterns = patterns if patterns is not None else PiiPatternSet.default()
        self.sentinel = sentinel

    def filter_text(self, text: str) -> str:
        return self.patterns.redact(text, self.sentinel)
