# Copyright (c) Microsoft. All rights reserved.

import importlib.metadata
from typing import Final

try:
    _version = importlib.metadata.version("agent-samples")
except importlib.metadata.PackageNotFoundError:
    _version = "0.0.0"  # Fallback for development mode
__version__: Final[str] = _version

from ._agents import AgentBuilder as AgentBuilder
from ._agents import ChatAgent as ChatAgent
from ._clients import BaseChatClient as BaseChatClient
from ._clients import ChatClientProtocol as ChatClientProtocol
from ._clients import EmbeddingGeneratorProtocol as EmbeddingGeneratorProtocol
from ._logging import get_logger as get_logger
from ._logging import setup_logging as setup_logging
from ._middleware import AgentMiddleware as AgentMiddleware
from ._middleware import AgentMiddlewarePipeline as AgentMiddlewarePipeline
from ._middleware import AgentMiddlewareTypes as AgentMiddlewareTypes
from ._middleware import AgentRunContext as AgentRunContext
from ._middleware import compose as compose
from ._rag import build_index as build_index
from ._rag import build_prompt as build_prompt
from ._rag import retrieve as retrieve
from ._settings import AzureOpenAISettings as AzureOpenAISettings
from ._settings import SampleSettings as SampleSettings
from ._threads import AgentThread as AgentThread
from ._threads import ChatMessageStore as ChatMessageStore
from ._threads import ListChatMessageStore as ListChatMessageStore
from ._types import AgentResponse as AgentResponse
from ._types import AgentResponseUpdate as AgentResponseUpdate
from ._types import ChatMessage as ChatMessage
from ._types import ChatOptions as ChatOptions
from ._types import ChatResponse as ChatResponse
from ._types import ChatResponseUpdate as ChatResponseUpdate
from ._types import Role as Role
from ._types import UsageDetails as UsageDetails
from ._vector_index import IndexedChunk as IndexedChunk
from ._vector_index import InMemoryVectorIndex as InMemoryVectorIndex
from ._vector_index import ScoredChunk as ScoredChunk
from ._vector_index import cosine_similarity as cosine_similarity
