# Copyright (c) Microsoft. All rights reserved.

from collections.abc import Iterable, Sequence
from typing import Final

from ._clients import EmbeddingGeneratorProtocol
from ._logging import get_logger
from ._vector_index import InMemoryVectorIndex
from .exceptions import InvalidArgumentError

__all__ = ["DEFAULT_TOP_K", "build_index", "build_prompt", "format_chunk", "retrieve"]

logger = get_logger("agent_samples.rag")

DEFAULT_TOP_K: Final[int] = 3
REFERENCE_HEADER: Final[str] = "=== Reference documents ==="
QUESTION_HEADER: Final[str] = "=== Question ==="


async def _embed_one(embedding_generator: EmbeddingGeneratorProtocol, text: str) -> list[float]:
    vectors = await embedding_generator.generate([text])
    if len(vectors) != 1:
        raise InvalidArgumentError(f"Expected one embedding from the generator, got {len(vectors)}.")
    return vectors[0]


async def build_index(
    documents: Iterable[tuple[str, str]],
    embedding_generator: EmbeddingGeneratorProtocol,
    index: InMemoryVectorIndex | None = None,
) -> InMemoryVectorIndex:
    """Embed ``(title, text)`` documents and add them to an index in document order.

    Args:
        documents: The documents to index.
        embedding_generator: Produces the embedding of each document text.
        index: An index to add to. A new one is created when omitted.

    Returns:
        The index holding the documents.
    """
    index = index if index is not None else InMemoryVectorIndex()
    for title, text in documents:
        index.add(title, text, await _embed_one(embedding_generator, text))
        logger.info("Indexed [%s]", title)
    return index


def format_chunk(title: str, text: str) -> str:
    return f"[{title}] {text}"


async def retrieve(
    index: InMemoryVectorIndex,
    embedding_generator: EmbeddingGeneratorProtocol,
    query: str,
    top_k: int = DEFAULT_TOP_K,
) -> list[str]:
    """Embed the query and return the best matching chunks formatted as ``"[title] text"``.

    Raises:
        InvalidArgumentError: If ``top_k`` is not positive.
        DimensionMismatchError: If the query embedding does not match the index.
    """
    query_embedding = await _embed_one(embedding_generator, query)
    return [format_chunk(chunk.title, chunk.text) for chunk in index.top_k(query_embedding, top_k)]


def build_prompt(question: str, context_chunks: Sequence[str]) -> str:
    """Combine retrieved context and a question into one user prompt.

    Examples:
        .. code-block:: python

            build_prompt("When was Contoso founded?", ["[About] Contoso was founded in 2010."])
            # === Reference documents ===
            # [About] Contoso was founded in 2010.
            #
            # === Question ===
            # When was Contoso founded?
    """
    context_block = "\n\n".join(context_chunks)
    return f"{REFERENCE_HEADER}\n{context_block}\n\n{QUESTION_HEADER}\n{question}"
