# Copyright (c) Microsoft. All rights reserved.

"""In-memory embedding index with cosine-similarity retrieval.

The index is a linear scan over every stored chunk. It is meant for tutorial
sized corpora where a few hundred chunks are searched per question.
"""

import math
from collections.abc import Iterator, Sequence
from typing import Final

from pydantic import BaseModel, ConfigDict, field_validator

from .exceptions import DimensionMismatchError, InvalidArgumentError

__all__ = ["InMemoryVectorIndex", "IndexedChunk", "ScoredChunk", "cosine_similarity"]

_EPSILON: Final[float] = 1e-10


class IndexedChunk(BaseModel):
    """A text passage stored in the index together with its embedding."""

    model_config = ConfigDict(frozen=True)

    title: str
    text: str
    embedding: tuple[float, ...]

    @field_validator("title", "text")
    @classmethod
    def _not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("embedding")
    @classmethod
    def _has_components(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        if not value:
            raise ValueError("must have at least one component")
        return value


class ScoredChunk(BaseModel):
    """A chunk returned by a search, with its cosine similarity to the query."""

    model_config = ConfigDict(frozen=True)

    chunk: IndexedChunk
    score: float


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors of equal length.

    A small epsilon in the denominator keeps zero vectors from dividing by zero;
    a zero vector scores 0 against everything.
    """
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b, strict=True):
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b) + _EPSILON)


class InMemoryVectorIndex:
    """Stores text chunks with their embeddings and answers top-k queries.

    Every chunk and every query in one index must share the same dimensionality,
    fixed by the first chunk added. Results are ordered by descending cosine
    similarity; chunks with equal scores keep their insertion order.

    The index is built first and queried afterwards. It is not safe to add chunks
    while another task is querying.

    Examples:
        .. code-block:: python

            index = InMemoryVectorIndex()
            index.add("Refunds", "Refunds are accepted within 30 days.", [0.1, 0.9])
            index.add("Shipping", "Orders ship within 2 business days.", [0.8, 0.2])

            for chunk in index.top_k([0.2, 0.8], k=1):
                print(chunk.title)
    """

    def __init__(self) -> None:
        self._chunks: list[IndexedChunk] = []
        self._dimension: int | None = None

    @property
    def dimension(self) -> int | None:
        """The embedding dimensionality, or None while the index is empty."""
        return self._dimension

    def add(self, title: str, text: str, embedding: Sequence[float]) -> IndexedChunk:
        """Append a chunk to the index.

        Args:
            title: A non-empty label, for example a document title.
            text: The non-empty passage.
            embedding: The embedding vector of ``text``.

        Returns:
            The stored chunk.

        Raises:
            InvalidArgumentError: If the title, text or embedding is empty.
            DimensionMismatchError: If the embedding length differs from the index dimensionality.
        """
        if not title:
            raise InvalidArgumentError("Chunk title must not be empty.")
        if not text:
            raise InvalidArgumentError("Chunk text must not be empty.")
        if len(embedding) == 0:
            raise InvalidArgumentError("Chunk embedding must not be empty.")
        if self._dimension is not None and len(embedding) != self._dimension:
            raise DimensionMismatchError(self._dimension, len(embedding))

        chunk = IndexedChunk(title=title, text=text, embedding=tuple(float(x) for x in embedding))
        self._chunks.append(chunk)
        if self._dimension is None:
            self._dimension = len(chunk.embedding)
        return chunk

    def search(self, query_embedding: Sequence[float], k: int) -> list[ScoredChunk]:
        """Return up to ``k`` chunks with their similarity scores, best first.

        Raises:
            InvalidArgumentError: If ``k`` is not positive.
            DimensionMismatchError: If the query length differs from the index dimensionality.
        """
        if k <= 0:
            raise InvalidArgumentError(f"k must be a positive integer, got {k}.")
        if not self._chunks:
            return []
        if len(query_embedding) != self._dimension:
            raise DimensionMismatchError(self._dimension, len(query_embedding))  # type: ignore[arg-type]

        scored = [
            ScoredChunk(chunk=chunk, score=cosine_similarity(chunk.embedding, query_embedding))
            for chunk in self._chunks
        ]
        # sorted() is stable, so ties keep insertion order.
        scored = sorted(scored, key=lambda item: item.score, reverse=True)
        return scored[:k]

    def top_k(self, query_embedding: Sequence[float], k: int) -> list[IndexedChunk]:
        """Return up to ``k`` chunks ordered by descending similarity to the query.

        Raises:
            InvalidArgumentError: If ``k`` is not positive.
            DimensionMismatchError: If the query length differs from the index dimensionality.
        """
        return [item.chunk for item in self.search(query_embedding, k)]

    def __len__(self) -> int:
        return len(self._chunks)

    def __iter__(self) -> Iterator[IndexedChunk]:
        return iter(self._chunks)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(chunks={len(self._chunks)}, dimension={self._dimension})"
