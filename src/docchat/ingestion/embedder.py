"""Embedding capability and its LangChain-backed default."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from langchain_huggingface import HuggingFaceEmbeddings

from docchat.config import settings
from docchat.errors import EmbeddingError

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)


class Embedder(ABC):
    """Turns texts into fixed-dimension vectors."""

    @abstractmethod
    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts*, returning one vector per input in the same order."""
        ...

    @abstractmethod
    async def embed_query(self, text: str) -> list[float]:
        """Embed a single search query."""
        ...


def get_embedding_function() -> HuggingFaceEmbeddings:
    """Return the configured sentence-transformer embedding function."""
    return HuggingFaceEmbeddings(model_name=settings.embedding_model)


class LangChainEmbedder(Embedder):
    """Adapter over any LangChain :class:`Embeddings` implementation.

    Parameters
    ----------
    embeddings:
        The LangChain embeddings object.  Defaults to
        :func:`get_embedding_function`.
    batch_size:
        Number of texts sent per embedding call.
    """

    def __init__(self, embeddings: Embeddings | None = None, *, batch_size: int = settings.embedding_batch_size) -> None:
        self._embeddings = embeddings if embeddings is not None else get_embedding_function()
        self.batch_size = batch_size

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            try:
                vectors.extend(await self._embeddings.aembed_documents(batch))
            except Exception as exc:
                logger.exception("Embedding batch starting at %d failed", start)
                raise EmbeddingError(f"Embedding service failed: {exc}") from exc
        if len(vectors) != len(texts):
            raise EmbeddingError(f"Embedding service returned {len(vectors)} vectors for {len(texts)} texts")
        return vectors

    async def embed_query(self, text: str) -> list[float]:
        try:
            return await self._embeddings.aembed_query(text)
        except Exception as exc:
            logger.exception("Query embedding failed")
            raise EmbeddingError(f"Embedding service failed: {exc}") from exc
