"""
Retrieval — namespace-scoped vector search and citation models.

This module wraps the vector store behind a clean interface so that
the pipelines never need to know which DB is backing retrieval.

Public surface
--------------
- :class:`Retriever` — similarity search scoped to one document.
- :class:`VectorIndex` — abstract backend.
- :class:`ChromaVectorIndex`, :class:`PineconeVectorIndex`,
  :class:`InMemoryVectorIndex` — concrete backends.
- :class:`Chunk`, :class:`RetrievedChunk`, :class:`SourceCitation`,
  :class:`ConversationTurn`, :class:`Answer` — data models.
- :func:`get_vector_index` — backend factory driven by settings.
"""

from docchat.config import settings
from docchat.retrieval.base import VectorIndex
from docchat.retrieval.memory_store import InMemoryVectorIndex
from docchat.retrieval.models import (
    Answer,
    Chunk,
    ConversationTurn,
    RetrievedChunk,
    Role,
    SourceCitation,
    VectorRecord,
)
from docchat.retrieval.retriever import Retriever

__all__ = [
    "Answer",
    "ChromaVectorIndex",
    "Chunk",
    "ConversationTurn",
    "InMemoryVectorIndex",
    "PineconeVectorIndex",
    "RetrievedChunk",
    "Retriever",
    "Role",
    "SourceCitation",
    "VectorIndex",
    "VectorRecord",
    "get_vector_index",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import vendor backends to avoid pulling in their SDKs at import time."""
    if name == "ChromaVectorIndex":
        from docchat.retrieval.chroma_store import ChromaVectorIndex

        return ChromaVectorIndex
    if name == "PineconeVectorIndex":
        from docchat.retrieval.pinecone_store import PineconeVectorIndex

        return PineconeVectorIndex
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def get_vector_index(backend: str | None = None) -> VectorIndex:
    """Build the vector index selected by *backend* (default: ``settings.vector_backend``)."""
    backend = backend or settings.vector_backend
    if backend == "chroma":
        from docchat.retrieval.chroma_store import ChromaVectorIndex

        return ChromaVectorIndex()
    if backend == "pinecone":
        from docchat.retrieval.pinecone_store import PineconeVectorIndex

        return PineconeVectorIndex()
    if backend == "memory":
        return InMemoryVectorIndex()
    raise ValueError(f"Unsupported vector backend: {backend!r}")
