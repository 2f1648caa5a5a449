"""Domain models for chunks, retrieval results and citation tracking."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Chunk(BaseModel):
    """A contiguous slice of one document's extracted text.

    Attributes
    ----------
    text:
        The chunk content, never longer than the configured maximum.
    sequence_index:
        Ordinal position of the chunk within the source document.
    source_page:
        1-based page number of the chunk's first character, when the
        extractor reported page boundaries.
    document_id:
        Back-reference to the owning document (and its namespace).
    """

    text: str
    sequence_index: int
    source_page: int | None = None
    document_id: str | None = None

    def vector_id(self) -> str:
        """Deterministic vector-store id, stable across re-ingestion."""
        return f"{self.document_id}#{self.sequence_index}"

    def to_metadata(self) -> dict[str, Any]:
        """Metadata stored next to the vector.

        The page is left out when unknown because most vector stores
        reject ``None`` metadata values.
        """
        meta: dict[str, Any] = {
            "document_id": self.document_id,
            "sequence_index": self.sequence_index,
        }
        if self.source_page is not None:
            meta["source_page"] = self.source_page
        return meta

    @classmethod
    def from_hit(cls, hit: dict[str, Any]) -> Chunk:
        """Rebuild a chunk from a raw vector-store hit."""
        meta = hit.get("metadata") or {}
        return cls(
            text=hit.get("content", ""),
            sequence_index=int(meta.get("sequence_index", 0)),
            source_page=meta.get("source_page"),
            document_id=meta.get("document_id"),
        )


class VectorRecord(BaseModel):
    """One (chunk, vector) pair ready for upsert."""

    id: str
    vector: list[float]
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class RetrievedChunk(BaseModel):
    """A retrieved chunk together with its relevance score."""

    chunk: Chunk
    score: float


class SourceCitation(BaseModel):
    """Source text and page attached to an assistant answer."""

    text: str
    page: int | None = None

    @classmethod
    def from_chunk(cls, chunk: Chunk) -> SourceCitation:
        return cls(text=chunk.text, page=chunk.source_page)


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ConversationTurn(BaseModel):
    """One prior message supplied by the caller."""

    role: Role
    text: str
    citations: list[SourceCitation] = Field(default_factory=list)


class Answer(BaseModel):
    """Result of one conversation turn."""

    answer: str
    citations: list[SourceCitation] = Field(default_factory=list)
