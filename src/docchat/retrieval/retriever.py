"""Namespace-scoped semantic retriever.

Usage::

    from docchat.retrieval.retriever import Retriever

    retriever = Retriever(index=index, embedder=embedder)
    results   = await retriever.retrieve(document_id, "What is the budget?")
    for r in results:
        print(r.score, r.chunk.source_page, r.chunk.text[:80])
"""

from __future__ import annotations

import logging
from typing import Any

from docchat.config import settings
from docchat.ingestion.embedder import Embedder
from docchat.retrieval.base import VectorIndex
from docchat.retrieval.models import Chunk, RetrievedChunk

logger = logging.getLogger(__name__)


class Retriever:
    """Similarity search restricted to a single document namespace.

    Parameters
    ----------
    index:
        A concrete vector-index backend.
    embedder:
        Embeds the query text; must be the model used at ingestion time.
    default_k:
        Default number of results returned by :meth:`retrieve`.
    score_threshold:
        Minimum similarity score; results below this are discarded.
    """

    def __init__(
        self,
        index: VectorIndex,
        embedder: Embedder,
        *,
        default_k: int = settings.retrieval_k,
        score_threshold: float = 0.0,
    ) -> None:
        self._index = index
        self._embedder = embedder
        self.default_k = default_k
        self.score_threshold = score_threshold

    # -- public API -----------------------------------------------------------

    async def retrieve(self, namespace: str, query: str, k: int | None = None) -> list[RetrievedChunk]:
        """Return the top-*k* chunks of *namespace* for *query*.

        An empty list is a valid outcome ("nothing relevant") and is
        never turned into an error here.
        """
        if k is None:
            k = self.default_k
        if k <= 0:
            return []
        vector = await self._embedder.embed_query(query)
        raw_hits = await self._index.query(namespace, vector, k=k)
        results = self._to_results(namespace, raw_hits)[:k]
        logger.info("Retrieved %d chunk(s) from namespace %s", len(results), namespace)
        return results

    async def namespace_exists(self, namespace: str) -> bool:
        return await self._index.namespace_exists(namespace)

    # -- internals ------------------------------------------------------------

    def _to_results(self, namespace: str, raw_hits: list[dict[str, Any]]) -> list[RetrievedChunk]:
        results: list[RetrievedChunk] = []
        for hit in raw_hits:
            score = float(hit.get("score", 0.0))
            if score < self.score_threshold:
                continue
            chunk = Chunk.from_hit(hit)
            if chunk.document_id is not None and chunk.document_id != namespace:
                # The backend leaked a vector from another document.
                logger.error("Dropping hit %s from foreign document %s", hit.get("id"), chunk.document_id)
                continue
            results.append(RetrievedChunk(chunk=chunk, score=score))
        results.sort(key=lambda r: r.score, reverse=True)
        return results
