"""Pinecone implementation of the vector-index abstraction.

Pinecone namespaces map 1:1 onto document namespaces.  Chunk text is
stored in the vector metadata under ``"text"`` since Pinecone keeps no
separate document payload.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pinecone import Pinecone

from docchat.config import settings
from docchat.errors import StoreError
from docchat.retrieval.base import VectorIndex
from docchat.retrieval.models import VectorRecord

logger = logging.getLogger(__name__)

_TEXT_KEY = "text"


class PineconeVectorIndex(VectorIndex):
    """Pinecone-backed vector index.

    The index itself must already exist; it is created out of band with
    the embedding model's dimension.
    """

    def __init__(
        self,
        *,
        api_key: str = settings.pinecone_api_key,
        index_name: str = settings.pinecone_index_name,
        upsert_batch_size: int = 80,
        index: Any = None,
    ) -> None:
        self.index_name = index_name
        self._batch_size = upsert_batch_size
        self._index = index if index is not None else Pinecone(api_key=api_key).Index(index_name)

    @staticmethod
    def _batches(vectors: list[dict[str, Any]], size: int):
        for i in range(0, len(vectors), size):
            yield vectors[i : i + size]

    # -- VectorIndex overrides ------------------------------------------------

    async def upsert(self, namespace: str, records: list[VectorRecord]) -> None:
        vectors = [
            {"id": r.id, "values": r.vector, "metadata": {**r.metadata, _TEXT_KEY: r.content}}
            for r in records
        ]
        try:
            # Pinecone caps request size at ~2 MB, roughly 80 vectors.
            for batch in self._batches(vectors, self._batch_size):
                await asyncio.to_thread(self._index.upsert, vectors=batch, namespace=namespace)
        except Exception as exc:
            logger.exception("Pinecone upsert into namespace %s failed", namespace)
            raise StoreError(f"Vector store upsert failed: {exc}") from exc
        logger.debug("Upserted %d vectors into %s/%s", len(vectors), self.index_name, namespace)

    async def query(self, namespace: str, vector: list[float], *, k: int) -> list[dict[str, Any]]:
        try:
            response = await asyncio.to_thread(
                self._index.query,
                vector=vector,
                top_k=k,
                namespace=namespace,
                include_metadata=True,
            )
        except Exception as exc:
            logger.exception("Pinecone query on namespace %s failed", namespace)
            raise StoreError(f"Vector store query failed: {exc}") from exc

        hits: list[dict[str, Any]] = []
        for match in response.matches or []:
            meta = dict(match.metadata or {})
            content = meta.pop(_TEXT_KEY, "")
            hits.append({"id": match.id, "content": content, "score": float(match.score), "metadata": meta})
        hits.sort(key=lambda h: h["score"], reverse=True)
        return hits

    async def namespace_exists(self, namespace: str) -> bool:
        try:
            stats = await asyncio.to_thread(self._index.describe_index_stats)
        except Exception as exc:
            raise StoreError(f"Vector store lookup failed: {exc}") from exc
        summary = (stats.namespaces or {}).get(namespace)
        if summary is not None and summary.vector_count > 0:
            return True
        # Index stats lag behind fresh upserts; confirm with a one-match query.
        dimension = getattr(stats, "dimension", None)
        if not dimension:
            return False
        return bool(await self.query(namespace, [1.0] * dimension, k=1))

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(self._index.describe_index_stats)
            return True
        except Exception:
            logger.warning("Pinecone health-check failed", exc_info=True)
            return False
