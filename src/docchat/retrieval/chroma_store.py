"""Chroma implementation of the vector-index abstraction.

Each namespace maps to its own Chroma collection
(``<prefix>-<namespace>``), so isolation is enforced by the server
rather than by a metadata filter.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

import chromadb
from chromadb.errors import ChromaError

from docchat.config import settings
from docchat.errors import StoreError
from docchat.retrieval.base import VectorIndex
from docchat.retrieval.models import VectorRecord

logger = logging.getLogger(__name__)

# Chroma collection names: 3-63 chars, alphanumeric at both ends.
_COLLECTION_NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9._-]{1,61}[a-zA-Z0-9]$")


class ChromaVectorIndex(VectorIndex):
    """Chroma-backed vector index.

    Parameters
    ----------
    host:
        Chroma server hostname.
    port:
        Chroma server port.
    collection_prefix:
        Prefix shared by every per-namespace collection.
    client:
        Pre-built Chroma client (tests, embedded mode).  When *None* an
        ``HttpClient`` is created from *host* / *port*.
    """

    def __init__(
        self,
        *,
        host: str = settings.chroma_host,
        port: int = settings.chroma_port,
        collection_prefix: str = settings.chroma_collection_prefix,
        client: Any = None,
    ) -> None:
        self._prefix = collection_prefix
        self._client = client if client is not None else chromadb.HttpClient(host=host, port=port)

    def collection_name(self, namespace: str) -> str | None:
        """Return the collection backing *namespace*, or *None* if the name is invalid."""
        name = f"{self._prefix}-{namespace}"
        return name if _COLLECTION_NAME_RE.match(name) else None

    # -- VectorIndex overrides ------------------------------------------------

    async def upsert(self, namespace: str, records: list[VectorRecord]) -> None:
        name = self.collection_name(namespace)
        if name is None:
            raise StoreError(f"Invalid namespace for Chroma: {namespace!r}")
        if not records:
            return
        try:
            await asyncio.to_thread(self._upsert_sync, name, records)
        except Exception as exc:
            logger.exception("Chroma upsert into %s failed", name)
            raise StoreError(f"Vector store upsert failed: {exc}") from exc
        logger.debug("Upserted %d vectors into %s", len(records), name)

    async def query(self, namespace: str, vector: list[float], *, k: int) -> list[dict[str, Any]]:
        name = self.collection_name(namespace)
        if name is None:
            return []
        try:
            return await asyncio.to_thread(self._query_sync, name, vector, k)
        except Exception as exc:
            logger.exception("Chroma query on %s failed", name)
            raise StoreError(f"Vector store query failed: {exc}") from exc

    async def namespace_exists(self, namespace: str) -> bool:
        name = self.collection_name(namespace)
        if name is None:
            return False
        try:
            collection = await asyncio.to_thread(self._get_collection, name)
            return collection is not None and await asyncio.to_thread(collection.count) > 0
        except Exception as exc:
            raise StoreError(f"Vector store lookup failed: {exc}") from exc

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(self._client.heartbeat)
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False

    # -- internals ------------------------------------------------------------

    def _get_collection(self, name: str) -> Any:
        try:
            return self._client.get_collection(name)
        except (ValueError, ChromaError):
            return None

    def _upsert_sync(self, name: str, records: list[VectorRecord]) -> None:
        collection = self._client.get_or_create_collection(name, metadata={"hnsw:space": "cosine"})
        collection.upsert(
            ids=[r.id for r in records],
            embeddings=[r.vector for r in records],
            documents=[r.content for r in records],
            metadatas=[r.metadata for r in records],
        )

    def _query_sync(self, name: str, vector: list[float], k: int) -> list[dict[str, Any]]:
        collection = self._get_collection(name)
        if collection is None:
            return []
        n_results = min(k, collection.count())
        if n_results == 0:
            return []

        results = collection.query(
            query_embeddings=[vector],
            n_results=n_results,
            include=["documents", "metadatas", "distances"],
        )

        hits: list[dict[str, Any]] = []
        ids = results.get("ids", [[]])[0]
        docs = results.get("documents", [[]])[0]
        metas = results.get("metadatas", [[]])[0]
        distances = results.get("distances", [[]])[0]

        for vector_id, content, meta, dist in zip(ids, docs, metas, distances):
            # Chroma returns distances; convert to a 0-1 similarity score.
            score = 1.0 / (1.0 + dist)
            hits.append(
                {
                    "id": vector_id,
                    "content": content or "",
                    "score": score,
                    "metadata": dict(meta or {}),
                }
            )
        hits.sort(key=lambda h: h["score"], reverse=True)
        return hits
