"""In-process vector index for local development and tests."""

from __future__ import annotations

import math
from typing import Any

from docchat.retrieval.base import VectorIndex
from docchat.retrieval.models import VectorRecord


def cosine_similarity(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class InMemoryVectorIndex(VectorIndex):
    """Dictionary of namespaces, each a dictionary of records keyed by id.

    Nothing is persisted; vectors disappear with the process.
    """

    def __init__(self) -> None:
        self._namespaces: dict[str, dict[str, VectorRecord]] = {}

    async def upsert(self, namespace: str, records: list[VectorRecord]) -> None:
        bucket = self._namespaces.setdefault(namespace, {})
        for record in records:
            bucket[record.id] = record

    async def query(self, namespace: str, vector: list[float], *, k: int) -> list[dict[str, Any]]:
        bucket = self._namespaces.get(namespace, {})
        hits = [
            {
                "id": record.id,
                "content": record.content,
                "score": cosine_similarity(vector, record.vector),
                "metadata": dict(record.metadata),
            }
            for record in bucket.values()
        ]
        hits.sort(key=lambda h: h["score"], reverse=True)
        return hits[:k]

    async def namespace_exists(self, namespace: str) -> bool:
        return bool(self._namespaces.get(namespace))

    async def health_check(self) -> bool:
        return True
