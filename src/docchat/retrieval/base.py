"""Abstract base class for vector-store backends.

Adding a new backend (Weaviate, Qdrant …) only requires subclassing
:class:`VectorIndex` and implementing the abstract methods.  Every
method is namespace-scoped: a query against namespace *N* must only
ever see vectors upserted under *N*.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from docchat.retrieval.models import VectorRecord


class VectorIndex(ABC):
    """Backend-agnostic, namespace-scoped vector-store interface."""

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    async def upsert(self, namespace: str, records: list[VectorRecord]) -> None:
        """Insert or overwrite *records* inside *namespace*.

        Returns only once every record has been accepted by the backend.
        Raises :class:`~docchat.errors.StoreError` on failure.
        """
        ...

    @abstractmethod
    async def query(self, namespace: str, vector: list[float], *, k: int) -> list[dict[str, Any]]:
        """Return the top-*k* hits for *vector* inside *namespace*.

        Each result dict **must** contain:

        * ``"id"`` – vector identifier
        * ``"content"`` – the chunk text
        * ``"score"`` – similarity score (higher = more similar)
        * ``"metadata"`` – associated metadata dict

        Results are ordered by descending score.  A missing namespace
        yields an empty list, never an error.
        """
        ...

    @abstractmethod
    async def namespace_exists(self, namespace: str) -> bool:
        """Return ``True`` when *namespace* holds at least one vector."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...
