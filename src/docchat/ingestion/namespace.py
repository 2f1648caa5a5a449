"""Document / namespace identifier allocation."""

from __future__ import annotations

from uuid import uuid4


class NamespaceAllocator:
    """Hands out a fresh ``document_id`` per ingestion.

    The id is a random UUID4, used both as the public document handle
    and as the vector-store namespace.  Nothing is derived from process
    state, so ids are never reused across restarts.
    """

    def allocate(self) -> str:
        return str(uuid4())
