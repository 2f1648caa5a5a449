"""Error taxonomy shared by the ingestion and conversation pipelines.

Adapters wrap vendor exceptions in one of these classes (``raise ... from
exc``) so the pipelines and the HTTP layer never depend on SDK-specific
error types.  Nothing in the core retries automatically.
"""

from __future__ import annotations


class DocChatError(Exception):
    """Base class for every error surfaced to callers."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DocChatError):
    """Missing or empty input. User-correctable, never retried."""


class ExtractionError(DocChatError):
    """The uploaded document could not be read or contains no text."""


class EmbeddingError(DocChatError):
    """The embedding service failed (quota, auth, timeout, ...)."""


class ChatServiceError(DocChatError):
    """The chat/completion service failed (quota, auth, timeout, ...)."""


class RetrievalUnavailable(DocChatError):
    """The requested namespace does not exist or holds no vectors."""


class StoreError(DocChatError):
    """A vector-store upsert or query failed."""
