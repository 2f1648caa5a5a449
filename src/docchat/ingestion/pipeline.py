"""Ingestion pipeline: upload → text → chunks → vectors → namespace.

Stages run strictly in sequence and each one is announced on the
:class:`~docchat.ingestion.progress.ProgressChannel` before it starts:

====================  =======  ==========================================
stage                 percent  failure
====================  =======  ==========================================
``validating``        5        :class:`ValidationError` (no payload)
``extracting``        20       :class:`ExtractionError`
``chunking``          40       :class:`ExtractionError` (no chunks)
``embedding``         60       :class:`EmbeddingError`
``storing``           80       :class:`StoreError`
``done``              100      — (``result`` carries the document id)
====================  =======  ==========================================

Any failure publishes exactly one terminal error event and stops.  Vectors
already upserted are not rolled back, so a failed document id must be
treated as unusable.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from docchat.errors import DocChatError, ExtractionError, ValidationError
from docchat.ingestion.chunker import ChunkSplitter
from docchat.ingestion.embedder import Embedder
from docchat.ingestion.loader import TextExtractor
from docchat.ingestion.namespace import NamespaceAllocator
from docchat.ingestion.progress import ProgressChannel, ProgressEvent
from docchat.retrieval.base import VectorIndex
from docchat.retrieval.models import VectorRecord

logger = logging.getLogger(__name__)

STAGE_PERCENT: dict[str, int] = {
    "validating": 5,
    "extracting": 20,
    "chunking": 40,
    "embedding": 60,
    "storing": 80,
}


@dataclass
class UploadedFile:
    """Raw upload as received from the transport layer."""

    filename: str
    content: bytes | None


class IngestionPipeline:
    """Turns one uploaded file into a ready, isolated namespace.

    The pipeline holds no per-run state, so a single instance can serve
    concurrent ingestions.
    """

    def __init__(
        self,
        extractor: TextExtractor,
        embedder: Embedder,
        index: VectorIndex,
        *,
        splitter: ChunkSplitter | None = None,
        allocator: NamespaceAllocator | None = None,
    ) -> None:
        self._extractor = extractor
        self._embedder = embedder
        self._index = index
        self._splitter = splitter or ChunkSplitter()
        self._allocator = allocator or NamespaceAllocator()

    async def ingest(self, upload: UploadedFile | None, progress: ProgressChannel) -> str:
        """Run every stage and return the new ``document_id``.

        The terminal event (``done`` or error) is always published
        before this coroutine returns or raises.
        """
        try:
            return await self._run(upload, progress)
        except DocChatError as exc:
            logger.warning("Ingestion failed: %s", exc.message)
            await self._fail(progress, exc.message)
            raise
        except asyncio.CancelledError:
            await self._fail(progress, "Ingestion was cancelled.")
            raise
        except Exception as exc:
            logger.exception("Unexpected ingestion failure")
            await self._fail(progress, str(exc) or type(exc).__name__)
            raise

    # -- internals ------------------------------------------------------------

    async def _run(self, upload: UploadedFile | None, progress: ProgressChannel) -> str:
        started = time.perf_counter()

        await self._announce(progress, "validating")
        if upload is None or not upload.content:
            raise ValidationError("No file was uploaded.")
        document_id = self._allocator.allocate()
        logger.info("Ingesting %r as %s (%d bytes)", upload.filename, document_id, len(upload.content))

        await self._announce(progress, "extracting")
        extracted = await self._extractor.extract(upload.content, upload.filename)

        await self._announce(progress, "chunking")
        chunks = self._splitter.split(
            extracted.text,
            document_id=document_id,
            page_offsets=extracted.page_offsets,
        )
        if not chunks:
            raise ExtractionError("The document produced no text chunks.")

        await self._announce(progress, "embedding")
        vectors = await self._embedder.embed_documents([c.text for c in chunks])

        await self._announce(progress, "storing")
        records = [
            VectorRecord(id=c.vector_id(), vector=v, content=c.text, metadata=c.to_metadata())
            for c, v in zip(chunks, vectors)
        ]
        await self._index.upsert(document_id, records)

        await progress.publish(ProgressEvent.done(document_id))
        logger.info(
            "Document %s ready: %d chunk(s) in %.2fs",
            document_id,
            len(chunks),
            time.perf_counter() - started,
        )
        return document_id

    @staticmethod
    async def _announce(progress: ProgressChannel, stage: str) -> None:
        logger.debug("Ingestion stage %s", stage)
        await progress.publish(ProgressEvent(stage=stage, percent=STAGE_PERCENT[stage]))

    @staticmethod
    async def _fail(progress: ProgressChannel, message: str) -> None:
        if progress.terminated:
            return
        last = progress.last_event
        stage = last.stage if last else "validating"
        percent = last.percent if last else 0
        await progress.publish(ProgressEvent.failed(stage, percent, message))
