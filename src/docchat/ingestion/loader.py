"""Document text extraction — thin wrappers around LangChain document loaders."""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from langchain_community.document_loaders import PyPDFLoader, TextLoader

from docchat.errors import ExtractionError

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n\n"
TEXT_SUFFIXES = {".txt", ".md", ".markdown"}


@dataclass
class ExtractedText:
    """Full document text plus the start offset of every page.

    ``page_offsets`` is empty when the format has no notion of pages.
    """

    text: str
    page_offsets: list[int] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.page_offsets)


class TextExtractor(ABC):
    """Turns raw uploaded bytes into text."""

    @abstractmethod
    async def extract(self, raw_bytes: bytes, filename: str = "") -> ExtractedText:
        """Return the document's text.

        Raises :class:`~docchat.errors.ExtractionError` when the bytes
        are unreadable or hold no text.
        """
        ...


def join_pages(pages: list[str]) -> ExtractedText:
    """Join per-page texts with :data:`PAGE_SEPARATOR`, recording page offsets."""
    offsets: list[int] = []
    parts: list[str] = []
    position = 0
    for page in pages:
        if parts:
            parts.append(PAGE_SEPARATOR)
            position += len(PAGE_SEPARATOR)
        offsets.append(position)
        parts.append(page)
        position += len(page)
    return ExtractedText(text="".join(parts), page_offsets=offsets)


class PdfTextExtractor(TextExtractor):
    """PDF extraction through ``PyPDFLoader`` (one LangChain document per page).

    Files whose name ends in ``.txt`` / ``.md`` are read as UTF-8 text
    through ``TextLoader`` instead.
    """

    async def extract(self, raw_bytes: bytes, filename: str = "") -> ExtractedText:
        if not raw_bytes:
            raise ExtractionError("The uploaded file is empty.")
        suffix = Path(filename).suffix.lower() or ".pdf"
        try:
            extracted = await asyncio.to_thread(self._extract_sync, raw_bytes, suffix)
        except ExtractionError:
            raise
        except Exception as exc:
            logger.warning("Could not read %r", filename or "<upload>", exc_info=True)
            raise ExtractionError(f"Unable to read document: {exc}") from exc

        if not extracted.text.strip():
            raise ExtractionError("No text could be extracted from the document.")
        logger.info("Extracted %d characters over %d page(s)", len(extracted.text), extracted.page_count)
        return extracted

    def _extract_sync(self, raw_bytes: bytes, suffix: str) -> ExtractedText:
        # The loaders only accept paths, so spill the upload to disk.
        fd, path = tempfile.mkstemp(suffix=suffix)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(raw_bytes)
            if suffix in TEXT_SUFFIXES:
                docs = TextLoader(path, encoding="utf-8").load()
                return ExtractedText(text="".join(d.page_content for d in docs))
            docs = PyPDFLoader(path).load()
            return join_pages([d.page_content for d in docs])
        finally:
            os.unlink(path)
