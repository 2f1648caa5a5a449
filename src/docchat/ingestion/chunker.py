"""Text chunking with a fixed character overlap."""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Sequence

from docchat.config import settings
from docchat.retrieval.models import Chunk

# Highest priority first; "" means a hard character cut.
DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", ". ", " ", "")


class ChunkSplitter:
    """Split text into bounded, overlapping chunks.

    Cuts are placed on the highest-priority separator found in the back
    half of each window, so chunks stay close to ``max_chunk_size``
    while preferring paragraph, then line, then sentence, then word
    boundaries.  Each chunk after the first starts exactly ``overlap``
    characters before the end of the previous one.  The output depends
    only on the input text and the parameters.

    Parameters
    ----------
    max_chunk_size:
        Maximum number of characters per chunk.
    overlap:
        Number of characters shared by consecutive chunks.
    separators:
        Cut candidates in priority order.
    """

    def __init__(
        self,
        max_chunk_size: int = settings.max_chunk_size,
        overlap: int = settings.chunk_overlap,
        separators: Sequence[str] = DEFAULT_SEPARATORS,
    ) -> None:
        if max_chunk_size <= 0:
            raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")
        if not 0 <= overlap < max_chunk_size:
            raise ValueError(f"overlap must be in [0, {max_chunk_size}), got {overlap}")
        self.max_chunk_size = max_chunk_size
        self.overlap = overlap
        self.separators = [s for s in separators if s]

    def split(
        self,
        text: str,
        *,
        document_id: str | None = None,
        page_offsets: Sequence[int] | None = None,
    ) -> list[Chunk]:
        """Split *text* into :class:`Chunk` objects.

        Parameters
        ----------
        text:
            Full extracted document text.
        document_id:
            Stamped on every chunk as a back-reference.
        page_offsets:
            Sorted start offset of every page inside *text*.  When given,
            each chunk records the 1-based page holding its first
            character.

        Returns
        -------
        list[Chunk]
            Chunks in document order; empty for empty text.
        """
        return [
            Chunk(
                text=text[start:end],
                sequence_index=i,
                source_page=_page_of(start, page_offsets),
                document_id=document_id,
            )
            for i, (start, end) in enumerate(self.spans(text))
        ]

    def spans(self, text: str) -> list[tuple[int, int]]:
        """Return the ``(start, end)`` character span of every chunk."""
        length = len(text)
        if length == 0:
            return []

        spans: list[tuple[int, int]] = []
        start = 0
        while length - start > self.max_chunk_size:
            end = self._find_cut(text, start)
            spans.append((start, end))
            start = end - self.overlap
        spans.append((start, length))
        return spans

    def _find_cut(self, text: str, start: int) -> int:
        limit = start + self.max_chunk_size
        # The cut must leave progress after stepping back by the overlap.
        earliest = start + max(self.overlap + 1, self.max_chunk_size // 2)
        for sep in self.separators:
            idx = text.rfind(sep, max(start, earliest - len(sep)), limit)
            if idx != -1:
                return idx + len(sep)
        return limit


def _page_of(offset: int, page_offsets: Sequence[int] | None) -> int | None:
    if not page_offsets:
        return None
    return max(bisect_right(page_offsets, offset), 1)


def split_text(text: str, max_chunk_size: int, overlap: int) -> list[Chunk]:
    """Functional shorthand for ``ChunkSplitter(max_chunk_size, overlap).split(text)``."""
    return ChunkSplitter(max_chunk_size, overlap).split(text)
