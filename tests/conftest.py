"""Shared pytest configuration, fakes and fixtures.

The fakes subclass the capability interfaces so every pipeline can run
without a chat model, an embedding model or a vector database.
"""

from __future__ import annotations

import math
import re
import zlib
from collections.abc import Callable

import pytest
from langchain_core.messages import BaseMessage

from docchat.conversation.llm import Completer
from docchat.errors import ExtractionError
from docchat.ingestion.embedder import Embedder
from docchat.ingestion.loader import ExtractedText, TextExtractor, join_pages
from docchat.retrieval.memory_store import InMemoryVectorIndex

DIM = 64


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fakes ───────────────────────────────────────────────────────────────


class FakeEmbedder(Embedder):
    """Hashed bag-of-words vectors: texts sharing words are similar."""

    def __init__(self) -> None:
        self.document_calls: list[list[str]] = []

    @staticmethod
    def vectorize(text: str) -> list[float]:
        vector = [0.0] * DIM
        for word in re.findall(r"\w+", text.lower()):
            vector[zlib.crc32(word.encode()) % DIM] += 1.0
        norm = math.sqrt(sum(v * v for v in vector)) or 1.0
        return [v / norm for v in vector]

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.document_calls.append(list(texts))
        return [self.vectorize(t) for t in texts]

    async def embed_query(self, text: str) -> list[float]:
        return self.vectorize(text)


class FakeCompleter(Completer):
    """Records every prompt and answers through *reply* (string or callable)."""

    def __init__(self, reply: str | Callable[[list[BaseMessage]], str] = "fake answer") -> None:
        self.reply = reply
        self.calls: list[list[BaseMessage]] = []

    async def complete(self, messages: list[BaseMessage]) -> str:
        self.calls.append(list(messages))
        return self.reply(messages) if callable(self.reply) else self.reply


class FakeExtractor(TextExtractor):
    """Treats the upload bytes as UTF-8 pages separated by form feeds."""

    async def extract(self, raw_bytes: bytes, filename: str = "") -> ExtractedText:
        text = raw_bytes.decode("utf-8", errors="ignore")
        if not text.strip():
            raise ExtractionError("No text could be extracted from the document.")
        return join_pages(text.split("\f"))


def three_page_document() -> list[str]:
    """Three pages joined into exactly 2500 characters (see ``join_pages``)."""
    page_1 = ("Introduction to the annual plan. " * 31)[:998]
    page_2 = ("The project budget is 42000 euros for the year. " * 15)[:700]
    page_3 = ("Appendix with staffing notes and schedule. " * 19)[:798]
    return [page_1, page_2, page_3]


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture()
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture()
def completer() -> FakeCompleter:
    return FakeCompleter()


@pytest.fixture()
def extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture()
def index() -> InMemoryVectorIndex:
    return InMemoryVectorIndex()


@pytest.fixture()
def pages() -> list[str]:
    return three_page_document()
