"""FastAPI application exposing document upload and chat."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from docchat.config import settings
from docchat.conversation.llm import LangChainCompleter
from docchat.conversation.pipeline import ConversationPipeline
from docchat.conversation.rewriter import QueryRewriter
from docchat.conversation.synthesizer import AnswerSynthesizer
from docchat.errors import (
    ChatServiceError,
    DocChatError,
    EmbeddingError,
    ExtractionError,
    RetrievalUnavailable,
    StoreError,
    ValidationError,
)
from docchat.ingestion.embedder import LangChainEmbedder
from docchat.ingestion.loader import PdfTextExtractor
from docchat.ingestion.pipeline import IngestionPipeline, UploadedFile
from docchat.ingestion.progress import ProgressChannel
from docchat.retrieval import get_vector_index
from docchat.retrieval.base import VectorIndex
from docchat.retrieval.models import Answer, ConversationTurn
from docchat.retrieval.retriever import Retriever

logger = logging.getLogger(__name__)

# Ingestion tasks outlive their HTTP request; keep strong references.
_background_tasks: set[asyncio.Task] = set()

_STATUS_BY_ERROR: list[tuple[type[DocChatError], int]] = [
    (ValidationError, 400),
    (RetrievalUnavailable, 404),
    (ExtractionError, 422),
    (EmbeddingError, 502),
    (ChatServiceError, 502),
    (StoreError, 502),
]


def configure_logging(level: str = settings.log_level) -> None:
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


# ── Service wiring ────────────────────────────────────────────────────
@dataclass
class Services:
    """Long-lived pipeline instances shared by every request."""

    ingestion: IngestionPipeline
    conversation: ConversationPipeline
    index: VectorIndex


def build_services() -> Services:
    """Wire the production adapters from the global settings."""
    index = get_vector_index()
    embedder = LangChainEmbedder()
    completer = LangChainCompleter()
    retriever = Retriever(index, embedder)
    return Services(
        ingestion=IngestionPipeline(PdfTextExtractor(), embedder, index),
        conversation=ConversationPipeline(
            QueryRewriter(completer),
            retriever,
            AnswerSynthesizer(completer),
        ),
        index=index,
    )


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        services = request.app.state.services = build_services()
    return services


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield
    if _background_tasks:
        # Ingestions run to completion, even past client disconnects.
        logger.info("Waiting for %d ingestion(s) to finish", len(_background_tasks))
        await asyncio.gather(*_background_tasks, return_exceptions=True)


app = FastAPI(
    title="DocChat API",
    version="0.1.0",
    description="Upload a document and chat with it through a RAG pipeline.",
    lifespan=lifespan,
)


@app.exception_handler(DocChatError)
async def docchat_error_handler(request: Request, exc: DocChatError) -> JSONResponse:
    status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=status, content={"error": exc.message})


# ── Request / Response schemas ────────────────────────────────────────
class ChatRequest(BaseModel):
    """One conversation turn; the caller owns and resends the history."""

    document_id: str = ""
    history: list[ConversationTurn] = Field(default_factory=list)
    question: str = ""


# ── Routes ────────────────────────────────────────────────────────────
@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@app.get("/ready")
async def ready(services: Services = Depends(get_services)) -> JSONResponse:
    """Readiness probe — checks the vector store."""
    if await services.index.health_check():
        return JSONResponse({"status": "ready"})
    return JSONResponse({"status": "unavailable"}, status_code=503)


async def stream_ingestion(pipeline: IngestionPipeline, payload: UploadedFile | None) -> AsyncIterator[str]:
    """Run one ingestion and yield its progress as SSE ``data:`` frames.

    The ingestion task is created on first iteration, so a response whose
    body is never sent never starts one.  Once started it runs to
    completion; closing the stream only detaches the channel.
    """
    channel = ProgressChannel()
    task = asyncio.create_task(pipeline.ingest(payload, channel))
    _background_tasks.add(task)
    task.add_done_callback(_ingestion_finished)
    try:
        async for event in channel:
            yield f"data: {event.to_json()}\n\n"
    finally:
        # Client gone or stream complete: stop blocking the producer.
        channel.detach()


@app.post("/upload")
async def upload(
    file: UploadFile | None = File(default=None),
    services: Services = Depends(get_services),
) -> StreamingResponse:
    """Ingest one document, streaming progress as Server-Sent Events.

    Each message is ``data: <ProgressEvent JSON>``; the stream ends after
    the terminal ``done`` or error event.
    """
    payload = None
    if file is not None:
        payload = UploadedFile(filename=file.filename or "", content=await file.read())

    return StreamingResponse(
        stream_ingestion(services.ingestion, payload),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"},
    )


@app.post("/chat", response_model=Answer, response_model_exclude_none=True)
async def chat(request: ChatRequest, services: Services = Depends(get_services)) -> Answer:
    """Answer one question about an ingested document."""
    return await services.conversation.handle_turn(request.document_id, request.history, request.question)


def _ingestion_finished(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        logger.warning("Ingestion task cancelled")
    elif task.exception() is not None:
        # Already reported to the client as the terminal error event.
        logger.info("Ingestion task ended with %s", type(task.exception()).__name__)


def main() -> None:
    """Run the API with uvicorn (``docchat-serve``)."""
    import uvicorn

    uvicorn.run("docchat.serving.app:app", host="0.0.0.0", port=8080)
