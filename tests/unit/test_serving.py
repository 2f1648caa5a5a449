"""Unit tests for the serving layer."""

from __future__ import annotations

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from docchat.conversation.pipeline import ConversationPipeline
from docchat.conversation.rewriter import QueryRewriter
from docchat.conversation.synthesizer import AnswerSynthesizer
from docchat.errors import ChatServiceError
from docchat.ingestion.chunker import ChunkSplitter
from docchat.ingestion.pipeline import IngestionPipeline, UploadedFile
from docchat.retrieval.retriever import Retriever
from docchat.serving.app import Services, _background_tasks, app, get_services, stream_ingestion


def _sse_events(body: str) -> list[dict]:
    """Parse ``data: <json>`` frames from an SSE body."""
    return [json.loads(frame[len("data: ") :]) for frame in body.split("\n\n") if frame.startswith("data: ")]


@pytest.fixture()
def services(completer, embedder, index, extractor) -> Services:
    return Services(
        ingestion=IngestionPipeline(extractor, embedder, index, splitter=ChunkSplitter(1000, 200)),
        conversation=ConversationPipeline(
            QueryRewriter(completer),
            Retriever(index, embedder),
            AnswerSynthesizer(completer),
        ),
        index=index,
    )


@pytest.fixture()
def client(services: Services):
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


def _upload(client: TestClient, pages: list[str]) -> list[dict]:
    response = client.post("/upload", files={"file": ("plan.pdf", "\f".join(pages).encode(), "application/pdf")})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    return _sse_events(response.text)


def test_health_endpoint() -> None:
    """GET /health should return 200 with status ok."""
    response = TestClient(app).get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_ready_endpoint(client: TestClient) -> None:
    assert client.get("/ready").json() == {"status": "ready"}


def test_upload_streams_progress_until_done(client: TestClient, pages: list[str]) -> None:
    events = _upload(client, pages)
    assert [e["stage"] for e in events] == ["validating", "extracting", "chunking", "embedding", "storing", "done"]
    assert events[-1]["percent"] == 100
    assert events[-1]["result"]
    assert all("error" not in e for e in events)


def test_upload_without_file_streams_error(client: TestClient) -> None:
    response = client.post("/upload")
    events = _sse_events(response.text)
    assert events[-1]["error"] == "No file was uploaded."
    assert all("result" not in e for e in events)


def test_chat_round_trip(client: TestClient, completer, pages: list[str]) -> None:
    document_id = _upload(client, pages)[-1]["result"]
    completer.reply = "The project budget is 42000 euros."

    response = client.post(
        "/chat",
        json={"document_id": document_id, "history": [], "question": "What is the project budget?"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["answer"] == "The project budget is 42000 euros."
    assert body["citations"]
    assert all(set(c) <= {"text", "page"} for c in body["citations"])


def test_chat_accepts_history(client: TestClient, completer, pages: list[str]) -> None:
    document_id = _upload(client, pages)[-1]["result"]
    history = [
        {"role": "user", "text": "What about the budget?"},
        {"role": "assistant", "text": "It is 42000 euros."},
    ]
    response = client.post("/chat", json={"document_id": document_id, "history": history, "question": "per month?"})
    assert response.status_code == 200
    assert len(completer.calls) == 2


def test_chat_on_unknown_document_is_404(client: TestClient) -> None:
    response = client.post("/chat", json={"document_id": "nope", "history": [], "question": "anything?"})
    assert response.status_code == 404
    assert "error" in response.json()


def test_chat_without_question_is_400(client: TestClient) -> None:
    response = client.post("/chat", json={"document_id": "nope", "history": []})
    assert response.status_code == 400


def test_chat_service_failure_is_502(client: TestClient, completer, pages: list[str]) -> None:
    document_id = _upload(client, pages)[-1]["result"]

    def fail(messages):
        raise ChatServiceError("Chat service failed: rate limited")

    completer.reply = fail
    response = client.post("/chat", json={"document_id": document_id, "question": "What is the budget?"})
    assert response.status_code == 502
    assert response.json() == {"error": "Chat service failed: rate limited"}


# ── Upload stream lifecycle ─────────────────────────────────────────────


def _payload(pages: list[str]) -> UploadedFile:
    return UploadedFile(filename="plan.pdf", content="\f".join(pages).encode())


@pytest.mark.asyncio
async def test_unsent_stream_starts_no_ingestion(services: Services, pages: list[str]) -> None:
    before = set(_background_tasks)
    stream = stream_ingestion(services.ingestion, _payload(pages))
    await asyncio.sleep(0)
    assert not _background_tasks - before

    await stream.aclose()
    assert not _background_tasks - before


@pytest.mark.asyncio
async def test_ingestion_finishes_after_client_disconnect(services: Services, index, pages: list[str]) -> None:
    before = set(_background_tasks)
    stream = stream_ingestion(services.ingestion, _payload(pages))

    first = json.loads((await stream.__anext__())[len("data: ") :])
    assert first["stage"] == "validating"
    started = _background_tasks - before
    assert len(started) == 1

    await stream.aclose()
    document_id = await asyncio.wait_for(started.pop(), timeout=5)
    assert await index.namespace_exists(document_id)
