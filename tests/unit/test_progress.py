"""Unit tests for progress events and the progress channel."""

from __future__ import annotations

import asyncio
import json

import pytest

from docchat.ingestion.progress import ProgressChannel, ProgressEvent


class TestProgressEvent:
    def test_json_omits_unset_fields(self) -> None:
        payload = json.loads(ProgressEvent(stage="chunking", percent=40).to_json())
        assert payload == {"stage": "chunking", "percent": 40}

    def test_done_event_carries_result(self) -> None:
        event = ProgressEvent.done("doc-123")
        assert event.is_terminal
        assert json.loads(event.to_json()) == {"stage": "done", "percent": 100, "result": "doc-123"}

    def test_failed_event_is_terminal(self) -> None:
        event = ProgressEvent.failed("embedding", 60, "quota exceeded")
        assert event.is_terminal
        assert json.loads(event.to_json())["error"] == "quota exceeded"

    def test_percent_is_bounded(self) -> None:
        with pytest.raises(ValueError):
            ProgressEvent(stage="x", percent=101)


class TestProgressChannel:
    @pytest.mark.asyncio
    async def test_events_arrive_in_order_and_stop_after_terminal(self) -> None:
        channel = ProgressChannel()

        async def produce() -> None:
            await channel.publish(ProgressEvent(stage="validating", percent=5))
            await channel.publish(ProgressEvent(stage="extracting", percent=20))
            await channel.publish(ProgressEvent.done("doc-1"))

        producer = asyncio.create_task(produce())
        received = [event.stage async for event in channel]
        await producer

        assert received == ["validating", "extracting", "done"]

    @pytest.mark.asyncio
    async def test_duplicate_stage_is_rejected(self) -> None:
        channel = ProgressChannel(maxsize=10)
        await channel.publish(ProgressEvent(stage="chunking", percent=40))
        with pytest.raises(RuntimeError, match="already published"):
            await channel.publish(ProgressEvent(stage="chunking", percent=40))

    @pytest.mark.asyncio
    async def test_nothing_after_terminal(self) -> None:
        channel = ProgressChannel(maxsize=10)
        await channel.publish(ProgressEvent.failed("validating", 5, "No file was uploaded."))
        assert channel.terminated
        with pytest.raises(RuntimeError, match="terminated"):
            await channel.publish(ProgressEvent.done("doc-1"))

    @pytest.mark.asyncio
    async def test_producer_blocks_on_slow_consumer(self) -> None:
        channel = ProgressChannel(maxsize=1)
        await channel.publish(ProgressEvent(stage="validating", percent=5))

        blocked = asyncio.create_task(channel.publish(ProgressEvent(stage="extracting", percent=20)))
        await asyncio.sleep(0)
        assert not blocked.done()

        events = channel.events()
        assert (await events.__anext__()).stage == "validating"
        await asyncio.wait_for(blocked, timeout=1)
        assert (await events.__anext__()).stage == "extracting"

    @pytest.mark.asyncio
    async def test_detach_unblocks_producer_and_drops_events(self) -> None:
        channel = ProgressChannel(maxsize=1)
        await channel.publish(ProgressEvent(stage="validating", percent=5))
        blocked = asyncio.create_task(channel.publish(ProgressEvent(stage="extracting", percent=20)))
        await asyncio.sleep(0)

        channel.detach()
        await asyncio.wait_for(blocked, timeout=1)
        await asyncio.wait_for(channel.publish(ProgressEvent.done("doc-1")), timeout=1)

        assert channel.terminated
        assert channel.last_event is not None and channel.last_event.result == "doc-1"
