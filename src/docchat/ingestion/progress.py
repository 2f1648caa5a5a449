"""Progress events and the producer/consumer channel that carries them.

The ingestion task is the single producer; the transport layer (the
SSE endpoint) is the single consumer.  The queue is bounded, so a slow
consumer blocks the producer, which is acceptable because events are
sparse.  If the consumer goes away, :meth:`ProgressChannel.detach`
turns further publishes into no-ops so ingestion can run to completion.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DONE_STAGE = "done"


class ProgressEvent(BaseModel):
    """One step of an ingestion run.

    Attributes
    ----------
    stage:
        Stage identifier (``validating``, ``extracting``, …, ``done``).
    percent:
        Overall completion, 0–100.
    error:
        Human-readable failure message on the terminal error event.
    result:
        The ``document_id`` on the terminal success event.
    """

    stage: str
    percent: int = Field(ge=0, le=100)
    error: str | None = None
    result: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.error is not None or self.stage == DONE_STAGE

    @classmethod
    def done(cls, document_id: str) -> ProgressEvent:
        return cls(stage=DONE_STAGE, percent=100, result=document_id)

    @classmethod
    def failed(cls, stage: str, percent: int, message: str) -> ProgressEvent:
        return cls(stage=stage, percent=percent, error=message)

    def to_json(self) -> str:
        """Single self-contained JSON message, unset fields omitted."""
        return self.model_dump_json(exclude_none=True)


class ProgressChannel:
    """Bounded, ordered, single-run channel of :class:`ProgressEvent`.

    Guarantees enforced on the producer side:

    * a stage is published at most once;
    * nothing may follow the terminal event.
    """

    def __init__(self, maxsize: int = 1) -> None:
        self._queue: asyncio.Queue[ProgressEvent] = asyncio.Queue(maxsize=maxsize)
        self._stages: set[str] = set()
        self._last: ProgressEvent | None = None
        self._terminated = False
        self._detached = False

    @property
    def terminated(self) -> bool:
        return self._terminated

    @property
    def last_event(self) -> ProgressEvent | None:
        """Most recently published event, delivered or not."""
        return self._last

    @property
    def detached(self) -> bool:
        return self._detached

    async def publish(self, event: ProgressEvent) -> None:
        """Hand *event* to the consumer, waiting while the queue is full."""
        if self._terminated:
            raise RuntimeError(f"Channel already terminated; cannot publish {event.stage!r}")
        if event.error is None and event.stage in self._stages:
            raise RuntimeError(f"Stage {event.stage!r} already published")
        self._stages.add(event.stage)
        self._last = event
        self._terminated = event.is_terminal

        if self._detached:
            logger.debug("Consumer gone, dropping progress event %s", event.stage)
            return
        await self._queue.put(event)

    def detach(self) -> None:
        """Stop delivering events; unblocks a producer waiting on a full queue."""
        self._detached = True
        while not self._queue.empty():
            self._queue.get_nowait()

    async def events(self) -> AsyncIterator[ProgressEvent]:
        """Yield events in publish order, ending after the terminal one."""
        while True:
            event = await self._queue.get()
            yield event
            if event.is_terminal:
                return

    def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        return self.events()
