"""Grounded answer synthesis with deterministic citations."""

from __future__ import annotations

import logging

from docchat.conversation.llm import Completer
from docchat.conversation.prompts import NOT_FOUND_ANSWER, build_answer_prompt, is_greeting
from docchat.retrieval.models import Answer, ConversationTurn, RetrievedChunk, SourceCitation

logger = logging.getLogger(__name__)


class AnswerSynthesizer:
    """Answers a question strictly from retrieved chunks and prior turns.

    * Greetings get a polite reply and no citations, whatever was retrieved.
    * With nothing retrieved, the reply is :data:`NOT_FOUND_ANSWER` and the
      chat model is not called.
    * Otherwise there is one citation per retrieved chunk, in retrieval
      order; the page is left unset when the extractor did not know it.
    """

    def __init__(self, completer: Completer) -> None:
        self._completer = completer

    async def synthesize(
        self,
        retrieved: list[RetrievedChunk],
        history: list[ConversationTurn],
        question: str,
    ) -> Answer:
        if is_greeting(question):
            reply = await self._completer.complete(build_answer_prompt(question, [], history))
            return Answer(answer=reply.strip(), citations=[])

        if not retrieved:
            logger.info("No context retrieved; answering with the fallback sentence")
            return Answer(answer=NOT_FOUND_ANSWER, citations=[])

        reply = await self._completer.complete(build_answer_prompt(question, retrieved, history))
        return Answer(
            answer=reply.strip() or NOT_FOUND_ANSWER,
            citations=[SourceCitation.from_chunk(r.chunk) for r in retrieved],
        )
