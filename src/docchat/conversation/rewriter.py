"""History-aware query rewriting."""

from __future__ import annotations

import logging

from docchat.conversation.llm import Completer
from docchat.conversation.prompts import build_rewrite_prompt
from docchat.retrieval.models import ConversationTurn

logger = logging.getLogger(__name__)


class QueryRewriter:
    """Turns (history, follow-up question) into a standalone search query.

    On the first turn there is nothing to resolve, so the question is
    returned as-is without calling the chat model.
    """

    def __init__(self, completer: Completer) -> None:
        self._completer = completer

    async def rewrite(self, history: list[ConversationTurn], question: str) -> str:
        if not history:
            return question

        response = await self._completer.complete(build_rewrite_prompt(history, question))
        query = response.strip().strip('"').strip()
        if not query:
            logger.warning("Rewriter returned an empty query; using the original question")
            return question
        logger.info("Rewrote %r -> %r", question, query)
        return query
