"""Conversation pipeline: rewrite → retrieve → synthesize.

Usage::

    pipeline = ConversationPipeline(rewriter, retriever, synthesizer)
    answer = await pipeline.handle_turn(document_id, history, "What about page 3?")
    print(answer.answer, [c.page for c in answer.citations])

A query issued while the same document is still being ingested may see
a partially populated namespace; there is no atomic publish barrier.
"""

from __future__ import annotations

import logging

from docchat.config import settings
from docchat.conversation.graph import build_graph, create_initial_state
from docchat.conversation.rewriter import QueryRewriter
from docchat.conversation.synthesizer import AnswerSynthesizer
from docchat.errors import RetrievalUnavailable, ValidationError
from docchat.retrieval.models import Answer, ConversationTurn
from docchat.retrieval.retriever import Retriever

logger = logging.getLogger(__name__)


class ConversationPipeline:
    """Answers one turn against one document namespace.

    Parameters
    ----------
    rewriter, retriever, synthesizer:
        The three stages, composed into a LangGraph workflow.
    k:
        Number of chunks retrieved per turn.
    """

    def __init__(
        self,
        rewriter: QueryRewriter,
        retriever: Retriever,
        synthesizer: AnswerSynthesizer,
        *,
        k: int = settings.retrieval_k,
    ) -> None:
        self._retriever = retriever
        self._graph = build_graph(rewriter, retriever, synthesizer, k=k)

    async def handle_turn(
        self,
        namespace: str,
        history: list[ConversationTurn],
        question: str,
    ) -> Answer:
        """Return the grounded answer and its citations.

        Raises
        ------
        ValidationError
            The document id or the question is blank.
        RetrievalUnavailable
            *namespace* was never ingested (or ingestion never stored
            anything).  Checked before any model call.
        """
        if not namespace:
            raise ValidationError("A document_id is required.")
        if not question or not question.strip():
            raise ValidationError("A question is required.")
        if not await self._retriever.namespace_exists(namespace):
            raise RetrievalUnavailable(f"Document {namespace!r} is not available for questions.")

        logger.info("Turn on %s (history=%d)", namespace, len(history))
        result = await self._graph.ainvoke(create_initial_state(namespace, history, question))
        return result["answer"]
