"""Conversation state — shared across all graph nodes.

The state only lives for the duration of one turn; nothing is kept
between requests.
"""

from __future__ import annotations

from typing import TypedDict

from docchat.retrieval.models import Answer, ConversationTurn, RetrievedChunk


class ConversationState(TypedDict, total=False):
    """Typed state that flows through the conversation graph.

    Attributes
    ----------
    namespace:
        Document namespace to search.
    history:
        Prior turns supplied by the caller, oldest first.
    question:
        The user's latest question, verbatim.
    standalone_query:
        Output of the ``rewrite_query`` node.
    retrieved:
        Output of the ``retrieve`` node, ordered by descending score.
    answer:
        Output of the ``synthesize`` node.
    """

    namespace: str
    history: list[ConversationTurn]
    question: str
    standalone_query: str
    retrieved: list[RetrievedChunk]
    answer: Answer
