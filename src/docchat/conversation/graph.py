"""LangGraph graph definition — one conversation turn.

Graph topology::

    START → rewrite_query → retrieve → synthesize → END

Nodes close over the injected components, so the graph can be tested
without any external service by passing fakes.
"""

from __future__ import annotations

from typing import Any

from langgraph.graph import END, StateGraph

from docchat.conversation.rewriter import QueryRewriter
from docchat.conversation.state import ConversationState
from docchat.conversation.synthesizer import AnswerSynthesizer
from docchat.retrieval.models import ConversationTurn
from docchat.retrieval.retriever import Retriever


def build_graph(
    rewriter: QueryRewriter,
    retriever: Retriever,
    synthesizer: AnswerSynthesizer,
    *,
    k: int | None = None,
) -> Any:
    """Construct and return the compiled conversation graph.

    Returns
    -------
    CompiledGraph
        A compiled LangGraph workflow ready for ``.ainvoke()``.
    """

    async def rewrite_query(state: ConversationState) -> dict[str, Any]:
        query = await rewriter.rewrite(state["history"], state["question"])
        return {"standalone_query": query}

    async def retrieve(state: ConversationState) -> dict[str, Any]:
        chunks = await retriever.retrieve(state["namespace"], state["standalone_query"], k)
        return {"retrieved": chunks}

    async def synthesize(state: ConversationState) -> dict[str, Any]:
        answer = await synthesizer.synthesize(state["retrieved"], state["history"], state["question"])
        return {"answer": answer}

    workflow = StateGraph(ConversationState)

    workflow.add_node("rewrite_query", rewrite_query)
    workflow.add_node("retrieve", retrieve)
    workflow.add_node("synthesize", synthesize)

    workflow.set_entry_point("rewrite_query")
    workflow.add_edge("rewrite_query", "retrieve")
    workflow.add_edge("retrieve", "synthesize")
    workflow.add_edge("synthesize", END)

    return workflow.compile()


def create_initial_state(
    namespace: str,
    history: list[ConversationTurn],
    question: str,
) -> ConversationState:
    """Build the initial state dict for ``graph.ainvoke()``."""
    return {
        "namespace": namespace,
        "history": list(history),
        "question": question,
    }
