"""Prompt templates for the conversation pipeline.

Every step that calls the chat model uses a dedicated prompt from this
module.  Keeping prompts in one place makes them easy to audit and
version.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from docchat.retrieval.models import Role

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage

    from docchat.retrieval.models import ConversationTurn, RetrievedChunk

# Fixed reply when the context does not hold the answer.
NOT_FOUND_ANSWER = "I cannot find the information in the document."

# ── 1. Query rewriting ────────────────────────────────────────────────

REWRITE_SYSTEM = """\
You rewrite follow-up questions for a document search engine.

Given the conversation so far and the user's latest question, produce a
single standalone search query that can be understood without the
conversation.  Resolve every pronoun and vague reference ("it", "that",
"the previous point", "page 3") using the conversation, and keep the
user's language.

Respond with **only** the query — no quotes, no explanation.
"""


def build_rewrite_prompt(history: list[ConversationTurn], question: str) -> list[BaseMessage]:
    """Build the prompt for :class:`~docchat.conversation.rewriter.QueryRewriter`."""
    return [
        SystemMessage(content=REWRITE_SYSTEM),
        *history_to_messages(history),
        HumanMessage(content=f"Follow-up question: {question}\n\nStandalone search query:"),
    ]


# ── 2. Grounded answer ────────────────────────────────────────────────

ANSWER_SYSTEM = f"""\
You are an AI assistant specialised in analysing documents and helping the user.
You can answer questions such as the number of pages in the document, a summary
of the document, or any other relevant question about its content.

Rules:
1. If the user greets you (for example "hello", "hi", "bonjour"), reply politely
   with a suitable greeting, even if no context is provided.
2. For any other question, answer only from the context below and the previous
   messages of this conversation.
3. If the requested information is not present in that context, reply exactly:
   "{NOT_FOUND_ANSWER}"
4. Always be clear, concise and professional.
"""


def build_answer_prompt(
    question: str,
    chunks: list[RetrievedChunk],
    history: list[ConversationTurn],
) -> list[BaseMessage]:
    """Build the prompt for :class:`~docchat.conversation.synthesizer.AnswerSynthesizer`.

    Parameters
    ----------
    question:
        The user's latest question, verbatim.
    chunks:
        Retrieved context, already in retrieval order.
    history:
        Prior turns, replayed as role-tagged messages.
    """
    context = format_context(chunks) or "(no context)"
    return [
        SystemMessage(content=f"{ANSWER_SYSTEM}\nContext:\n{context}"),
        *history_to_messages(history),
        HumanMessage(content=question),
    ]


# ── Helpers ────────────────────────────────────────────────────────────


def history_to_messages(history: list[ConversationTurn]) -> list[BaseMessage]:
    """Map caller-supplied turns onto LangChain messages."""
    return [
        HumanMessage(content=turn.text) if turn.role == Role.USER else AIMessage(content=turn.text)
        for turn in history
    ]


def format_context(chunks: list[RetrievedChunk]) -> str:
    """Numbered listing of chunk texts with their page when known."""
    parts: list[str] = []
    for i, retrieved in enumerate(chunks, 1):
        page = retrieved.chunk.source_page
        header = f"[{i}] (page {page})" if page is not None else f"[{i}]"
        parts.append(f"{header}\n{retrieved.chunk.text}")
    return "\n\n".join(parts)


_GREETING_RE = re.compile(
    r"^(?:"
    r"hello|hi|hey|hiya|howdy|greetings|yo"
    r"|good (?:morning|afternoon|evening|day)"
    r"|how are you(?: doing)?"
    r"|thanks?(?: you)?(?: (?:so|very) much)?|thx|cheers"
    r"|bonjour|bonsoir|salut|coucou|merci(?: beaucoup)?"
    r"|hola|hallo|ciao"
    r")(?: (?:there|everyone|all|friend|bot|assistant))?$"
)


def is_greeting(text: str) -> bool:
    """Return ``True`` when *text* is only a greeting or social nicety."""
    normalized = re.sub(r"[^\w\s]", " ", text.lower())
    normalized = " ".join(normalized.split())
    return bool(_GREETING_RE.match(normalized))
