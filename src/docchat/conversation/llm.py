"""Chat-model capability — single place to swap providers.

Supports two modes:

1. **OpenAI cloud** (default) — set ``OPENAI_API_KEY``.
2. **OpenAI-compatible endpoint** — set ``LLM_BASE_URL`` (vLLM, Ollama,
   a gateway …).  ``ChatOpenAI`` works unchanged against it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from langchain_openai import ChatOpenAI

from docchat.config import settings
from docchat.errors import ChatServiceError

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel
    from langchain_core.messages import BaseMessage

logger = logging.getLogger(__name__)


class Completer(ABC):
    """Turns a role-tagged prompt into a text reply."""

    @abstractmethod
    async def complete(self, messages: list[BaseMessage]) -> str:
        ...


def get_llm(temperature: float = settings.llm_temperature) -> ChatOpenAI:
    """Return the configured chat model.

    When ``settings.llm_base_url`` is set the client is pointed at that
    endpoint instead of the OpenAI cloud API.  A dummy API key
    (``"EMPTY"``) is used because local servers do not require one.
    """
    kwargs: dict = {
        "model": settings.llm_model_name,
        "temperature": temperature,
    }

    if settings.llm_base_url:
        logger.info("Using OpenAI-compatible endpoint: %s", settings.llm_base_url)
        kwargs["base_url"] = settings.llm_base_url
        # LangChain requires a non-empty value.
        kwargs["api_key"] = settings.openai_api_key or "EMPTY"
    else:
        kwargs["api_key"] = settings.openai_api_key

    return ChatOpenAI(**kwargs)


class LangChainCompleter(Completer):
    """Adapter over any LangChain chat model (``get_llm()`` by default)."""

    def __init__(self, llm: BaseChatModel | None = None) -> None:
        self._llm = llm if llm is not None else get_llm()

    async def complete(self, messages: list[BaseMessage]) -> str:
        try:
            response = await self._llm.ainvoke(messages)
        except Exception as exc:
            logger.exception("Chat model call failed")
            raise ChatServiceError(f"Chat service failed: {exc}") from exc
        content = response.content
        if isinstance(content, list):
            # Some providers return content blocks instead of a plain string.
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block) for block in content
            )
        return content
