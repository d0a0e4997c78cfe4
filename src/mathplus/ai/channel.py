"""Request channel contract between the orchestrator and a model backend."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol

from pydantic import BaseModel, Field

LOGGER = logging.getLogger(__name__)


class AiRequest(BaseModel):
    prompt: str = Field(min_length=1)
    model: str = Field(min_length=1)


class AiResponse(BaseModel):
    success: bool
    answer: str | None = None


class RequestChannel(Protocol):
    """Asynchronous request/response channel to a model backend.

    Implementations report transport problems by returning ``None`` and
    application-level refusals with ``success=False``; they never raise.
    """

    async def request(self, request: AiRequest) -> AiResponse | None:
        """Send one prompt and await exactly one reply."""


class LangChainChannel:
    """Channel that talks to a chat model directly through LangChain.

    ``model_factory`` builds a chat model for a model id, for example
    ``lambda name: ChatOpenAI(model=name, temperature=0)``. Models are cached
    per id.
    """

    def __init__(self, model_factory: Callable[[str], Any]) -> None:
        self._model_factory = model_factory
        self._models: dict[str, Any] = {}

    async def request(self, request: AiRequest) -> AiResponse | None:
        try:
            llm = self._models.get(request.model)
            if llm is None:
                llm = self._model_factory(request.model)
                self._models[request.model] = llm
            message = await llm.ainvoke(request.prompt)
        except Exception:
            LOGGER.warning("Model request failed (model=%s)", request.model, exc_info=True)
            return None
        answer = _message_text(message)
        return AiResponse(success=bool(answer), answer=answer or None)


def _message_text(message: Any) -> str:
    content = getattr(message, "content", message)
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                parts.append(str(item["text"]))
            else:
                parts.append(str(item))
        return " ".join(parts).strip()
    return str(content).strip()
