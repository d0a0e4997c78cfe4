"""Remote room resource contract and wire payloads."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mathplus.types import ChatMessage

LOGGER = logging.getLogger(__name__)


class ChatResource(Protocol):
    """Room-keyed message store; failures are reported, never raised."""

    async def fetch_messages(self, room_id: str) -> list[ChatMessage] | None:
        """Return the full ordered snapshot, or ``None`` if the fetch failed."""

    async def send_message(self, room_id: str, author: str, body: str) -> bool:
        """Append a message; ``True`` on acknowledgement."""


class MessagePayload(BaseModel):
    """One message as served by the relay (``username``/``content`` names)."""

    model_config = ConfigDict(populate_by_name=True)

    author: str = Field(default="", alias="username")
    body: str = Field(default="", alias="content")
    timestamp: str = ""

    def to_message(self) -> ChatMessage:
        return ChatMessage(author=self.author, body=self.body, timestamp=self.timestamp)


class NotebookPayload(BaseModel):
    """Structured message body carrying notebook text."""

    type: str
    content: str


def parse_messages(data: Any) -> list[ChatMessage] | None:
    """Parse ``{"messages": [...]}`` (optionally under ``data``).

    Returns ``None`` when the payload does not have that shape.
    """

    if not isinstance(data, dict):
        return None
    if isinstance(data.get("data"), dict):
        data = data["data"]
    raw = data.get("messages")
    if not isinstance(raw, list):
        return None
    messages: list[ChatMessage] = []
    for item in raw:
        try:
            messages.append(MessagePayload.model_validate(item).to_message())
        except ValidationError:
            LOGGER.debug("Skipping malformed chat message: %r", item)
            continue
    return messages


def parse_notebook_payload(body: str) -> NotebookPayload | None:
    try:
        return NotebookPayload.model_validate_json(body)
    except ValidationError:
        return None


def notebook_payload(text: str) -> str:
    return NotebookPayload(type="notebook", content=text).model_dump_json()
