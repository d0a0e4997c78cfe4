"""HTTP client for the credential relay (model answers and chat rooms)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import httpx

from mathplus.ai.channel import AiRequest, AiResponse
from mathplus.chat.resource import parse_messages
from mathplus.config import RelayConfig
from mathplus.settings.store import SettingsStore
from mathplus.types import ChatMessage

LOGGER = logging.getLogger(__name__)


class RelayClient:
    """Talks to the relay over HTTP; implements both channel protocols.

    The access token is read from the settings store on every call so a token
    validated later is picked up without rebuilding the client.
    """

    def __init__(
        self,
        settings: SettingsStore,
        config: RelayConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.config = config or RelayConfig()
        self._client = client or httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.request_timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def validate_token(self, token: str) -> bool:
        """``True`` only for a positive answer within the token timeout."""

        if not token:
            return False
        try:
            response = await asyncio.wait_for(
                self._client.post("/token", json={"token": token}),
                timeout=self.config.token_timeout_seconds,
            )
        except asyncio.TimeoutError:
            LOGGER.warning("Token validation timed out")
            return False
        except httpx.HTTPError:
            LOGGER.warning("Token validation failed", exc_info=True)
            return False
        return response.is_success

    async def validate_and_store_token(self, token: str) -> bool:
        token = token.strip()
        if not await self.validate_token(token):
            return False
        self.settings.set_token(token)
        return True

    async def request(self, request: AiRequest) -> AiResponse | None:
        token = self.settings.token()
        if not token:
            return AiResponse(success=False)
        data = await self._post_json(
            "/ai-one/simple",
            {"token": token, "model": request.model, "content": request.prompt},
        )
        if data is None:
            return None
        if not isinstance(data, dict) or not isinstance(data.get("content"), str):
            return AiResponse(success=False)
        return AiResponse(success=True, answer=data["content"])

    async def fetch_messages(self, room_id: str) -> list[ChatMessage] | None:
        try:
            response = await self._client.get(
                _room_path(room_id), params={"token": self.settings.token()}
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError):
            LOGGER.warning("Chat fetch failed for room %s", room_id, exc_info=True)
            return None
        return parse_messages(data)

    async def send_message(self, room_id: str, author: str, body: str) -> bool:
        try:
            response = await self._client.post(
                _room_path(room_id),
                json={"token": self.settings.token(), "username": author, "content": body},
            )
        except httpx.HTTPError:
            LOGGER.warning("Chat send failed for room %s", room_id, exc_info=True)
            return False
        return response.is_success

    async def _post_json(self, path: str, payload: dict[str, Any]) -> Any | None:
        try:
            response = await self._client.post(path, json=payload)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError):
            LOGGER.warning("Relay request to %s failed", path, exc_info=True)
            return None


def _room_path(room_id: str) -> str:
    return f"/onechat/{quote(room_id, safe='')}"
