from __future__ import annotations

import asyncio

import pytest

from mathplus.ai.channel import AiRequest, AiResponse
from mathplus.chat.render import RenderedMessage
from mathplus.present.presenter import Presenter
from mathplus.present.view import RecordingView
from mathplus.settings.store import InMemorySettingsStore
from mathplus.types import ChatMessage


class FakeChannel:
    """Scripted channel: replies are consumed in order, ``None`` means failure."""

    def __init__(self, replies: list[AiResponse | None] | None = None, default: str = "answer") -> None:
        self.replies = list(replies or [])
        self.default = default
        self.requests: list[AiRequest] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def request(self, request: AiRequest) -> AiResponse | None:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if self.replies:
                return self.replies.pop(0)
            return AiResponse(success=True, answer=self.default)
        finally:
            self.in_flight -= 1


class FakeChatResource:
    def __init__(self) -> None:
        self.rooms: dict[str, list[ChatMessage]] = {}
        self.fetches: list[str] = []
        self.sent: list[tuple[str, str, str]] = []
        self.fail_fetch = False
        self.fail_send = False

    async def fetch_messages(self, room_id: str) -> list[ChatMessage] | None:
        self.fetches.append(room_id)
        await asyncio.sleep(0)
        if self.fail_fetch:
            return None
        return list(self.rooms.get(room_id, []))

    async def send_message(self, room_id: str, author: str, body: str) -> bool:
        self.sent.append((room_id, author, body))
        if self.fail_send:
            return False
        self.rooms.setdefault(room_id, []).append(
            ChatMessage(author=author, body=body, timestamp=f"2024-05-01T10:00:{len(self.sent):02d}Z")
        )
        return True


class FakeChatView:
    def __init__(self) -> None:
        self.renders: list[list[RenderedMessage]] = []
        self.statuses: list[tuple[str, bool]] = []
        self.notices: list[str] = []
        self.room_input = ""
        self.cleared = 0
        self.input_cleared = 0
        self.controls_enabled: bool | None = None
        self.send_states: list[bool] = []
        self.attach_states: list[bool] = []
        self.leave_enabled: bool | None = None
        self.landing_visible: bool | None = None
        self.scrolls: list[int | str] = []

    def render_messages(self, messages: list[RenderedMessage]) -> None:
        self.renders.append(messages)

    def clear_messages(self) -> None:
        self.cleared += 1

    def set_status(self, text: str, *, is_error: bool = False) -> None:
        self.statuses.append((text, is_error))

    def show_notice(self, message: str) -> None:
        self.notices.append(message)

    def set_room_input(self, value: str) -> None:
        self.room_input = value

    def clear_message_input(self) -> None:
        self.input_cleared += 1

    def set_controls_enabled(self, enabled: bool) -> None:
        self.controls_enabled = enabled

    def set_send_enabled(self, enabled: bool) -> None:
        self.send_states.append(enabled)

    def set_attach_enabled(self, enabled: bool) -> None:
        self.attach_states.append(enabled)

    def set_leave_enabled(self, enabled: bool) -> None:
        self.leave_enabled = enabled

    def set_landing_visible(self, visible: bool) -> None:
        self.landing_visible = visible

    def scroll_to(self, offset: int) -> None:
        self.scrolls.append(offset)

    def scroll_to_bottom(self) -> None:
        self.scrolls.append("bottom")


@pytest.fixture
def settings() -> InMemorySettingsStore:
    return InMemorySettingsStore({"token": "secret-token", "chatUsername": "alice"})


@pytest.fixture
def view() -> RecordingView:
    return RecordingView()


@pytest.fixture
def presenter(view: RecordingView) -> Presenter:
    return Presenter(view)
