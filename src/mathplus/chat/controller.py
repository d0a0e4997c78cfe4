"""Chat panel controller: room lifecycle, polling, scroll and sending."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

from mathplus.chat.render import render_chat_messages
from mathplus.chat.resource import ChatResource, notebook_payload
from mathplus.chat.session import ChatSession, snapshot_signature
from mathplus.chat.view import ChatView
from mathplus.config import ChatConfig
from mathplus.document.source import DocumentSource
from mathplus.settings.store import SettingsStore

LOGGER = logging.getLogger(__name__)

CREDENTIALS_NOTICE = "Missing credentials. Set the token and username in the extension settings."
PROMPT_STATUS = "Enter a Chat ID to start."
ROOM_REQUIRED_STATUS = "Chat ID is required."
LEFT_STATUS = "Left the room."
SET_ROOM_FIRST_STATUS = "Set a Chat ID first."
SET_USERNAME_STATUS = "Set your username in the extension settings."
EMPTY_MESSAGE_STATUS = "The message cannot be empty."
SEND_FAILED_STATUS = "Could not send the message."
ATTACH_FAILED_STATUS = "Could not send the code."
NOTEBOOK_NOT_FOUND_NOTICE = "Notebook not found"
NOTEBOOK_EMPTY_NOTICE = "The notebook is empty"


def connected_status(room_id: str) -> str:
    return f"Connected to: {room_id}"


class ChatPanelController:
    """Drives one chat panel through idle, joining, active and leaving.

    All mutable panel state lives in ``self.session``. Exactly one poll task
    exists while a room is active; replacing it always cancels the old one.
    """

    def __init__(
        self,
        *,
        resource: ChatResource,
        view: ChatView,
        settings: SettingsStore,
        document: DocumentSource | None = None,
        config: ChatConfig | None = None,
    ) -> None:
        self.resource = resource
        self.view = view
        self.settings = settings
        self.document = document
        self.config = config or ChatConfig()
        self.session = ChatSession()
        self._username = ""
        self._load_lock = asyncio.Lock()

    async def open(self) -> bool:
        """Restore the last room and start polling; ``False`` without credentials."""

        if not self.settings.has_credentials():
            self.view.show_notice(CREDENTIALS_NOTICE)
            return False

        await self._cancel_tasks()
        room_id = self.settings.chat_room_id()
        self.session = ChatSession(room_id=room_id, restore_room_id=room_id)
        self._username = self.settings.chat_username()

        self.view.set_room_input(room_id)
        self.view.set_controls_enabled(bool(self._username))
        self.view.set_status(PROMPT_STATUS)

        if room_id and self._username:
            self.view.set_status(connected_status(room_id))
            await self.load_messages(scroll_to_bottom=True)
            self.start_polling()
        self._update_view()
        return True

    async def close(self) -> None:
        """Tear the panel down: stop polling and flush a pending scroll save."""

        await self._cancel_tasks()
        LOGGER.debug("Chat panel closed (room=%s)", self.session.room_id)

    def can_join(self, value: str) -> bool:
        room_id = value.strip()
        return bool(room_id) and room_id != self.session.room_id

    async def join(self, value: str) -> None:
        session = self.session
        room_id = value.strip()
        if not room_id:
            self.view.set_status(ROOM_REQUIRED_STATUS, is_error=True)
            return

        if room_id == session.room_id:
            session.last_signature = ""
            await self.load_messages(scroll_to_bottom=True, force=True)
            if not session.polling:
                self.start_polling()
            self._update_view()
            return

        LOGGER.info("Joining chat room %s", room_id)
        self._flush_scroll_save()
        session.scroll_restored = True
        session.room_id = room_id
        self.settings.set_chat_room_id(room_id)
        self.view.set_room_input(room_id)
        self.view.set_status(connected_status(room_id))
        session.last_signature = ""
        await self.load_messages(scroll_to_bottom=True)
        self.start_polling()
        self._update_view()
        self.view.scroll_to_bottom()

    async def join_main_room(self) -> None:
        await self.join(self.config.main_room_id)

    async def leave(self) -> None:
        LOGGER.info("Leaving chat room %s", self.session.room_id)
        self.stop_polling()
        self._flush_scroll_save()
        session = self.session
        session.room_id = ""
        session.last_signature = ""
        self.settings.set_chat_room_id("")
        self.view.set_room_input("")
        self.view.clear_messages()
        self.view.set_status(LEFT_STATUS)
        self._update_view()

    def set_auto_scroll(self, enabled: bool) -> None:
        self.session.auto_scroll = enabled

    async def load_messages(self, *, scroll_to_bottom: bool, force: bool = False) -> bool:
        """Fetch the room snapshot and redraw it if it changed.

        Returns whether the message list was re-rendered.
        """

        if not self.session.room_id:
            return False
        async with self._load_lock:
            return await self._load(scroll_to_bottom=scroll_to_bottom, force=force)

    async def poll_once(self) -> bool:
        """One poll tick; skipped while another load is in flight."""

        if self._load_lock.locked() or not self.session.room_id:
            return False
        return await self.load_messages(scroll_to_bottom=False)

    def start_polling(self) -> None:
        self.stop_polling()
        self.session.poll_handle = asyncio.create_task(self._poll_loop())
        LOGGER.debug("Polling started for room %s", self.session.room_id)

    def stop_polling(self) -> None:
        handle = self.session.poll_handle
        if handle is None:
            return
        handle.cancel()
        self.session.poll_handle = None
        LOGGER.debug("Polling stopped for room %s", self.session.room_id)

    def on_scroll(self, offset: int) -> None:
        """Record a manual scroll; only the last event in the window is saved."""

        session = self.session
        if not session.room_id:
            return
        session.pending_scroll = (session.room_id, int(offset))
        if session.scroll_save_handle is not None:
            session.scroll_save_handle.cancel()
        session.scroll_save_handle = asyncio.create_task(self._save_scroll_later())

    async def send(self, text: str) -> bool:
        message = text.strip()
        if not self._check_can_send():
            return False
        if not message:
            self.view.set_status(EMPTY_MESSAGE_STATUS, is_error=True)
            return False

        sent = await self._send_optimistic(message, self.view.set_send_enabled, SEND_FAILED_STATUS)
        if sent:
            self.view.clear_message_input()
        return sent

    async def attach_notebook(self) -> bool:
        """Send the notebook text as a structured ``notebook`` payload."""

        if not self._check_can_send():
            return False
        document = self.document
        if document is None or not document.cells():
            self.view.show_notice(NOTEBOOK_NOT_FOUND_NOTICE)
            return False
        text = document.chat_text()
        if not text:
            self.view.show_notice(NOTEBOOK_EMPTY_NOTICE)
            return False
        return await self._send_optimistic(
            notebook_payload(text), self.view.set_attach_enabled, ATTACH_FAILED_STATUS
        )

    async def _load(self, *, scroll_to_bottom: bool, force: bool) -> bool:
        session = self.session
        room_id = session.room_id
        messages = await self.resource.fetch_messages(room_id)
        if room_id != session.room_id:
            return False
        if messages is None:
            LOGGER.warning("Fetching messages for room %s failed", room_id)
            return False

        rendered = False
        signature = snapshot_signature(room_id, messages)
        if force or signature != session.last_signature:
            self.view.render_messages(
                render_chat_messages(messages, self._username, can_switch_rooms=True)
            )
            session.last_signature = signature
            rendered = True
            self._apply_scroll(scroll_to_bottom)
        session.initial_load_done = True
        return rendered

    def _apply_scroll(self, scroll_to_bottom: bool) -> None:
        session = self.session
        restoring = (
            not session.scroll_restored
            and session.restore_room_id
            and session.room_id == session.restore_room_id
        )
        if restoring:
            saved = self.settings.scroll_position(session.room_id)
            if saved is not None:
                self.view.scroll_to(saved)
            session.scroll_restored = True
        elif session.initial_load_done and (scroll_to_bottom or session.auto_scroll):
            self.view.scroll_to_bottom()

    async def _poll_loop(self) -> None:
        interval = self.config.poll_interval_seconds
        while True:
            await asyncio.sleep(interval)
            try:
                await self.poll_once()
            except Exception:
                LOGGER.exception("Chat poll tick failed for room %s", self.session.room_id)

    async def _save_scroll_later(self) -> None:
        await asyncio.sleep(self.config.scroll_save_debounce_seconds)
        self.session.scroll_save_handle = None
        self._flush_scroll_save()

    def _flush_scroll_save(self) -> None:
        pending = self.session.pending_scroll
        self.session.pending_scroll = None
        if pending is not None:
            room_id, offset = pending
            self.settings.set_scroll_position(room_id, offset)

    def _check_can_send(self) -> bool:
        if not self.session.room_id:
            self.view.set_status(SET_ROOM_FIRST_STATUS, is_error=True)
            return False
        if not self.settings.chat_username():
            self.view.set_status(SET_USERNAME_STATUS, is_error=True)
            return False
        return True

    async def _send_optimistic(
        self,
        body: str,
        set_enabled: Callable[[bool], None],
        failure_status: str,
    ) -> bool:
        room_id = self.session.room_id
        username = self.settings.chat_username()
        set_enabled(False)
        try:
            sent = await self.resource.send_message(room_id, username, body)
        finally:
            set_enabled(True)
        if not sent:
            self.view.set_status(failure_status, is_error=True)
            return False
        await self.load_messages(scroll_to_bottom=True, force=True)
        return True

    async def _cancel_tasks(self) -> None:
        session = self.session
        handles = [handle for handle in (session.poll_handle, session.scroll_save_handle) if handle]
        session.poll_handle = None
        session.scroll_save_handle = None
        for handle in handles:
            handle.cancel()
        for handle in handles:
            with contextlib.suppress(asyncio.CancelledError):
                await handle
        self._flush_scroll_save()

    def _update_view(self) -> None:
        has_room = bool(self.session.room_id)
        self.view.set_leave_enabled(has_room)
        self.view.set_landing_visible(not has_room)
