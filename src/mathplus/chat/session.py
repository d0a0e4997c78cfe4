"""Per-panel chat state and snapshot change detection."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from mathplus.types import ChatMessage


@dataclass(slots=True)
class ChatSession:
    """Mutable state owned by one open chat panel.

    Invariants: ``poll_handle`` is the only live poll task of the panel, and
    ``last_signature`` always describes the snapshot currently on screen.
    """

    room_id: str = ""
    poll_handle: asyncio.Task[None] | None = None
    last_signature: str = ""
    auto_scroll: bool = True
    initial_load_done: bool = False
    restore_room_id: str = ""
    scroll_restored: bool = False
    pending_scroll: tuple[str, int] | None = None
    scroll_save_handle: asyncio.Task[None] | None = None

    @property
    def polling(self) -> bool:
        return self.poll_handle is not None and not self.poll_handle.done()


def snapshot_signature(room_id: str, messages: list[ChatMessage]) -> str:
    """Summarize a full snapshot; equal signatures mean nothing to redraw."""

    if not messages:
        return f"empty:{room_id}"
    return "\n".join(f"{msg.author}|{msg.timestamp}|{msg.body}" for msg in messages)
