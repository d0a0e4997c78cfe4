"""Host-side chat panel surface."""

from __future__ import annotations

from typing import Protocol

from mathplus.chat.render import RenderedMessage


class ChatView(Protocol):
    """Widgets of one chat panel as seen by the controller."""

    def render_messages(self, messages: list[RenderedMessage]) -> None:
        """Replace the message list with a freshly rendered snapshot."""

    def clear_messages(self) -> None:
        """Drop every rendered message."""

    def set_status(self, text: str, *, is_error: bool = False) -> None:
        """Update the status line."""

    def show_notice(self, message: str) -> None:
        """Show a transient notice outside the panel."""

    def set_room_input(self, value: str) -> None:
        """Set the room id field."""

    def clear_message_input(self) -> None:
        """Empty the compose box."""

    def set_controls_enabled(self, enabled: bool) -> None:
        """Enable or disable room input, compose box, attach and send."""

    def set_send_enabled(self, enabled: bool) -> None:
        """Enable or disable the send control."""

    def set_attach_enabled(self, enabled: bool) -> None:
        """Enable or disable the attach-notebook control."""

    def set_leave_enabled(self, enabled: bool) -> None:
        """Enable or disable the leave-room control."""

    def set_landing_visible(self, visible: bool) -> None:
        """Show the room picker shown while no room is joined."""

    def scroll_to(self, offset: int) -> None:
        """Scroll the message list to an absolute offset."""

    def scroll_to_bottom(self) -> None:
        """Scroll the message list to the newest message."""
