"""Host view contract for overlays, notices and the loading indicator."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from mathplus.present.overlays import Overlay

OUTSIDE_CLICK = "outside-click"
KEYDOWN = "keydown"


class View(Protocol):
    """Rendering surface supplied by the host page.

    ``listen`` registers a document-level handler and returns the callable that
    detaches it. Outside-click handlers receive ``True`` when the pointer
    landed inside the overlay; key handlers receive the key name.
    """

    def mount(self, overlay: Overlay) -> None:
        """Attach the overlay to the view tree."""

    def refresh(self, overlay: Overlay) -> None:
        """Redraw an already mounted overlay."""

    def unmount(self, overlay: Overlay) -> None:
        """Remove the overlay from the view tree."""

    def listen(self, event: str, handler: Callable[[Any], None]) -> Callable[[], None]:
        """Register a document-level listener."""

    def show_notice(self, message: str) -> None:
        """Show a transient notice."""

    def show_loading(self) -> None:
        """Show the global loading indicator."""

    def hide_loading(self) -> None:
        """Remove the global loading indicator."""


class RecordingView:
    """Headless view that keeps overlays and notices in memory.

    Used where no page is attached (the HTTP surface) and to drive the
    presentation state machine directly.
    """

    def __init__(self) -> None:
        self.mounted: dict[str, Overlay] = {}
        self.notices: list[str] = []
        self.loading = False
        self.loading_count = 0
        self.refresh_count = 0
        self._listeners: dict[str, list[Callable[[Any], None]]] = {}

    def mount(self, overlay: Overlay) -> None:
        self.mounted[overlay.overlay_id] = overlay

    def refresh(self, overlay: Overlay) -> None:
        if overlay.overlay_id in self.mounted:
            self.refresh_count += 1

    def unmount(self, overlay: Overlay) -> None:
        self.mounted.pop(overlay.overlay_id, None)

    def listen(self, event: str, handler: Callable[[Any], None]) -> Callable[[], None]:
        handlers = self._listeners.setdefault(event, [])
        handlers.append(handler)

        def _detach() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return _detach

    def listener_count(self, event: str | None = None) -> int:
        if event is not None:
            return len(self._listeners.get(event, []))
        return sum(len(handlers) for handlers in self._listeners.values())

    def dispatch(self, event: str, value: Any) -> None:
        for handler in list(self._listeners.get(event, [])):
            handler(value)

    def show_notice(self, message: str) -> None:
        self.notices.append(message)

    def show_loading(self) -> None:
        self.loading = True
        self.loading_count += 1

    def hide_loading(self) -> None:
        self.loading = False
