"""Single entry point the workflows use to show things to the user."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from mathplus.present.overlays import (
    AnswerPopup,
    CarouselModal,
    NoticeModal,
    Overlay,
    OverlayKind,
    audit_body,
    notice_body,
    result_body,
)
from mathplus.present.view import View
from mathplus.types import AuditFinding, DocumentLocation, ResultItem

LOGGER = logging.getLogger(__name__)

RESULTS_TITLE = "Wolfram"
AUDIT_TITLE = "Wolfram - Audit"
FORMAT_ERROR_TITLE = "Wolfram - Format error"
ASK_TITLE = "Ask AI"


class Presenter:
    """Owns open modals; at most one modal per ``OverlayKind`` is open."""

    def __init__(self, view: View) -> None:
        self.view = view
        self._modals: dict[OverlayKind, Overlay] = {}

    def active(self, kind: OverlayKind) -> Overlay | None:
        return self._modals.get(kind)

    def notify(self, message: str) -> None:
        self.view.show_notice(message)

    @contextmanager
    def loading(self) -> Iterator[None]:
        """Show the loading indicator for the duration of the block."""
        self.view.show_loading()
        try:
            yield
        finally:
            self.view.hide_loading()

    def show_popup(self, response: str, anchor: DocumentLocation | None) -> AnswerPopup:
        popup = AnswerPopup(self.view, response, anchor=anchor)
        popup.open()
        return popup

    def open_results(self, items: list[ResultItem]) -> CarouselModal[ResultItem]:
        modal: CarouselModal[ResultItem] = CarouselModal(
            self.view,
            RESULTS_TITLE,
            items,
            kind=OverlayKind.RESULTS,
            render_item=result_body,
            describe_item=lambda index, total, item: (
                f"Question {index + 1} of {total} • {item.kind}: {item.content}"
            ),
            on_closed=self._forget,
        )
        self._replace(modal)
        return modal

    def open_audit(self, findings: list[AuditFinding]) -> CarouselModal[AuditFinding]:
        modal: CarouselModal[AuditFinding] = CarouselModal(
            self.view,
            AUDIT_TITLE,
            findings,
            kind=OverlayKind.AUDIT,
            render_item=audit_body,
            describe_item=lambda index, total, _item: f"Error {index + 1} of {total}",
            on_closed=self._forget,
        )
        self._replace(modal)
        return modal

    def open_audit_notice(self, title: str, message: str) -> NoticeModal:
        modal = NoticeModal(
            self.view,
            title,
            notice_body(message),
            kind=OverlayKind.AUDIT,
            on_closed=self._forget,
        )
        self._replace(modal)
        return modal

    def open_answer(self, item: ResultItem) -> NoticeModal:
        modal = NoticeModal(
            self.view,
            ASK_TITLE,
            result_body(item),
            kind=OverlayKind.ASK,
            on_closed=self._forget,
        )
        self._replace(modal)
        return modal

    def close_all(self) -> None:
        for modal in list(self._modals.values()):
            modal.close()

    def _replace(self, modal: Overlay) -> None:
        existing = self._modals.get(modal.kind)
        if existing is not None:
            LOGGER.debug("Replacing open %s modal %s", modal.kind.value, existing.overlay_id)
            existing.close()
        self._modals[modal.kind] = modal
        modal.open()

    def _forget(self, modal: Overlay) -> None:
        if self._modals.get(modal.kind) is modal:
            del self._modals[modal.kind]
