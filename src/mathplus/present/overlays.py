"""Popups and modals shown over the notebook."""

from __future__ import annotations

import itertools
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from mathplus.present.carousel import Carousel
from mathplus.present.view import KEYDOWN, OUTSIDE_CLICK, View
from mathplus.render.markup import render_latex
from mathplus.types import AuditFinding, DocumentLocation, ResultItem

T = TypeVar("T")

_overlay_ids = itertools.count(1)


class OverlayKind(str, Enum):
    POPUP = "popup"
    RESULTS = "results"
    AUDIT = "audit"
    ASK = "ask"


@dataclass(frozen=True, slots=True)
class Navigation:
    """Carousel controls as the view should draw them."""

    position: int
    total: int
    prev_enabled: bool
    next_enabled: bool


class Overlay:
    """Base overlay with a single teardown path.

    The close button, an outside click and ``Escape`` all end in ``close``,
    which detaches every listener registered in ``open`` and unmounts the
    overlay exactly once.
    """

    kind: OverlayKind = OverlayKind.POPUP
    closes_on_outside_click = True

    def __init__(
        self,
        view: View,
        title: str,
        *,
        anchor: DocumentLocation | None = None,
        on_closed: Callable[[Overlay], None] | None = None,
    ) -> None:
        self.overlay_id = f"{self.kind.value}-{next(_overlay_ids)}"
        self.title = title
        self.anchor = anchor
        self._view = view
        self._on_closed = on_closed
        self._detachers: list[Callable[[], None]] = []
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def body(self) -> str:
        raise NotImplementedError

    def meta(self) -> str:
        return ""

    def navigation(self) -> Navigation | None:
        return None

    def open(self) -> None:
        if self._open:
            return
        self._open = True
        self._view.mount(self)
        if self.closes_on_outside_click:
            self._detachers.append(self._view.listen(OUTSIDE_CLICK, self.handle_pointer))
        self._detachers.append(self._view.listen(KEYDOWN, self.handle_key))

    def close(self) -> None:
        if not self._open:
            return
        self._open = False
        while self._detachers:
            self._detachers.pop()()
        self._view.unmount(self)
        if self._on_closed is not None:
            self._on_closed(self)

    def handle_pointer(self, inside: bool) -> None:
        if not inside:
            self.close()

    def handle_key(self, key: str) -> None:
        if key == "Escape":
            self.close()


class AnswerPopup(Overlay):
    """Floating answer anchored next to the directive it answers."""

    kind = OverlayKind.POPUP
    closes_on_outside_click = False

    def __init__(self, view: View, response: str, *, anchor: DocumentLocation | None) -> None:
        super().__init__(view, "", anchor=anchor)
        self._markup = render_latex(response)

    def body(self) -> str:
        return self._markup


class NoticeModal(Overlay):
    """Modal with a single rendered message and no navigation."""

    def __init__(
        self,
        view: View,
        title: str,
        body_html: str,
        *,
        kind: OverlayKind,
        on_closed: Callable[[Overlay], None] | None = None,
    ) -> None:
        self.kind = kind
        super().__init__(view, title, on_closed=on_closed)
        self._body_html = body_html

    def body(self) -> str:
        return self._body_html


class CarouselModal(Overlay, Generic[T]):
    """Modal that pages through a carousel of items."""

    def __init__(
        self,
        view: View,
        title: str,
        items: Sequence[T],
        *,
        kind: OverlayKind,
        render_item: Callable[[T], str],
        describe_item: Callable[[int, int, T], str],
        on_closed: Callable[[Overlay], None] | None = None,
    ) -> None:
        self.kind = kind
        super().__init__(view, title, on_closed=on_closed)
        self.carousel: Carousel[T] = Carousel(items)
        self._render_item = render_item
        self._describe_item = describe_item

    def body(self) -> str:
        return self._render_item(self.carousel.current)

    def meta(self) -> str:
        return self._describe_item(self.carousel.index, self.carousel.total, self.carousel.current)

    def navigation(self) -> Navigation:
        return Navigation(
            position=self.carousel.index,
            total=self.carousel.total,
            prev_enabled=self.carousel.can_prev,
            next_enabled=self.carousel.can_next,
        )

    def next(self) -> None:
        if self.carousel.next() and self.is_open:
            self._view.refresh(self)

    def prev(self) -> None:
        if self.carousel.prev() and self.is_open:
            self._view.refresh(self)


def result_body(item: ResultItem) -> str:
    response = render_latex(item.response or "-")
    return (
        '<div class="result-card">'
        '<div class="result-label">Answer</div>'
        f'<div class="result-body">{response}</div>'
        "</div>"
    )


def audit_body(finding: AuditFinding) -> str:
    sections = (
        ("Error", "", finding.error_description),
        ("Current", " audit-muted", finding.current_text),
        ("How to fix", " audit-fix", finding.proposed_fix),
        ("Explanation", "", finding.explanation),
    )
    return "".join(
        '<div class="audit-section">'
        f'<div class="audit-label">{label}</div>'
        f'<div class="audit-body{extra}">{render_latex(value or "-")}</div>'
        "</div>"
        for label, extra, value in sections
    )


def notice_body(message: str) -> str:
    return f'<div class="audit-section"><div class="audit-body">{render_latex(message)}</div></div>'
