"""Read-only access to notebook cell text."""

from __future__ import annotations

from abc import ABC, abstractmethod

_CHARACTER_REPLACEMENTS = (
    ("\uf522", "->"),
    ("\u00a0", " "),
    ("\u2264", "<="),
    ("\u2265", ">="),
)
_ZERO_WIDTH_SPACE = "\u200b"


class DocumentSource(ABC):
    """Base interface for the host notebook the assistant reads from."""

    @abstractmethod
    def cells(self) -> list[str]:
        """Return normalized cell texts in document order."""

    def text(self) -> str:
        """Concatenated notebook text as sent to the model."""
        return " ".join(self.cells())

    def chat_text(self) -> str:
        """Notebook text attached to chat messages, one cell per line."""
        return "\n".join(self.cells()).strip()


class StaticDocument(DocumentSource):
    """Document built from raw cell strings captured from the host page."""

    def __init__(self, raw_cells: list[str] | None = None) -> None:
        self._cells: list[str] = []
        for raw in raw_cells or []:
            self._cells.extend(normalize_cell_text(raw))

    def cells(self) -> list[str]:
        return list(self._cells)


def normalize_cell_text(raw: str) -> list[str]:
    """Map editor glyphs to plain text and split on zero-width spaces."""

    text = raw
    for glyph, replacement in _CHARACTER_REPLACEMENTS:
        text = text.replace(glyph, replacement)
    return text.strip().split(_ZERO_WIDTH_SPACE)
