"""Directive extraction from notebook text."""

from __future__ import annotations

import re
from bisect import bisect_right

from mathplus.types import Directive, DirectiveKind, DocumentLocation

_DIRECTIVE_PATTERN = re.compile(
    r"\[\s*(?P<kind>Math|Wolfram|Explain)\s*:\s*(?P<content>.*?)\]"
)
_CELL_SEPARATOR = " "


def extract_directives(text: str) -> list[Directive]:
    """Extract directives from a single block of text.

    Locations are reported relative to ``text`` as cell ``0``.
    """

    return extract_from_cells([text])


def extract_from_cells(cells: list[str], *, anchored: bool = True) -> list[Directive]:
    """Scan the concatenated cell text once and return directives in order.

    Args:
        cells: Normalized notebook cells.
        anchored: When ``False`` every directive is bound to the generic
            location (``None``), which is what the batch carousel needs.

    Returns:
        Directives in the order they appear in the notebook. Each anchored
        directive points at the cell its opening bracket lives in, so no
        separate pairing with host elements is required.
    """

    text = _CELL_SEPARATOR.join(cells)
    cell_starts: list[int] = []
    offset = 0
    for cell in cells:
        cell_starts.append(offset)
        offset += len(cell) + len(_CELL_SEPARATOR)

    directives: list[Directive] = []
    for match in _DIRECTIVE_PATTERN.finditer(text):
        anchor = None
        if anchored:
            anchor = _locate(cell_starts, match.start(), match.end())
        directives.append(
            Directive(
                kind=DirectiveKind(match.group("kind")),
                content=match.group("content").strip(),
                anchor=anchor,
            )
        )
    return directives


def _locate(cell_starts: list[int], start: int, end: int) -> DocumentLocation:
    cell_index = max(0, bisect_right(cell_starts, start) - 1)
    cell_start = cell_starts[cell_index] if cell_starts else 0
    return DocumentLocation(
        cell_index=cell_index,
        start=start - cell_start,
        end=end - cell_start,
    )
