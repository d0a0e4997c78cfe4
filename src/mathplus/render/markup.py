"""Markdown + LaTeX rendering for model answers."""

from __future__ import annotations

import html
import logging
import re
import uuid
from dataclasses import dataclass
from typing import Protocol

from latex2mathml.converter import convert as latex_to_mathml

LOGGER = logging.getLogger(__name__)

_HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+)$")
_LIST_PATTERN = re.compile(r"^[-*]\s+(.+)$")
_BOLD_PATTERN = re.compile(r"\*\*([^*]+)\*\*")


class MathRenderer(Protocol):
    """Renders one LaTeX expression to markup; may raise on invalid input."""

    def render(self, expression: str, *, display: bool) -> str:
        """Return markup for ``expression``."""


class MathMLRenderer:
    """Default renderer producing MathML through latex2mathml."""

    def render(self, expression: str, *, display: bool) -> str:
        return latex_to_mathml(expression, display="block" if display else "inline")


@dataclass(slots=True)
class _MathSpan:
    token: str
    expression: str
    display: bool

    @property
    def source(self) -> str:
        delimiter = "$$" if self.display else "$"
        return f"{delimiter}{self.expression}{delimiter}"


_DEFAULT_RENDERER = MathMLRenderer()


def render_latex(text: str, renderer: MathRenderer | None = None) -> str:
    """Render text mixing ``$...$``/``$$...$$`` math with a Markdown subset.

    Math spans are swapped for placeholders before the Markdown pass so that
    characters such as ``*`` inside an expression are never read as Markdown.
    The function never raises: unclosed delimiters stay literal and
    expressions the renderer rejects are emitted as their original source.
    """

    math_renderer = renderer or _DEFAULT_RENDERER
    substituted, spans = _extract_math(text)
    rendered = render_markdown(substituted)

    for span in spans:
        try:
            replacement = math_renderer.render(span.expression.strip(), display=span.display)
        except Exception:
            LOGGER.debug("Math render failed for %r", span.expression, exc_info=True)
            replacement = html.escape(span.source, quote=False)
        rendered = rendered.replace(span.token, replacement)
    return rendered


def render_markdown(text: str) -> str:
    """Line-oriented Markdown: headings, bullet lists, bold and blank lines."""

    lines = text.replace("\r\n", "\n").split("\n")
    output: list[str] = []
    in_list = False

    for line in lines:
        heading = _HEADING_PATTERN.match(line)
        if heading:
            if in_list:
                output.append("</ul>")
                in_list = False
            level = len(heading.group(1))
            body = _escape(heading.group(2).strip())
            output.append(f'<div class="md-h md-h{level}">{body}</div>')
            continue

        item = _LIST_PATTERN.match(line)
        if item:
            if not in_list:
                output.append('<ul class="md-list">')
                in_list = True
            output.append(f"<li>{_escape(item.group(1).strip())}</li>")
            continue

        if in_list:
            output.append("</ul>")
            in_list = False

        if not line.strip():
            output.append('<div class="md-line md-line-empty"></div>')
        else:
            output.append(f'<div class="md-line">{_escape(line)}</div>')

    if in_list:
        output.append("</ul>")

    return _BOLD_PATTERN.sub(r"<strong>\1</strong>", "".join(output))


def _extract_math(text: str) -> tuple[str, list[_MathSpan]]:
    nonce = uuid.uuid4().hex[:12]
    spans: list[_MathSpan] = []
    parts: list[str] = []
    i = 0
    length = len(text)

    while i < length:
        if text[i] == "$":
            display = text.startswith("$$", i)
            start = i + (2 if display else 1)
            end = text.find("$$" if display else "$", start)
            if end != -1:
                token = f"@@MATH{nonce}x{len(spans)}@@"
                spans.append(_MathSpan(token=token, expression=text[start:end], display=display))
                parts.append(token)
                i = end + (2 if display else 1)
                continue
        parts.append(text[i])
        i += 1

    return "".join(parts), spans


def _escape(value: str) -> str:
    return html.escape(value, quote=False)
