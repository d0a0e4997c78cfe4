"""Chat snapshot rendering: self/other, code fences, room links, payloads."""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from mathplus.chat.resource import parse_notebook_payload
from mathplus.types import ChatMessage

_FENCE_PATTERN = re.compile(r"```([\s\S]*?)```")
_ROOM_LINK_PATTERN = re.compile(r"\[\s*Chat\s*->\s*([^\]]+)\s*\]")
_IMPORTANT_MARKER = "!important"
NOTEBOOK_LABEL = "Notebook"
EMPTY_ROOM_TEXT = "No messages."


@dataclass(frozen=True, slots=True)
class Inline:
    kind: Literal["text", "room"]
    value: str
    enabled: bool = True


@dataclass(frozen=True, slots=True)
class Block:
    """Either a prose block made of inlines or a copyable code block."""

    kind: Literal["prose", "code"]
    code: str = ""
    inlines: tuple[Inline, ...] = ()


@dataclass(frozen=True, slots=True)
class RenderedMessage:
    author: str
    meta: str
    initials: str
    avatar_color: str
    is_self: bool
    important: bool
    label: str
    blocks: tuple[Block, ...]

    def to_html(self) -> str:
        classes = ["chat-message", "chat-self" if self.is_self else "chat-other"]
        if self.important:
            classes.append("chat-important")
        parts = [
            f'<div class="{" ".join(classes)}">',
            f'<div class="chat-avatar" style="background: {self.avatar_color}">{_escape(self.initials)}</div>',
            '<div class="chat-content">',
            f'<div class="chat-meta">{_escape(self.meta)}</div>',
            '<div class="chat-body">',
        ]
        if self.label:
            parts.append(f'<div class="chat-label">{_escape(self.label)}</div>')
        parts.extend(_block_html(block) for block in self.blocks)
        parts.append("</div></div></div>")
        return "".join(parts)


def render_chat_messages(
    messages: list[ChatMessage],
    current_username: str,
    *,
    can_switch_rooms: bool = True,
) -> list[RenderedMessage]:
    return [
        render_chat_message(message, current_username, can_switch_rooms=can_switch_rooms)
        for message in messages
    ]


def render_chat_message(
    message: ChatMessage,
    current_username: str,
    *,
    can_switch_rooms: bool = True,
) -> RenderedMessage:
    is_self = bool(current_username) and message.author == current_username
    important = False
    label = ""

    payload = parse_notebook_payload(message.body)
    if payload is not None and payload.type == "notebook":
        label = NOTEBOOK_LABEL
        blocks: tuple[Block, ...] = (Block(kind="code", code=payload.content),)
    else:
        text = message.body
        if _IMPORTANT_MARKER in text:
            important = True
            text = text.replace(_IMPORTANT_MARKER, "").strip()
        blocks = tuple(split_blocks(text, can_switch_rooms=can_switch_rooms))

    return RenderedMessage(
        author=message.author,
        meta=f"{message.author} \u2022 {format_timestamp(message.timestamp)}",
        initials=initials(message.author or "?"),
        avatar_color=avatar_color(message.author or ""),
        is_self=is_self,
        important=important,
        label=label,
        blocks=blocks,
    )


def split_blocks(text: str, *, can_switch_rooms: bool = True) -> list[Block]:
    """Split on triple-backtick fences; blank prose between fences is dropped."""

    blocks: list[Block] = []
    last = 0
    for match in _FENCE_PATTERN.finditer(text):
        _append_prose(blocks, text[last : match.start()], can_switch_rooms)
        blocks.append(Block(kind="code", code=match.group(1).strip()))
        last = match.end()
    _append_prose(blocks, text[last:], can_switch_rooms)
    return blocks


def split_room_links(text: str, *, enabled: bool = True) -> list[Inline]:
    inlines: list[Inline] = []
    last = 0
    for match in _ROOM_LINK_PATTERN.finditer(text):
        if match.start() > last:
            inlines.append(Inline(kind="text", value=text[last : match.start()]))
        inlines.append(Inline(kind="room", value=match.group(1).strip(), enabled=enabled))
        last = match.end()
    if last < len(text):
        inlines.append(Inline(kind="text", value=text[last:]))
    return inlines


def format_timestamp(value: str) -> str:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.strftime("%Y-%m-%d %H:%M:%S")


def initials(username: str) -> str:
    parts = username.split()
    if len(parts) >= 2:
        return (parts[0][0] + parts[1][0]).upper()
    word = parts[0] if parts else ""
    return word[:2].upper()


def avatar_color(username: str) -> str:
    """Deterministic pastel colour from a 32-bit FNV-1a hash of the name."""

    value = 2166136261
    for char in username:
        value ^= ord(char)
        value = (value * 16777619) & 0xFFFFFFFF
    signed = value - 0x100000000 if value >= 0x80000000 else value
    # Mixed hashes are signed 32-bit; the bare seed of an empty name stays unsigned.
    hue = abs(signed if username else value) % 360
    saturation = 55 + abs(signed >> 8) % 25
    lightness = 70 + abs(signed >> 16) % 16
    return f"hsl({hue}, {saturation}%, {lightness}%)"


def messages_html(rendered: list[RenderedMessage]) -> str:
    if not rendered:
        return f'<div class="chat-empty">{EMPTY_ROOM_TEXT}</div>'
    return "".join(message.to_html() for message in rendered)


def _append_prose(blocks: list[Block], text: str, can_switch_rooms: bool) -> None:
    if not text.strip():
        return
    blocks.append(Block(kind="prose", inlines=tuple(split_room_links(text, enabled=can_switch_rooms))))


def _block_html(block: Block) -> str:
    if block.kind == "code":
        code = html.escape(block.code)
        return (
            '<div class="chat-code">'
            f"<pre>{code}</pre>"
            f'<button type="button" class="chat-copy" data-copy="{code}">Copy</button>'
            "</div>"
        )
    inner: list[str] = []
    for inline in block.inlines:
        if inline.kind == "room":
            room = html.escape(inline.value)
            disabled = "" if inline.enabled else " disabled"
            inner.append(
                f'<button type="button" class="chat-room-link" data-room="{room}"{disabled}>Chat \u2192 {room}</button>'
            )
        else:
            inner.append(f"<span>{_escape(inline.value)}</span>")
    return f'<div class="chat-text">{"".join(inner)}</div>'


def _escape(value: str) -> str:
    return html.escape(value, quote=False)
