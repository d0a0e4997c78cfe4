import dataclasses

from mathplus.chat.render import (
    EMPTY_ROOM_TEXT,
    avatar_color,
    format_timestamp,
    initials,
    messages_html,
    render_chat_message,
    split_blocks,
)
from mathplus.chat.resource import notebook_payload, parse_messages
from mathplus.chat.session import ChatSession, snapshot_signature
from mathplus.types import ChatMessage


def _message(body: str, author: str = "bob") -> ChatMessage:
    return ChatMessage(author=author, body=body, timestamp="2024-05-01T10:00:00")


def test_self_and_other_messages() -> None:
    assert render_chat_message(_message("hi", author="alice"), "alice").is_self
    assert not render_chat_message(_message("hi"), "alice").is_self
    assert not render_chat_message(_message("hi", author=""), "").is_self


def test_code_fences_split_into_blocks() -> None:
    blocks = split_blocks("look:\n```\nPlot[x]\n```\n   \n```Sin[x]```done")

    assert [block.kind for block in blocks] == ["prose", "code", "code", "prose"]
    assert blocks[1].code == "Plot[x]"
    assert blocks[2].code == "Sin[x]"


def test_room_links_become_inline_controls() -> None:
    blocks = split_blocks("join [Chat -> algebra ] now", can_switch_rooms=False)

    inlines = blocks[0].inlines
    assert [(inline.kind, inline.value) for inline in inlines] == [
        ("text", "join "),
        ("room", "algebra"),
        ("text", " now"),
    ]
    assert inlines[1].enabled is False


def test_notebook_payload_is_labelled_code() -> None:
    rendered = render_chat_message(_message(notebook_payload("x = 1\ny = 2")), "alice")

    assert rendered.label == "Notebook"
    assert len(rendered.blocks) == 1
    assert rendered.blocks[0].kind == "code"
    assert rendered.blocks[0].code == "x = 1\ny = 2"


def test_important_marker_is_highlighted_and_removed() -> None:
    rendered = render_chat_message(_message("!important exam tomorrow"), "alice")

    assert rendered.important
    assert rendered.blocks[0].inlines[0].value == "exam tomorrow"
    assert "chat-important" in rendered.to_html()


def test_html_is_escaped() -> None:
    html = render_chat_message(_message("<b>x</b>\n```<i>```"), "alice").to_html()

    assert "<b>" not in html
    assert "&lt;i&gt;" in html


def test_avatar_helpers_are_deterministic() -> None:
    assert initials("Ada Lovelace") == "AL"
    assert initials("bob") == "BO"
    assert initials("") == ""
    assert avatar_color("bob") == avatar_color("bob")
    assert avatar_color("bob").startswith("hsl(")


def test_avatar_color_for_missing_author_uses_unsigned_seed() -> None:
    assert avatar_color("") == "hsl(61, 77%, 74%)"
    assert avatar_color("") != avatar_color("bob")


def test_timestamp_formatting_falls_back_to_raw_value() -> None:
    assert format_timestamp("2024-05-01T10:00:00") == "2024-05-01 10:00:00"
    assert format_timestamp("yesterday") == "yesterday"


def test_empty_room_placeholder() -> None:
    assert EMPTY_ROOM_TEXT in messages_html([])


def test_snapshot_signature() -> None:
    messages = [_message("a"), _message("b")]

    assert snapshot_signature("r", []) == "empty:r"
    assert snapshot_signature("r", []) != snapshot_signature("s", [])
    assert snapshot_signature("r", messages) == snapshot_signature("r", list(messages))
    assert snapshot_signature("r", messages) != snapshot_signature("r", messages[:1])


def test_chat_session_tracks_only_live_state() -> None:
    session = ChatSession(room_id="mat2")
    names = {field.name for field in dataclasses.fields(ChatSession)}

    assert "snapshot" not in names
    assert "last_signature" in names
    assert session.last_signature == ""
    assert not session.polling


def test_parse_messages_shapes() -> None:
    payload = {"messages": [{"username": "bob", "content": "hi", "timestamp": "t"}, "garbage"]}

    assert parse_messages(payload) == [ChatMessage(author="bob", body="hi", timestamp="t")]
    assert parse_messages({"data": payload}) == [ChatMessage(author="bob", body="hi", timestamp="t")]
    assert parse_messages({"error": "nope"}) is None
    assert parse_messages([]) is None
