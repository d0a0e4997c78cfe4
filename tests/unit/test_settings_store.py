from pathlib import Path

from mathplus.settings.store import InMemorySettingsStore, SqliteSettingsStore
from mathplus.types import ProcessingMode


def test_sqlite_store_persists_across_instances(tmp_path: Path) -> None:
    db_path = tmp_path / "settings.db"
    store = SqliteSettingsStore(db_path)

    store.set_token("abc")
    store.set_chat_username("  bob  ")
    store.set_processing_mode(ProcessingMode.BATCH)
    store.set_chat_room_id("mat2")
    store.set_token("def")

    reopened = SqliteSettingsStore(db_path)
    assert reopened.token() == "def"
    assert reopened.chat_username() == "bob"
    assert reopened.processing_mode() is ProcessingMode.BATCH
    assert reopened.chat_room_id() == "mat2"
    assert reopened.has_credentials()


def test_defaults_when_unset() -> None:
    store = InMemorySettingsStore()

    assert store.token() == ""
    assert store.processing_mode() is ProcessingMode.PER_ANCHOR
    assert store.ai_model("gpt-4.1") == "gpt-4.1"
    assert not store.has_credentials()
    assert store.scroll_positions() == {}


def test_unknown_processing_mode_falls_back_to_per_anchor() -> None:
    store = InMemorySettingsStore({"processingMode": "v9"})

    assert store.processing_mode() is ProcessingMode.PER_ANCHOR


def test_scroll_positions_are_kept_per_room() -> None:
    store = InMemorySettingsStore()

    store.set_scroll_position("mat2", 120)
    store.set_scroll_position("algebra", 40)
    store.set_scroll_position("mat2", 300)

    assert store.scroll_position("mat2") == 300
    assert store.scroll_position("algebra") == 40
    assert store.scroll_position("missing") is None


def test_corrupt_scroll_positions_are_ignored() -> None:
    assert InMemorySettingsStore({"chatScrollPositions": "not json"}).scroll_positions() == {}
    assert InMemorySettingsStore({"chatScrollPositions": "[1, 2]"}).scroll_positions() == {}
    store = InMemorySettingsStore({"chatScrollPositions": '{"a": 5, "b": "x", "c": true}'})
    assert store.scroll_positions() == {"a": 5}
