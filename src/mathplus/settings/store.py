"""Persisted user settings backed by a key-value table."""

from __future__ import annotations

import json
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path

from mathplus.types import ProcessingMode

TOKEN_KEY = "token"
PROCESSING_MODE_KEY = "processingMode"
AI_MODEL_KEY = "aiModel"
CHAT_USERNAME_KEY = "chatUsername"
CHAT_ROOM_KEY = "chatRoomId"
CHAT_SCROLL_KEY = "chatScrollPositions"


class SettingsStore(ABC):
    """Typed accessors over a string key-value store.

    Values are read when a panel opens and written whenever the user changes
    them; nothing is cached here.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value or ``None``."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Insert or replace a value."""

    def token(self) -> str:
        return self.get(TOKEN_KEY) or ""

    def set_token(self, token: str) -> None:
        self.set(TOKEN_KEY, token)

    def processing_mode(self) -> ProcessingMode:
        if self.get(PROCESSING_MODE_KEY) == ProcessingMode.BATCH.value:
            return ProcessingMode.BATCH
        return ProcessingMode.PER_ANCHOR

    def set_processing_mode(self, mode: ProcessingMode) -> None:
        self.set(PROCESSING_MODE_KEY, mode.value)

    def ai_model(self, default: str) -> str:
        return self.get(AI_MODEL_KEY) or default

    def set_ai_model(self, model: str) -> None:
        self.set(AI_MODEL_KEY, model)

    def chat_username(self) -> str:
        return (self.get(CHAT_USERNAME_KEY) or "").strip()

    def set_chat_username(self, username: str) -> None:
        self.set(CHAT_USERNAME_KEY, username.strip())

    def chat_room_id(self) -> str:
        return self.get(CHAT_ROOM_KEY) or ""

    def set_chat_room_id(self, room_id: str) -> None:
        self.set(CHAT_ROOM_KEY, room_id)

    def has_credentials(self) -> bool:
        return bool(self.token()) and bool(self.chat_username())

    def scroll_positions(self) -> dict[str, int]:
        raw = self.get(CHAT_SCROLL_KEY)
        if not raw:
            return {}
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        if not isinstance(payload, dict):
            return {}
        return {
            str(room): int(offset)
            for room, offset in payload.items()
            if isinstance(offset, (int, float)) and not isinstance(offset, bool)
        }

    def scroll_position(self, room_id: str) -> int | None:
        return self.scroll_positions().get(room_id)

    def set_scroll_position(self, room_id: str, offset: int) -> None:
        positions = self.scroll_positions()
        positions[room_id] = int(offset)
        self.set(CHAT_SCROLL_KEY, json.dumps(positions, sort_keys=True))


class InMemorySettingsStore(SettingsStore):
    """Dictionary-backed store for tests and short-lived sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self.writes = 0

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value
        self.writes += 1


class SqliteSettingsStore(SettingsStore):
    """Local SQLite key-value persistence."""

    def __init__(self, path: str | Path = "mathplus.db") -> None:
        self._path = Path(path)
        _ensure_kv_table(self._path)

    def get(self, key: str) -> str | None:
        with sqlite3.connect(self._path) as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with sqlite3.connect(self._path) as conn:
            conn.execute(
                "INSERT INTO kv(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, value),
            )
            conn.commit()


def _ensure_kv_table(db_path: Path) -> None:
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
        )
        conn.commit()
