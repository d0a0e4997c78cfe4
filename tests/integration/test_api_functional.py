from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import FakeChannel
from mathplus.ai.channel import AiResponse
from mathplus.config import RelayConfig
from mathplus.relay.client import RelayClient
from mathplus.settings.store import InMemorySettingsStore

AUDIT_ANSWER = '{"errors": [{"error": "Typo", "current": "sin[x]", "fix": "Sin[x]", "explanation": "Heads are capitalised"}]}'


ROOMS = {
    "/api/onechat/mat2": [
        {"username": "alice", "content": "see [Chat -> algebra]", "timestamp": "2024-05-01T10:00:00"},
        {"username": "bob", "content": "<b>hi</b>", "timestamp": "2024-05-01T10:00:05"},
    ],
    "/api/onechat/empty": [],
}


def _relay_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/api/token":
        return httpx.Response(200 if b'"good"' in request.content else 401, json={})
    if request.url.path in ROOMS:
        return httpx.Response(200, json={"messages": ROOMS[request.url.path]})
    return httpx.Response(500, json={})


@pytest.fixture
def client_factory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    # Import after environment setup so the module-level app stays out of the cwd.
    monkeypatch.setenv("MATHPLUS_DB_PATH", str(tmp_path / "mathplus.db"))
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    from mathplus.api.main import create_app

    def _build(settings: InMemorySettingsStore, channel: FakeChannel) -> TestClient:
        relay = RelayClient(
            settings,
            RelayConfig(base_url="https://relay.test/api"),
            client=httpx.AsyncClient(
                base_url="https://relay.test/api", transport=httpx.MockTransport(_relay_handler)
            ),
        )
        return TestClient(create_app(settings=settings, channel=channel, relay=relay))

    return _build


def test_api_render_directives_compute_metrics(client_factory) -> None:
    settings = InMemorySettingsStore({"token": "t", "chatUsername": "alice"})
    channel = FakeChannel([AiResponse(success=True, answer="$x^2$"), None])
    client = client_factory(settings, channel)

    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["credentials_configured"] is True

    render_resp = client.post("/render", json={"text": "# Title\nvalue $x$"})
    assert render_resp.status_code == 200
    assert "md-h1" in render_resp.json()["html"]

    cells = ["[Math: square of x]", "text [Explain: limits]"]
    directives_resp = client.post("/directives", json={"cells": cells})
    assert directives_resp.status_code == 200
    items = directives_resp.json()["items"]
    assert [item["kind"] for item in items] == ["Math", "Explain"]
    assert items[1]["anchor"] == {"cell_index": 1, "start": 5, "end": 22}

    compute_resp = client.post("/compute", json={"cells": cells})
    assert compute_resp.status_code == 200
    results = compute_resp.json()["items"]
    assert results[0]["response"] == "$x^2$"
    assert results[1]["response"] == "Error while fetching the AI answer"

    metrics = client.get("/metrics").json()
    assert metrics["total_requests"] == 2
    assert metrics["failed_requests"] == 1

    traces = client.get("/traces").json()["items"]
    assert len(traces) == 2
    assert client.get(f"/traces/{traces[0]['trace_id']}").status_code == 200
    assert client.get("/traces/missing").status_code == 404


def test_api_requires_credentials(client_factory) -> None:
    client = client_factory(InMemorySettingsStore(), FakeChannel())

    assert client.post("/compute", json={"cells": ["[Math: a]"]}).status_code == 403
    assert client.post("/ask", json={"question": "why?"}).status_code == 403
    assert client.post("/audit", json={"cells": ["x"]}).status_code == 403


def test_api_compute_without_directives(client_factory) -> None:
    settings = InMemorySettingsStore({"token": "t", "chatUsername": "alice"})
    channel = FakeChannel()
    client = client_factory(settings, channel)

    payload = client.post("/compute", json={"cells": ["plain text"]}).json()

    assert payload["items"] == []
    assert payload["notice"] == "No Math+ directives found"
    assert channel.requests == []


def test_api_ask_and_audit(client_factory) -> None:
    settings = InMemorySettingsStore({"token": "t", "chatUsername": "alice"})
    channel = FakeChannel(
        [
            AiResponse(success=True, answer="**Because** $1+1=2$"),
            AiResponse(success=True, answer=AUDIT_ANSWER),
            None,
        ]
    )
    client = client_factory(settings, channel)

    ask_resp = client.post("/ask", json={"question": "Why?", "model": "gpt-4o"})
    assert ask_resp.status_code == 200
    assert "<strong>Because</strong>" in ask_resp.json()["html"]
    assert channel.requests[0].model == "gpt-4o"

    assert client.post("/ask", json={"question": "Why?", "model": "nope"}).status_code == 400

    audit_resp = client.post("/audit", json={"cells": ["sin[x]"]})
    assert audit_resp.status_code == 200
    body = audit_resp.json()
    assert body["status"] == "findings"
    assert body["findings"][0]["proposed_fix"] == "Sin[x]"

    assert client.post("/audit", json={"cells": ["sin[x]"]}).status_code == 502
    assert client.post("/audit", json={"cells": ["   "]}).status_code == 400


def test_api_settings_and_token(client_factory) -> None:
    settings = InMemorySettingsStore()
    client = client_factory(settings, FakeChannel())

    updated = client.put(
        "/settings",
        json={"processing_mode": "v2", "ai_model": "gpt-4o-mini", "chat_username": " bob "},
    )
    assert updated.status_code == 200
    assert updated.json()["processing_mode"] == "v2"
    assert updated.json()["chat_username"] == "bob"
    assert client.put("/settings", json={"ai_model": "gpt-2"}).status_code == 400

    assert client.post("/settings/token", json={"token": "bad"}).status_code == 400
    assert client.post("/settings/token", json={"token": "good"}).json() == {"status": "success"}
    assert client.get("/settings").json()["has_token"] is True
    assert settings.has_credentials()


def test_api_chat_transcript(client_factory) -> None:
    settings = InMemorySettingsStore({"token": "t", "chatUsername": "alice"})
    client = client_factory(settings, FakeChannel())

    room = client.get("/chat/mat2")
    assert room.status_code == 200
    payload = room.json()
    assert payload["room_id"] == "mat2"
    assert payload["signature"].startswith("alice|2024-05-01T10:00:00|")
    assert payload["html"].count('class="chat-message ') == 2
    assert 'class="chat-message chat-self"' in payload["html"]
    assert 'data-room="algebra" disabled' in payload["html"]
    assert "&lt;b&gt;hi&lt;/b&gt;" in payload["html"]

    empty = client.get("/chat/empty").json()
    assert empty["signature"] == "empty:empty"
    assert "No messages." in empty["html"]

    assert client.get("/chat/broken").status_code == 502
    assert client_factory(InMemorySettingsStore(), FakeChannel()).get("/chat/mat2").status_code == 403
