"""FastAPI entrypoint for rendering, directive, audit, chat transcript and settings endpoints."""

from __future__ import annotations

import os
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from mathplus.ai.audit import EMPTY_NOTEBOOK_NOTICE, AuditWorkflow
from mathplus.ai.channel import LangChainChannel, RequestChannel
from mathplus.ai.orchestrator import (
    AI_ERROR_NOTICE,
    CREDENTIALS_NOTICE,
    NO_DIRECTIVES_NOTICE,
    DirectiveOrchestrator,
)
from mathplus.chat.render import messages_html, render_chat_messages
from mathplus.chat.session import snapshot_signature
from mathplus.config import AiConfig, RelayConfig
from mathplus.document.extractor import extract_from_cells
from mathplus.document.source import StaticDocument
from mathplus.obs.tracing import TraceStore
from mathplus.present.overlays import audit_body, result_body
from mathplus.present.presenter import Presenter
from mathplus.present.view import RecordingView
from mathplus.relay.client import RelayClient
from mathplus.render.markup import render_latex
from mathplus.settings.store import SettingsStore, SqliteSettingsStore
from mathplus.types import ProcessingMode


def _create_channel(relay: RelayClient) -> RequestChannel:
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        return relay

    from langchain_openai import ChatOpenAI

    return LangChainChannel(lambda name: ChatOpenAI(model=name, temperature=0))


class RenderRequest(BaseModel):
    text: str


class CellsRequest(BaseModel):
    cells: list[str] = Field(default_factory=list)


class AskRequest(BaseModel):
    question: str = Field(min_length=1)
    model: str | None = None


class SettingsUpdate(BaseModel):
    processing_mode: ProcessingMode | None = None
    ai_model: str | None = None
    chat_username: str | None = None


class TokenRequest(BaseModel):
    token: str = Field(min_length=1)


def create_app(
    *,
    settings: SettingsStore | None = None,
    channel: RequestChannel | None = None,
    relay: RelayClient | None = None,
    trace_store: TraceStore | None = None,
    ai_config: AiConfig | None = None,
) -> FastAPI:
    """Build the HTTP surface; collaborators default to env-configured ones."""

    store = settings or SqliteSettingsStore(os.getenv("MATHPLUS_DB_PATH", "mathplus.db"))
    relay_client = relay or RelayClient(
        store,
        RelayConfig(base_url=os.getenv("MATHPLUS_RELAY_URL", RelayConfig().base_url)),
    )
    request_channel = channel or _create_channel(relay_client)
    traces = trace_store or TraceStore()
    config = ai_config or AiConfig(default_model=os.getenv("OPENAI_MODEL", AiConfig().default_model))

    app = FastAPI(title="Mathplus Notebook Assistant", version="0.1.0")

    def _orchestrator(cells: list[str]) -> DirectiveOrchestrator:
        return DirectiveOrchestrator(
            channel=request_channel,
            document=StaticDocument(cells),
            presenter=Presenter(RecordingView()),
            settings=store,
            trace_store=traces,
            config=config,
        )

    def _require_credentials() -> None:
        if not store.has_credentials():
            raise HTTPException(status_code=403, detail=CREDENTIALS_NOTICE)

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "channel": type(request_channel).__name__,
            "credentials_configured": store.has_credentials(),
            "processing_mode": store.processing_mode().value,
        }

    @app.post("/render")
    def render(request: RenderRequest) -> dict[str, Any]:
        return {"html": render_latex(request.text)}

    @app.post("/directives")
    def directives(request: CellsRequest) -> dict[str, Any]:
        found = extract_from_cells(StaticDocument(request.cells).cells(), anchored=True)
        return {
            "items": [
                {
                    "kind": directive.kind.value,
                    "content": directive.content,
                    "anchor": asdict(directive.anchor) if directive.anchor else None,
                }
                for directive in found
            ]
        }

    @app.post("/compute")
    async def compute(request: CellsRequest) -> dict[str, Any]:
        _require_credentials()
        orchestrator = _orchestrator(request.cells)
        found = extract_from_cells([orchestrator.document.text()], anchored=False)
        if not found:
            return {"items": [], "notice": NO_DIRECTIVES_NOTICE}
        results = await orchestrator.collect_results(found)
        return {
            "items": [
                {
                    "kind": item.kind,
                    "content": item.content,
                    "response": item.response,
                    "html": result_body(item),
                }
                for item in results
            ]
        }

    @app.post("/ask")
    async def ask(request: AskRequest) -> dict[str, Any]:
        _require_credentials()
        orchestrator = _orchestrator([])
        try:
            item = await orchestrator.ask(request.question, request.model)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        if item is None:
            raise HTTPException(status_code=400, detail="Question is empty")
        return {"question": item.content, "response": item.response, "html": result_body(item)}

    @app.post("/audit")
    async def audit(request: CellsRequest) -> dict[str, Any]:
        _require_credentials()
        orchestrator = _orchestrator(request.cells)
        text = orchestrator.document.text()
        if not text.strip():
            raise HTTPException(status_code=400, detail=EMPTY_NOTEBOOK_NOTICE)
        outcome = await AuditWorkflow(orchestrator).audit_text(text)
        if outcome is None:
            raise HTTPException(status_code=502, detail=AI_ERROR_NOTICE)
        return {
            "status": outcome.status,
            "findings": [
                {**asdict(finding), "html": audit_body(finding)} for finding in outcome.findings
            ],
        }

    @app.get("/settings")
    def read_settings() -> dict[str, Any]:
        return {
            "processing_mode": store.processing_mode().value,
            "ai_model": store.ai_model(config.default_model),
            "chat_username": store.chat_username(),
            "chat_room_id": store.chat_room_id(),
            "has_token": bool(store.token()),
        }

    @app.put("/settings")
    def update_settings(request: SettingsUpdate) -> dict[str, Any]:
        if request.ai_model is not None:
            try:
                store.set_ai_model(config.resolve_model(request.ai_model))
            except ValueError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
        if request.processing_mode is not None:
            store.set_processing_mode(request.processing_mode)
        if request.chat_username is not None:
            store.set_chat_username(request.chat_username)
        return read_settings()

    @app.post("/settings/token")
    async def store_token(request: TokenRequest) -> dict[str, Any]:
        if not await relay_client.validate_and_store_token(request.token):
            raise HTTPException(status_code=400, detail="invalid_token")
        return {"status": "success"}

    @app.get("/chat/{room_id}")
    async def chat_room(room_id: str) -> dict[str, Any]:
        _require_credentials()
        messages = await relay_client.fetch_messages(room_id)
        if messages is None:
            raise HTTPException(status_code=502, detail="chat_fetch_failed")
        rendered = render_chat_messages(messages, store.chat_username(), can_switch_rooms=False)
        return {
            "room_id": room_id,
            "signature": snapshot_signature(room_id, messages),
            "html": messages_html(rendered),
        }

    @app.get("/metrics")
    def metrics() -> dict[str, Any]:
        return traces.summary()

    @app.get("/traces")
    def list_traces(limit: int = 20) -> dict[str, Any]:
        return {"items": [asdict(record) for record in traces.list_recent(limit=limit)]}

    @app.get("/traces/{trace_id}")
    def trace_detail(trace_id: str) -> dict[str, Any]:
        try:
            record = traces.get(trace_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return asdict(record)

    return app


app = create_app()
