"""Whole-notebook audit returning structured findings."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ValidationError

from mathplus.ai.orchestrator import AI_ERROR_NOTICE, DirectiveOrchestrator
from mathplus.ai.prompts import build_audit_prompt
from mathplus.present.presenter import AUDIT_TITLE, FORMAT_ERROR_TITLE
from mathplus.types import AuditFinding

LOGGER = logging.getLogger(__name__)

EMPTY_NOTEBOOK_NOTICE = "The notebook is empty"
FORMAT_ERROR_MESSAGE = "Could not read JSON from the AI answer."
NO_FINDINGS_MESSAGE = "No errors found."

_FENCE_PATTERN = re.compile(r"^```[\w-]*\s*\n(?P<body>.*?)\n?```$", flags=re.DOTALL)

AuditStatus = Literal["format_error", "no_findings", "findings"]


class _AuditPayload(BaseModel):
    errors: list[Any]


@dataclass(slots=True)
class AuditOutcome:
    status: AuditStatus
    findings: list[AuditFinding] = field(default_factory=list)


def parse_audit_response(text: str) -> AuditOutcome:
    """Classify a model answer; malformed output is an expected outcome."""

    body = text.strip()
    fenced = _FENCE_PATTERN.match(body)
    if fenced:
        body = fenced.group("body").strip()

    try:
        payload = _AuditPayload.model_validate(json.loads(body))
    except (json.JSONDecodeError, ValidationError):
        LOGGER.info("Audit answer is not the expected JSON object")
        return AuditOutcome(status="format_error")

    if not payload.errors:
        return AuditOutcome(status="no_findings")
    return AuditOutcome(
        status="findings",
        findings=[_to_finding(item) for item in payload.errors],
    )


def _to_finding(item: Any) -> AuditFinding:
    """Any array entry is a finding; bare values become the error description."""

    if not isinstance(item, dict):
        return AuditFinding(
            error_description=_as_text(item),
            current_text="",
            proposed_fix="",
            explanation="",
        )
    return AuditFinding(
        error_description=_as_text(item.get("error")),
        current_text=_as_text(item.get("current")),
        proposed_fix=_as_text(item.get("fix")),
        explanation=_as_text(item.get("explanation")),
    )


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value) if isinstance(value, (dict, list)) else str(value)


class AuditWorkflow:
    """Sends the whole notebook in one request and presents the findings."""

    def __init__(self, orchestrator: DirectiveOrchestrator) -> None:
        self.orchestrator = orchestrator

    async def audit_text(self, notebook_text: str) -> AuditOutcome | None:
        """Run the request and parse it; ``None`` means the channel failed."""

        answer = await self.orchestrator.request_answer(
            build_audit_prompt(notebook_text), purpose="audit"
        )
        if answer is None:
            return None
        return parse_audit_response(answer)

    async def run(self) -> AuditOutcome | None:
        orchestrator = self.orchestrator
        presenter = orchestrator.presenter
        if not orchestrator.ensure_credentials():
            return None

        notebook_text = orchestrator.document.text()
        if not notebook_text.strip():
            presenter.notify(EMPTY_NOTEBOOK_NOTICE)
            return None

        with presenter.loading():
            outcome = await self.audit_text(notebook_text)
            if outcome is None:
                presenter.notify(AI_ERROR_NOTICE)
                return None

            if outcome.status == "format_error":
                presenter.open_audit_notice(FORMAT_ERROR_TITLE, FORMAT_ERROR_MESSAGE)
            elif outcome.status == "no_findings":
                presenter.open_audit_notice(AUDIT_TITLE, NO_FINDINGS_MESSAGE)
            else:
                presenter.open_audit(outcome.findings)
        return outcome
