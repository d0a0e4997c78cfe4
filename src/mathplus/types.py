"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DirectiveKind(str, Enum):
    MATH = "Math"
    WOLFRAM = "Wolfram"
    EXPLAIN = "Explain"


class ProcessingMode(str, Enum):
    """How directive answers are presented: popups (v1) or one carousel (v2)."""

    PER_ANCHOR = "v1"
    BATCH = "v2"


@dataclass(frozen=True, slots=True)
class DocumentLocation:
    """Position of a directive inside the notebook cell it starts in."""

    cell_index: int
    start: int
    end: int


@dataclass(frozen=True, slots=True)
class Directive:
    """A bracketed inline instruction found in notebook text."""

    kind: DirectiveKind
    content: str
    anchor: DocumentLocation | None = None


@dataclass(frozen=True, slots=True)
class ResultItem:
    """A model answer for one directive (or one free-form question)."""

    kind: str
    content: str
    response: str


@dataclass(frozen=True, slots=True)
class AuditFinding:
    """One problem reported by the notebook audit."""

    error_description: str
    current_text: str
    proposed_fix: str
    explanation: str


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """One message of a room snapshot."""

    author: str
    body: str
    timestamp: str
