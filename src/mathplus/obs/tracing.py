"""Request tracing and latency accounting for model calls."""

from __future__ import annotations

import re
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

_TOKEN_PATTERN = re.compile(r"\w+|[^\w\s]", flags=re.UNICODE)


@dataclass(slots=True)
class RequestRecord:
    trace_id: str
    timestamp_utc: str
    purpose: str
    model: str
    prompt_tokens: int
    answer_tokens: int
    latency_ms: float
    success: bool


class TraceStore:
    """In-memory request log used by the orchestrator and the HTTP surface."""

    def __init__(self, *, max_records: int = 500) -> None:
        self._records: dict[str, RequestRecord] = {}
        self._max_records = max_records

    def create_record(
        self,
        *,
        purpose: str,
        model: str,
        prompt: str,
        answer: str | None,
        latency_ms: float,
    ) -> RequestRecord:
        record = RequestRecord(
            trace_id=str(uuid.uuid4()),
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            purpose=purpose,
            model=model,
            prompt_tokens=estimate_token_count(prompt),
            answer_tokens=estimate_token_count(answer or ""),
            latency_ms=latency_ms,
            success=answer is not None,
        )
        self._records[record.trace_id] = record
        while len(self._records) > self._max_records:
            oldest = next(iter(self._records))
            del self._records[oldest]
        return record

    def get(self, trace_id: str) -> RequestRecord:
        record = self._records.get(trace_id)
        if record is None:
            raise KeyError(f"Trace not found: {trace_id}")
        return record

    def list_recent(self, limit: int = 20) -> list[RequestRecord]:
        return list(self._records.values())[-limit:]

    def summary(self) -> dict[str, float | int]:
        """Aggregate request metrics for dashboard display."""
        records = list(self._records.values())
        total = len(records)
        if total == 0:
            return {
                "total_requests": 0,
                "failed_requests": 0,
                "avg_latency_ms": 0.0,
                "p95_latency_ms": 0.0,
                "total_prompt_tokens": 0,
                "total_answer_tokens": 0,
            }

        latencies = sorted(record.latency_ms for record in records)
        p95_index = max(0, int((len(latencies) * 0.95) - 1))
        return {
            "total_requests": total,
            "failed_requests": sum(1 for record in records if not record.success),
            "avg_latency_ms": sum(latencies) / total,
            "p95_latency_ms": latencies[p95_index],
            "total_prompt_tokens": sum(record.prompt_tokens for record in records),
            "total_answer_tokens": sum(record.answer_tokens for record in records),
        }


class Timer:
    """Simple context timer used around channel requests."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0


def estimate_token_count(text: str) -> int:
    return len(_TOKEN_PATTERN.findall(text))
