"""Directive orchestration: extract, prompt, request, present."""

from __future__ import annotations

import logging

from mathplus.ai.channel import AiRequest, RequestChannel
from mathplus.ai.prompts import PromptRegistry, build_ask_prompt, default_prompt_registry
from mathplus.config import AiConfig
from mathplus.document.extractor import extract_from_cells
from mathplus.document.source import DocumentSource
from mathplus.obs.tracing import Timer, TraceStore
from mathplus.present.presenter import Presenter
from mathplus.settings.store import SettingsStore
from mathplus.types import Directive, ProcessingMode, ResultItem

LOGGER = logging.getLogger(__name__)

NO_DIRECTIVES_NOTICE = "No Math+ directives found"
AI_ERROR_NOTICE = "Error while fetching the AI answer"
CREDENTIALS_NOTICE = "Missing credentials. Set the token and username in the extension settings."
EMPTY_QUESTION_NOTICE = "Type a question."
ASK_KIND = "Ask"


class DirectiveOrchestrator:
    """Turns notebook directives into model requests and presents answers.

    Requests are issued strictly one at a time in extraction order so popups
    appear in document order and one loading indicator covers the batch.
    """

    def __init__(
        self,
        *,
        channel: RequestChannel,
        document: DocumentSource,
        presenter: Presenter,
        settings: SettingsStore,
        prompts: PromptRegistry | None = None,
        trace_store: TraceStore | None = None,
        config: AiConfig | None = None,
    ) -> None:
        self.channel = channel
        self.document = document
        self.presenter = presenter
        self.settings = settings
        self.prompts = prompts or default_prompt_registry()
        self.trace_store = trace_store or TraceStore()
        self.config = config or AiConfig()

    def ensure_credentials(self) -> bool:
        if not self.settings.has_credentials():
            self.presenter.notify(CREDENTIALS_NOTICE)
            return False
        return True

    async def request_answer(
        self,
        prompt: str,
        model: str | None = None,
        *,
        purpose: str = "directive",
    ) -> str | None:
        """Send one prompt; ``None`` on channel failure or non-success reply."""

        resolved = model or self.config.default_model
        with Timer() as timer:
            response = await self.channel.request(AiRequest(prompt=prompt, model=resolved))

        answer: str | None = None
        if response is not None and response.success and response.answer:
            answer = response.answer
        self.trace_store.create_record(
            purpose=purpose,
            model=resolved,
            prompt=prompt,
            answer=answer,
            latency_ms=timer.elapsed_ms,
        )
        if answer is None:
            LOGGER.warning("No answer for %s request (model=%s)", purpose, resolved)
        return answer

    async def run_compute(self) -> None:
        """Entry point of the directive action; mode comes from settings."""

        if not self.ensure_credentials():
            return
        if self.settings.processing_mode() is ProcessingMode.BATCH:
            await self.run_batch()
        else:
            await self.run_per_anchor()

    async def run_per_anchor(self) -> int:
        """Show one popup per answered directive; returns the popup count."""

        shown = 0
        with self.presenter.loading():
            directives = extract_from_cells(self.document.cells(), anchored=True)
            if not directives:
                self.presenter.notify(NO_DIRECTIVES_NOTICE)
                return 0

            for directive in directives:
                answer = await self.request_answer(self.prompts.build(directive))
                if answer is None:
                    self.presenter.notify(AI_ERROR_NOTICE)
                    continue
                self.presenter.show_popup(answer, directive.anchor)
                shown += 1
        return shown

    async def run_batch(self) -> list[ResultItem]:
        """Collect every answer first, then open one results carousel."""

        with self.presenter.loading():
            directives = extract_from_cells([self.document.text()], anchored=False)
            if not directives:
                self.presenter.notify(NO_DIRECTIVES_NOTICE)
                return []
            results = await self.collect_results(directives)
            self.presenter.open_results(results)
        return results

    async def collect_results(self, directives: list[Directive]) -> list[ResultItem]:
        results: list[ResultItem] = []
        for directive in directives:
            answer = await self.request_answer(self.prompts.build(directive))
            results.append(
                ResultItem(
                    kind=directive.kind.value,
                    content=directive.content,
                    response=answer if answer is not None else AI_ERROR_NOTICE,
                )
            )
        return results

    def selected_model(self) -> str:
        stored = self.settings.ai_model(self.config.default_model)
        if stored not in self.config.allowed_models:
            return self.config.default_model
        return stored

    def select_model(self, model: str) -> str:
        resolved = self.config.resolve_model(model)
        self.settings.set_ai_model(resolved)
        return resolved

    async def ask(self, question: str, model: str | None = None) -> ResultItem | None:
        """Free-form question with the math delimiter constraint."""

        if not self.ensure_credentials():
            return None
        text = question.strip()
        if not text:
            self.presenter.notify(EMPTY_QUESTION_NOTICE)
            return None

        resolved = self.config.resolve_model(model) if model else self.selected_model()
        with self.presenter.loading():
            answer = await self.request_answer(build_ask_prompt(text), resolved, purpose="ask")
        item = ResultItem(
            kind=ASK_KIND,
            content=text,
            response=answer if answer is not None else AI_ERROR_NOTICE,
        )
        self.presenter.open_answer(item)
        return item
