import pytest

from conftest import FakeChannel
from mathplus.ai.channel import AiResponse
from mathplus.ai.orchestrator import DirectiveOrchestrator
from mathplus.document.source import StaticDocument
from mathplus.present.overlays import OverlayKind
from mathplus.present.presenter import Presenter
from mathplus.present.view import KEYDOWN, RecordingView
from mathplus.settings.store import InMemorySettingsStore
from mathplus.types import ProcessingMode


@pytest.mark.asyncio
async def test_batch_pipeline_from_notebook_to_closed_carousel() -> None:
    view = RecordingView()
    presenter = Presenter(view)
    settings = InMemorySettingsStore({"token": "t", "chatUsername": "alice", "processingMode": "v2"})
    channel = FakeChannel(
        [
            AiResponse(success=True, answer="$$\\frac{x^3}{3}$$"),
            AiResponse(success=True, answer="Plot[Sin[x], {x, 0, 2 Pi}]"),
        ]
    )
    orchestrator = DirectiveOrchestrator(
        channel=channel,
        document=StaticDocument(["Task 1 [Math: integral of x^2]", "Task 2 [Wolfram: plot sine]"]),
        presenter=presenter,
        settings=settings,
    )

    assert settings.processing_mode() is ProcessingMode.BATCH
    await orchestrator.run_compute()

    modal = presenter.active(OverlayKind.RESULTS)
    assert modal is not None
    assert "<math" in modal.body()
    modal.next()
    assert modal.meta() == "Question 2 of 2 • Wolfram: plot sine"
    assert "Plot[Sin[x], {x, 0, 2 Pi}]" in modal.body()

    view.dispatch(KEYDOWN, "Escape")

    assert view.mounted == {}
    assert view.listener_count() == 0
    assert orchestrator.trace_store.summary()["total_requests"] == 2
