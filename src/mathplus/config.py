"""Configuration models for the notebook assistant."""

from __future__ import annotations

from pydantic import BaseModel, Field

ALLOWED_AI_MODELS: tuple[str, ...] = (
    "gpt-4.1",
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-3.5-turbo-0125",
    "gpt-5-mini",
)


class AiConfig(BaseModel):
    """Configures model selection for directive and ask requests."""

    default_model: str = Field(default="gpt-4.1", min_length=1)
    allowed_models: list[str] = Field(default_factory=lambda: list(ALLOWED_AI_MODELS))

    def resolve_model(self, model: str | None) -> str:
        if not model:
            return self.default_model
        if model not in self.allowed_models:
            raise ValueError(f"Unsupported model: {model}")
        return model


class ChatConfig(BaseModel):
    """Configures chat polling and scroll persistence."""

    poll_interval_seconds: float = Field(default=0.5, gt=0.0)
    scroll_save_debounce_seconds: float = Field(default=0.2, ge=0.0)
    main_room_id: str = Field(default="mat2", min_length=1)


class RelayConfig(BaseModel):
    """Configures the HTTP relay that holds credentials and talks to the model."""

    base_url: str = Field(default="https://ai-one.p4tkry.pl/api", min_length=1)
    token_timeout_seconds: float = Field(default=5.0, gt=0.0)
    request_timeout_seconds: float = Field(default=120.0, gt=0.0)
