"""Math+ notebook assistant package."""

from .config import AiConfig, ChatConfig, RelayConfig

__all__ = ["AiConfig", "ChatConfig", "RelayConfig"]
