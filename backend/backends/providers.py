"""Backend selection by provider name."""

from __future__ import annotations

import logging

from backend.backends.base import ChatCompletionBackend
from backend.backends.openai import OpenAIBackend
from backend.backends.openrouter import OpenRouterBackend
from backend.config import settings

logger = logging.getLogger(__name__)

PROVIDERS: dict[str, type[ChatCompletionBackend]] = {
    "direct": OpenAIBackend,
    "openrouter": OpenRouterBackend,
}


def get_backend(
    provider: str | None = None,
    api_key: str | None = None,
    model: str | None = None,
) -> ChatCompletionBackend:
    """Build the backend for ``provider``; unknown names fall back to ``direct``."""
    name = provider or settings.llm_provider
    if name not in PROVIDERS:
        logger.warning("Unknown LLM provider %r, falling back to direct", name)
        name = "direct"
    return PROVIDERS[name](api_key=api_key, model=model)
