"""Direct OpenAI backend: chat completions with forced function calling."""

from __future__ import annotations

import logging

from backend.backends.base import ChatCompletionBackend
from backend.config import settings

logger = logging.getLogger(__name__)

OPENAI_API_URL = "https://api.openai.com/v1"


class OpenAIBackend(ChatCompletionBackend):
    """Sends the schema as a single function tool and forces the model to call it."""

    name: str = "OpenAI"
    base_url: str = OPENAI_API_URL

    def __init__(self, api_key: str | None = None, model: str | None = None, **kwargs) -> None:
        super().__init__(api_key or settings.openai_api_key, model=model, **kwargs)

    def _build_payload(
        self,
        messages: list[dict],
        schema: dict,
        function_name: str,
        model: str,
        temperature: float,
    ) -> dict:
        return {
            "model": model,
            "messages": messages,
            "tools": [
                {
                    "type": "function",
                    "function": {
                        "name": function_name,
                        "description": f"Generate structured data for {function_name}",
                        "parameters": schema,
                    },
                }
            ],
            "tool_choice": {"type": "function", "function": {"name": function_name}},
            "temperature": temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
            "stream": False,
        }
