"""OpenRouter backend: OpenAI-compatible API routed across upstream providers.

OpenRouter does not reliably honour forced function calling, so the schema
travels as plain-text instructions on the last user message instead of as a
tool.  It also tends to stream unless told not to in several places.
"""

from __future__ import annotations

import json
import logging

from backend.backends.base import ChatCompletionBackend
from backend.config import settings

logger = logging.getLogger(__name__)

OPENROUTER_API_URL = "https://openrouter.ai/api/v1"

# Only route to providers that support every parameter, fastest first
PROVIDER_PREFERENCES = {
    "require_parameters": True,
    "sort": "latency",
    "data_collection": "deny",
}

NO_STREAM_HEADERS = {
    "X-No-Stream": "true",
    "X-API-Control": "sync-only",
}

EMPTY_RESPONSE_TEXT = (
    "Sorry, I could not process your request through OpenRouter. "
    "Please try again or use a different provider."
)


def format_model_name(model: str) -> str:
    """OpenRouter wants vendor-qualified model names."""
    return model if "/" in model else f"openai/{model}"


def inject_schema(messages: list[dict], schema: dict) -> list[dict]:
    """Append the JSON schema to the final message when it is a user message."""
    enhanced = [dict(m) for m in messages]
    if enhanced and enhanced[-1].get("role") == "user" and isinstance(enhanced[-1].get("content"), str):
        enhanced[-1]["content"] = (
            f"{enhanced[-1]['content']}\n\n"
            "IMPORTANT: Your response MUST be a valid JSON object with the following structure:\n"
            f"{json.dumps(schema, indent=2)}"
        )
    return enhanced


class OpenRouterBackend(ChatCompletionBackend):
    """Research backend using OpenRouter's chat completions endpoint."""

    name: str = "OpenRouter"
    base_url: str = OPENROUTER_API_URL

    def __init__(self, api_key: str | None = None, model: str | None = None, **kwargs) -> None:
        super().__init__(api_key or settings.openrouter_api_key, model=model, **kwargs)

    def _headers(self) -> dict:
        return {**super()._headers(), **NO_STREAM_HEADERS}

    def _build_payload(
        self,
        messages: list[dict],
        schema: dict,
        function_name: str,
        model: str,
        temperature: float,
    ) -> dict:
        return {
            "model": format_model_name(model),
            "messages": inject_schema(messages, schema),
            "temperature": temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
            "stream": False,
            "provider": dict(PROVIDER_PREFERENCES),
        }

    def _process_response(self, completion: dict) -> dict:
        """Normalise OpenRouter quirks into an OpenAI-shaped completion."""
        choices = completion.get("choices") or []
        if not choices:
            logger.warning("OpenRouter returned no choices, substituting placeholder message")
            return {
                **completion,
                "choices": [
                    {
                        "index": 0,
                        "message": {"role": "assistant", "content": EMPTY_RESPONSE_TEXT},
                        "finish_reason": "stop",
                    }
                ],
            }

        first = choices[0]
        message = first.get("message") or {}
        if message.get("tool_calls") and first.get("finish_reason") != "tool_calls":
            first["finish_reason"] = "tool_calls"
        return completion
