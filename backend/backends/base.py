"""Shared plumbing for OpenAI-compatible chat-completion backends."""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx

from backend.config import settings

logger = logging.getLogger(__name__)

# USD per token
DEFAULT_PRICING = {"input": 0.00001, "output": 0.00003}
MODEL_PRICING: dict[str, dict[str, float]] = {
    "chatgpt-4o-latest": {"input": 0.000005, "output": 0.000015},
    "gpt-4o": {"input": 0.0000025, "output": 0.00001},
    "gpt-4o-mini": {"input": 0.00000015, "output": 0.0000006},
}


class LLMResponseError(RuntimeError):
    """The provider answered, but not with usable JSON."""


@dataclass
class ApiCost:
    total_tokens: int = 0
    cost_usd: float = 0.0

    def to_dict(self) -> dict:
        return {"totalTokens": self.total_tokens, "costUSD": self.cost_usd}


@dataclass
class CompletionResult:
    """Parsed JSON payload of a completion plus what it cost."""

    data: Any
    cost: ApiCost = field(default_factory=ApiCost)


@runtime_checkable
class LLMBackend(Protocol):
    """Interface that all LLM transport backends must implement."""

    name: str

    async def complete_json(
        self,
        messages: list[dict],
        schema: dict,
        function_name: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
        debug: bool = False,
    ) -> CompletionResult:
        """Ask for a JSON object matching ``schema`` and return it parsed."""
        ...


def compute_cost(model: str, usage: dict) -> ApiCost:
    pricing = MODEL_PRICING.get(model, DEFAULT_PRICING)
    prompt_tokens = usage.get("prompt_tokens") or 0
    completion_tokens = usage.get("completion_tokens") or 0
    return ApiCost(
        total_tokens=usage.get("total_tokens") or 0,
        cost_usd=prompt_tokens * pricing["input"] + completion_tokens * pricing["output"],
    )


def parse_json_text(text: object) -> Any:
    """Parse JSON out of an LLM text field, tolerating code fences and prose.

    Returns None when nothing parseable is found.
    """
    if not isinstance(text, str) or not text.strip():
        return None

    candidate = text.strip()
    if candidate.startswith("```"):
        candidate = candidate.split("\n", 1)[1] if "\n" in candidate else ""
        candidate = candidate.rsplit("```", 1)[0]

    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        match = re.search(r"\{.*\}", candidate, re.DOTALL)
        if match:
            try:
                return json.loads(match.group(0))
            except json.JSONDecodeError:
                pass
    return None


def extract_json(completion: dict) -> Any:
    """Pull the JSON payload out of a chat completion.

    Looks at function-tool arguments first, then the legacy ``function_call``
    arguments, then the message content.
    """
    choices = completion.get("choices") or []
    message = choices[0].get("message") if choices else None
    if not message:
        raise LLMResponseError("No message found in LLM response")

    candidates = []
    for call in message.get("tool_calls") or []:
        if call.get("type") == "function":
            candidates.append((call.get("function") or {}).get("arguments"))
            break
    candidates.append((message.get("function_call") or {}).get("arguments"))
    candidates.append(message.get("content"))

    for candidate in candidates:
        parsed = parse_json_text(candidate)
        if parsed is not None:
            return parsed
    raise LLMResponseError("Could not extract valid JSON content from LLM response")


def _preview(messages: list[dict], limit: int = 100) -> list[dict]:
    preview = []
    for m in messages:
        content = m.get("content")
        if isinstance(content, str) and len(content) > limit:
            content = content[:limit] + "..."
        preview.append({"role": m.get("role"), "content": content})
    return preview


class ChatCompletionBackend(ABC):
    """Base for providers speaking the OpenAI chat-completions protocol.

    Subclasses set ``name``/``base_url`` and shape the request body.
    """

    name: str = "OpenAI-compatible"
    base_url: str = ""

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        timeout: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        if not api_key:
            raise ValueError(f"API key not found for provider {self.name}")
        self.api_key = api_key
        self.model = model or settings.llm_model
        self.timeout = timeout or settings.request_timeout
        self.max_tokens = max_tokens or settings.max_tokens

    async def complete_json(
        self,
        messages: list[dict],
        schema: dict,
        function_name: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
        debug: bool = False,
    ) -> CompletionResult:
        model_name = model or self.model
        if temperature is None:
            temperature = settings.temperature
        payload = self._build_payload(messages, schema, function_name, model_name, temperature)

        if debug:
            logger.info(
                "Calling %s with model %s: %s",
                self.name, payload["model"], _preview(payload["messages"]),
            )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=self._headers(),
                    json=payload,
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("%s request failed: %s", self.name, exc)
            raise

        completion = self._process_response(response.json())
        cost = compute_cost(model_name, completion.get("usage") or {})
        if debug:
            logger.info(
                "%s response received. Tokens: %d, Cost: $%.6f",
                self.name, cost.total_tokens, cost.cost_usd,
            )
        return CompletionResult(data=extract_json(completion), cost=cost)

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    @abstractmethod
    def _build_payload(
        self,
        messages: list[dict],
        schema: dict,
        function_name: str,
        model: str,
        temperature: float,
    ) -> dict:
        """Shape the provider-specific request body."""

    def _process_response(self, completion: dict) -> dict:
        return completion
