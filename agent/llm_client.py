"""Language-understanding backend: OpenAI tool calling plus failure classification."""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from typing import Any, Protocol


DEFAULT_RETRY_DELAY_S = 60

_RATE_LIMIT_MARKERS = ("resource_exhausted", "quota", "rate limit", "ratelimit", "too many requests")
_RETRY_DELAY_PATTERNS = (
    re.compile(r"retryDelay\W*(\d+(?:\.\d+)?)\s*s", re.IGNORECASE),
    re.compile(r"(?:retry|try again)\s+(?:in|after)\s+(\d+(?:\.\d+)?)\s*(?:s\b|sec|seconds?)", re.IGNORECASE),
)


class OpenAIChatClient(Protocol):
    """Abstraction over OpenAI chat completion for easy mocking in tests."""

    def create_chat_completion(
        self,
        model: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        tool_choice: str,
    ) -> dict[str, Any]:
        """Create a chat completion payload."""


@dataclass(slots=True)
class OpenAIChatClientImpl:
    """Concrete OpenAI chat client wrapper."""

    api_key: str
    timeout_s: float | None = 20.0

    def create_chat_completion(
        self,
        model: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        tool_choice: str,
    ) -> dict[str, Any]:
        from openai import OpenAI

        client_kwargs: dict[str, Any] = {"api_key": self.api_key, "max_retries": 0}
        if self.timeout_s is not None:
            client_kwargs["timeout"] = self.timeout_s

        client = OpenAI(**client_kwargs)
        response = client.chat.completions.create(
            model=model,
            messages=messages,
            tools=tools,
            tool_choice=tool_choice,
        )
        return response.model_dump(mode="json")


@dataclass(slots=True)
class ModelToolCall:
    id: str
    name: str
    raw_arguments: Any

    def as_message_part(self) -> dict[str, Any]:
        arguments = self.raw_arguments if isinstance(self.raw_arguments, str) else json.dumps(self.raw_arguments)
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": arguments},
        }


@dataclass(slots=True)
class ModelTurn:
    content: str = ""
    tool_calls: list[ModelToolCall] = field(default_factory=list)


def parse_completion(response: dict[str, Any]) -> ModelTurn:
    """Extract text and tool calls from a chat completion payload."""
    choices = response.get("choices") or []
    first_choice = choices[0] if choices else {}
    message = first_choice.get("message") if isinstance(first_choice, dict) else {}
    if not isinstance(message, dict):
        message = {}

    content = message.get("content")
    tool_calls: list[ModelToolCall] = []
    for index, raw_call in enumerate(message.get("tool_calls") or []):
        if not isinstance(raw_call, dict):
            continue
        function_data = raw_call.get("function")
        if not isinstance(function_data, dict):
            function_data = {}
        tool_calls.append(
            ModelToolCall(
                id=str(raw_call.get("id") or f"call_{index}"),
                name=str(function_data.get("name") or ""),
                raw_arguments=function_data.get("arguments"),
            )
        )

    return ModelTurn(content=content if isinstance(content, str) else "", tool_calls=tool_calls)


def _status_code(exc: BaseException) -> int | None:
    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(getattr(exc, "response", None), "status_code", None)
    return status if isinstance(status, int) else None


def _error_text(exc: BaseException) -> str:
    parts = [type(exc).__name__, str(exc)]
    body = getattr(exc, "body", None)
    if body is not None:
        parts.append(body if isinstance(body, str) else json.dumps(body, default=str))
    return " ".join(parts)


def is_rate_limited(exc: BaseException) -> bool:
    """Return whether a backend failure means quota or rate exhaustion."""
    if _status_code(exc) == 429 or type(exc).__name__ == "RateLimitError":
        return True
    text = _error_text(exc).lower()
    return any(marker in text for marker in _RATE_LIMIT_MARKERS)


def retry_delay_seconds(exc: BaseException, default: int = DEFAULT_RETRY_DELAY_S) -> int:
    """Read the suggested wait from headers or payload text, rounded up."""
    headers = getattr(getattr(exc, "response", None), "headers", None)
    if headers is not None:
        raw_value = headers.get("retry-after") or headers.get("Retry-After")
        try:
            if raw_value is not None and float(raw_value) > 0:
                return math.ceil(float(raw_value))
        except (TypeError, ValueError):
            pass

    text = _error_text(exc)
    for pattern in _RETRY_DELAY_PATTERNS:
        match = pattern.search(text)
        if match:
            return max(1, math.ceil(float(match.group(1))))
    return default
