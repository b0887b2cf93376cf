"""Async OpenAI chat completion adapter using httpx.

Primary model with an optional fallback model, configured from the
environment.  Tool calls in the reply are returned as parsed
``ToolCall`` entries; the adapter never executes them.
"""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, TypedDict

import httpx

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://api.openai.com/v1"
_DEFAULT_MODEL = "gpt-4o-mini"
_TIMEOUT_S = 30.0


class OpenAIError(Exception):
    pass


class OpenAIConfigurationError(OpenAIError):
    pass


class CompletionMessage(TypedDict):
    role: str  # "system" | "user" | "assistant"
    content: str


class ToolCall(TypedDict):
    name: str
    arguments: dict[str, Any]


class ChatCompletionResult(TypedDict):
    content: str
    tool_calls: list[ToolCall]
    tokens_in: int
    tokens_out: int
    tokens_total: int
    model: str
    duration_ms: int


def is_configured() -> bool:
    return bool(os.environ.get("OPENAI_API_KEY", "").strip())


def _get_api_key() -> str:
    key = os.environ.get("OPENAI_API_KEY", "").strip()
    if not key:
        raise OpenAIConfigurationError("OPENAI_API_KEY environment variable is not set")
    return key


def _get_base_url() -> str:
    return (os.environ.get("OPENAI_BASE_URL", "").strip() or _DEFAULT_BASE_URL).rstrip("/")


def _get_default_model() -> str:
    return os.environ.get("OPENAI_MODEL_PRIMARY", "").strip() or _DEFAULT_MODEL


def _get_fallback_model() -> str | None:
    val = os.environ.get("OPENAI_MODEL_FALLBACK", "").strip()
    return val or None


def _parse_tool_calls(message: dict[str, Any]) -> list[ToolCall]:
    calls: list[ToolCall] = []
    for raw in message.get("tool_calls") or []:
        function = (raw or {}).get("function") or {}
        name = function.get("name")
        if not name:
            continue
        try:
            arguments = json.loads(function.get("arguments") or "{}")
        except json.JSONDecodeError:
            logger.warning("Discarding tool call %s with malformed arguments", name)
            continue
        if isinstance(arguments, dict):
            calls.append(ToolCall(name=name, arguments=arguments))
    return calls


async def _call_openai_http(
    messages: list[CompletionMessage],
    *,
    model: str,
    temperature: float,
    max_tokens: int | None = None,
    tools: list[dict[str, Any]] | None = None,
) -> ChatCompletionResult:
    api_key = _get_api_key()
    payload: dict[str, Any] = {
        "model": model,
        "messages": messages,
        "temperature": temperature,
    }
    if max_tokens is not None:
        payload["max_tokens"] = max_tokens
    if tools:
        payload["tools"] = tools
        payload["tool_choice"] = "auto"

    start_ms = int(time.time() * 1000)

    async with httpx.AsyncClient(timeout=httpx.Timeout(_TIMEOUT_S)) as client:
        try:
            response = await client.post(
                f"{_get_base_url()}/chat/completions",
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {api_key}",
                },
            )
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            raise OpenAIError(f"OpenAI request failed: {exc}") from exc

    duration_ms = int(time.time() * 1000) - start_ms

    if response.status_code != 200:
        body = response.text[:500]
        raise OpenAIError(f"OpenAI API error ({response.status_code}): {body}")

    data = response.json()
    choices = data.get("choices") or []
    if not choices:
        raise OpenAIError("No choices in OpenAI response")
    message = choices[0].get("message") or {}
    content = message.get("content") or ""
    tool_calls = _parse_tool_calls(message)
    if not content and not tool_calls:
        raise OpenAIError("No content in OpenAI response")

    usage = data.get("usage") or {}
    tokens_in = usage.get("prompt_tokens", 0)
    tokens_out = usage.get("completion_tokens", 0)

    return ChatCompletionResult(
        content=content,
        tool_calls=tool_calls,
        tokens_in=tokens_in,
        tokens_out=tokens_out,
        tokens_total=usage.get("total_tokens", tokens_in + tokens_out),
        model=data.get("model", model),
        duration_ms=duration_ms,
    )


async def call_chat_completion(
    messages: list[CompletionMessage],
    *,
    temperature: float = 0.7,
    max_tokens: int | None = None,
    model: str | None = None,
    tools: list[dict[str, Any]] | None = None,
) -> ChatCompletionResult:
    """Call OpenAI chat completion with automatic primary→fallback model retry."""
    resolved_model = model or _get_default_model()
    try:
        return await _call_openai_http(
            messages,
            model=resolved_model,
            temperature=temperature,
            max_tokens=max_tokens,
            tools=tools,
        )
    except OpenAIConfigurationError:
        raise
    except OpenAIError as exc:
        # An explicitly requested model is never swapped for the fallback.
        if model and model != _get_default_model():
            raise
        fallback = _get_fallback_model()
        if fallback and fallback != resolved_model:
            logger.warning("OpenAI model %s failed (%s); retrying with %s", resolved_model, exc, fallback)
            return await _call_openai_http(
                messages,
                model=fallback,
                temperature=temperature,
                max_tokens=max_tokens,
                tools=tools,
            )
        raise
