"""LLM-backed assistant responder.

Builds a system prompt from the caller's current page and the static
platform knowledge, replays the conversation history, and exposes a single
``navigate_to_page`` tool whose calls are returned as ``navigate`` actions.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable

from ..ai_token_usage_logger import log_ai_token_usage
from .best_effort import spawn_detached
from .knowledge_base import PLATFORM_KNOWLEDGE
from .openai_client import (
    ChatCompletionResult,
    CompletionMessage,
    OpenAIConfigurationError,
    OpenAIError,
    call_chat_completion,
)
from .types import AIAction, AIRequest, AIResponse, PlatformContext, navigate_action

logger = logging.getLogger(__name__)

_MAX_TOKENS = 4000
_TEMPERATURE = 0.7


class ResponderError(Exception):
    pass


class ResponderConfigurationError(ResponderError):
    pass


NAVIGATE_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "navigate_to_page",
        "description": "Navigate the user to a specific page in the application",
        "parameters": {
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "The route path to navigate to (e.g., /scheduling, /participants)",
                },
                "reason": {
                    "type": "string",
                    "description": "Brief explanation of why navigating to this page",
                },
            },
            "required": ["path", "reason"],
        },
    },
}


def build_system_prompt(context: PlatformContext | None) -> str:
    context = context or {}
    current_page = context.get("current_page") or "unknown"
    available = ", ".join(context.get("available_actions") or ["navigate", "query"])
    return (
        "You are a helpful AI assistant for a Training and Certification Management System. "
        "You help users navigate the platform and answer questions.\n\n"
        "**Current Context:**\n"
        f"- User is currently on: {current_page}\n"
        f"- Available actions: {available}\n\n"
        "**Platform Knowledge:**\n"
        f"{json.dumps(PLATFORM_KNOWLEDGE, indent=2, ensure_ascii=False)}\n\n"
        "**Instructions:**\n"
        "1. Always be helpful and concise\n"
        "2. Use the navigate_to_page function to send users to specific pages\n"
        "3. Provide step-by-step guidance for complex tasks\n"
        "4. Only use routes listed in the navigation object\n"
        "5. Remember previous conversation context and refer to it naturally"
    )


def _actions_from_result(result: ChatCompletionResult) -> list[AIAction]:
    actions: list[AIAction] = []
    for call in result["tool_calls"]:
        if call["name"] != "navigate_to_page":
            logger.warning("Ignoring unsupported tool call: %s", call["name"])
            continue
        path = str(call["arguments"].get("path") or "").strip()
        if not path.startswith("/"):
            continue
        reason = str(call["arguments"].get("reason") or "").strip()
        actions.append(navigate_action(path, reason or f"Go to {path}"))
    return actions


class OpenAIResponder:
    name = "openai"

    def __init__(
        self,
        *,
        completion_fn: Callable[..., Awaitable[ChatCompletionResult]] = call_chat_completion,
        usage_logger_fn: Callable[..., Awaitable[None]] = log_ai_token_usage,
    ) -> None:
        self._complete = completion_fn
        self._log_usage = usage_logger_fn

    async def process_message(
        self,
        request: AIRequest,
        context: PlatformContext | None = None,
    ) -> AIResponse:
        messages: list[CompletionMessage] = [
            CompletionMessage(role="system", content=build_system_prompt(context))
        ]
        for entry in request.get("conversation_history") or []:
            role = "user" if entry["role"] == "user" else "assistant"
            messages.append(CompletionMessage(role=role, content=entry["content"]))
        messages.append(CompletionMessage(role="user", content=request["message"]))

        try:
            result = await self._complete(
                messages,
                temperature=_TEMPERATURE,
                max_tokens=_MAX_TOKENS,
                tools=[NAVIGATE_TOOL],
            )
        except OpenAIConfigurationError as exc:
            raise ResponderConfigurationError(str(exc)) from exc
        except OpenAIError as exc:
            raise ResponderError(str(exc)) from exc

        spawn_detached(
            self._log_usage(
                tool="assistant_chat",
                user_id=request.get("user_id"),
                session_id=request.get("session_id"),
                stage="chat_reply",
                prompt_tokens=result["tokens_in"],
                completion_tokens=result["tokens_out"],
                total_tokens=result["tokens_total"],
                model=result["model"],
            ),
            label="token usage logging",
        )

        actions = _actions_from_result(result)
        content = result["content"]
        if not content:
            content = "; ".join(a["description"] for a in actions) or "Done."

        response = AIResponse(content=content)
        if actions:
            response["actions"] = actions
        return response
