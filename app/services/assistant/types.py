"""Data model for the assistant chat service.

Sessions and messages are immutable snapshots: every write builds a new
object via ``dataclasses.replace`` so readers holding an older snapshot never
observe a half-applied change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, NotRequired, TypedDict

ChatRole = Literal["user", "assistant"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ChatMessage:
    id: str
    role: ChatRole
    content: str
    timestamp: datetime
    is_loading: bool = False


@dataclass(frozen=True)
class ChatSession:
    id: str
    messages: tuple[ChatMessage, ...] = ()
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class ChatLimits:
    max_messages_per_session: int = 50
    # Advisory for the storage service; see ChatSessionStore.sweep_expired.
    max_sessions_per_user: int = 10
    session_expiry_days: int = 30


class StorageStats(TypedDict):
    message_count: int
    is_near_limit: bool
    is_at_limit: bool
    messages_until_limit: int


# ---------------------------------------------------------------------------
# Responder payloads
# ---------------------------------------------------------------------------


class HistoryEntry(TypedDict):
    role: ChatRole
    content: str


class AIRequest(TypedDict):
    message: str
    conversation_history: list[HistoryEntry]
    user_id: NotRequired[str | None]
    session_id: NotRequired[str | None]


class PlatformContext(TypedDict, total=False):
    current_page: str | None
    user_role: str | None
    available_actions: list[str]


class AIAction(TypedDict):
    type: Literal["navigate", "create", "update", "delete", "query", "ui_interaction"]
    description: str
    function: str
    parameters: dict[str, Any]
    requires_confirmation: bool


class AIResponse(TypedDict):
    content: str
    actions: NotRequired[list[AIAction]]
    suggestions: NotRequired[list[str]]


def navigate_action(path: str, description: str) -> AIAction:
    return AIAction(
        type="navigate",
        description=description,
        function="navigate",
        parameters={"path": path},
        requires_confirmation=False,
    )
