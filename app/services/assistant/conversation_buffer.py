"""Message-list helpers for assistant chat sessions.

Provides deterministic, pure-function utilities used by the storage policy
and the send orchestration:

- monotonic, timestamp-derived message ids
- user / placeholder / finalized assistant message builders
- replace-by-id (single linear scan, no reliance on object identity)
- projection of a message list to the ``{role, content}`` history a
  responder receives (placeholders stripped)
"""

from __future__ import annotations

import time
from dataclasses import replace
from datetime import datetime
from typing import Iterable

from .types import ChatMessage, ChatRole, ChatSession, HistoryEntry, utc_now

_last_id_ms: int = 0


def new_message_id(prefix: str = "") -> str:
    """Return a millisecond-timestamp id, strictly increasing within the process."""
    global _last_id_ms  # noqa: PLW0603
    now_ms = int(time.time() * 1000)
    _last_id_ms = max(now_ms, _last_id_ms + 1)
    return f"{prefix}{_last_id_ms}"


def unique_message_id(existing: Iterable[ChatMessage], prefix: str = "") -> str:
    """Generate an id that does not collide with any id in ``existing``."""
    taken = {m.id for m in existing}
    candidate = new_message_id(prefix)
    while candidate in taken:
        candidate = new_message_id(prefix)
    return candidate


def build_message(
    role: ChatRole,
    content: str,
    *,
    message_id: str | None = None,
    timestamp: datetime | None = None,
    is_loading: bool = False,
) -> ChatMessage:
    if not content and not is_loading:
        raise ValueError("Only loading placeholders may have empty content")
    return ChatMessage(
        id=message_id or new_message_id(),
        role=role,
        content=content,
        timestamp=timestamp or utc_now(),
        is_loading=is_loading,
    )


def build_placeholder(*, timestamp: datetime | None = None) -> ChatMessage:
    """Transient assistant message shown while a response is pending."""
    return build_message("assistant", "", timestamp=timestamp, is_loading=True)


def append_messages(session: ChatSession, *messages: ChatMessage, now: datetime | None = None) -> ChatSession:
    """Return a new snapshot with ``messages`` appended (does NOT trim)."""
    return replace(
        session,
        messages=(*session.messages, *messages),
        updated_at=now or utc_now(),
    )


def replace_message(session: ChatSession, message_id: str, new_message: ChatMessage) -> ChatSession:
    """Return a new snapshot with the message ``message_id`` swapped out.

    The session is returned unchanged when no message carries that id.
    """
    for index, message in enumerate(session.messages):
        if message.id == message_id:
            messages = list(session.messages)
            messages[index] = new_message
            return replace(session, messages=tuple(messages))
    return session


def to_conversation_history(messages: Iterable[ChatMessage]) -> list[HistoryEntry]:
    """Project messages to role/content pairs, dropping loading placeholders."""
    return [
        HistoryEntry(role=m.role, content=m.content)
        for m in messages
        if not m.is_loading
    ]


def loading_messages(session: ChatSession) -> list[ChatMessage]:
    return [m for m in session.messages if m.is_loading]
