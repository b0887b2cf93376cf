"""Bounded in-memory storage policy for assistant chat sessions.

Three concerns layered on one ``ChatSession`` snapshot:

- Limit policy: is the session near / at ``max_messages_per_session``?
- Compaction: keep the first 5 and the last 35 messages, with a summary
  marker in between, once the limit is reached.
- Cleanup-by-age: drop messages older than a day, always keeping the last 10.

All operations are pure functions of the snapshot and the limits held by the
service instance; mutating operations return a new snapshot (or the same
object when nothing changed).

Compaction overlap policy: head and tail never overlap.  With ``n`` messages
the head keeps ``min(5, n - 2)`` and the tail ``min(35, n - head - 2)``, so at
least two messages are dropped and the result (head + marker + tail) is
always shorter than the input.  For ``n >= 42`` this is exactly first-5 /
last-35.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, replace
from datetime import datetime, timedelta
from typing import Callable, Iterable

from .conversation_buffer import unique_message_id
from .types import ChatLimits, ChatMessage, ChatSession, StorageStats, utc_now

logger = logging.getLogger(__name__)

APPROACHING_LIMIT_MARGIN = 5
TRIM_KEEP_HEAD = 5
TRIM_KEEP_TAIL = 35
# Each compaction must drop at least this many messages so the marker
# never makes the list longer.
_TRIM_MIN_DROPPED = 2

CLEANUP_MAX_AGE = timedelta(days=1)
CLEANUP_KEEP_RECENT = 10

SUMMARY_MAX_PER_ROLE = 10
SUMMARY_SNIPPET_CHARS = 50

SUMMARY_MARKER_TEXT = (
    "📝 *Previous conversation history has been summarized to save space. "
    "This conversation continues with the most recent context.*"
)


class ChatStorageService:
    """Limit policy, compaction and cleanup for one set of ``ChatLimits``.

    Construct one per application (or per test) and hand it to the session
    manager; there is no module-level singleton.
    """

    def __init__(
        self,
        limits: ChatLimits | None = None,
        *,
        now_fn: Callable[[], datetime] = utc_now,
    ) -> None:
        self._limits = limits or ChatLimits()
        self._now = now_fn

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def get_limits(self) -> ChatLimits:
        return self._limits

    def update_limits(
        self,
        *,
        max_messages_per_session: int | None = None,
        max_sessions_per_user: int | None = None,
        session_expiry_days: int | None = None,
    ) -> ChatLimits:
        """Merge the given values into the current limits and return them."""
        updates = {
            key: value
            for key, value in {
                "max_messages_per_session": max_messages_per_session,
                "max_sessions_per_user": max_sessions_per_user,
                "session_expiry_days": session_expiry_days,
            }.items()
            if value is not None
        }
        if updates:
            self._limits = replace(self._limits, **updates)
            logger.info("Updated chat limits: %s", asdict(self._limits))
        return self._limits

    # ------------------------------------------------------------------
    # Limit policy
    # ------------------------------------------------------------------

    def is_approaching_limit(self, session: ChatSession) -> bool:
        return len(session.messages) >= self._limits.max_messages_per_session - APPROACHING_LIMIT_MARGIN

    def has_exceeded_limit(self, session: ChatSession) -> bool:
        return len(session.messages) >= self._limits.max_messages_per_session

    def get_storage_stats(self, session: ChatSession | None) -> StorageStats:
        max_messages = self._limits.max_messages_per_session
        if session is None:
            return StorageStats(
                message_count=0,
                is_near_limit=False,
                is_at_limit=False,
                messages_until_limit=max(0, max_messages),
            )

        message_count = len(session.messages)
        return StorageStats(
            message_count=message_count,
            is_near_limit=self.is_approaching_limit(session),
            is_at_limit=self.has_exceeded_limit(session),
            messages_until_limit=max(0, max_messages - message_count),
        )

    # ------------------------------------------------------------------
    # Compaction
    # ------------------------------------------------------------------

    def trim_session_messages(self, session: ChatSession) -> ChatSession:
        """Compact an at-limit session to head + summary marker + tail."""
        if not self.has_exceeded_limit(session):
            return session

        messages = session.messages
        total = len(messages)
        if total < _TRIM_MIN_DROPPED:
            return session
        head_len = min(TRIM_KEEP_HEAD, max(0, total - _TRIM_MIN_DROPPED))
        tail_len = max(0, min(TRIM_KEEP_TAIL, total - head_len - _TRIM_MIN_DROPPED))

        logger.info("Trimming session %s - %d messages", session.id, total)

        now = self._now()
        marker = ChatMessage(
            id=unique_message_id(messages, prefix="summary-"),
            role="assistant",
            content=SUMMARY_MARKER_TEXT,
            timestamp=now,
            is_loading=False,
        )
        head = messages[:head_len]
        tail = messages[total - tail_len:] if tail_len else ()

        return replace(
            session,
            messages=(*head, marker, *tail),
            updated_at=now,
        )

    def create_conversation_summary(self, messages: Iterable[ChatMessage]) -> str:
        """Condense early user/assistant turns into a short context string."""
        messages = list(messages)
        user_messages = [m for m in messages if m.role == "user"][:SUMMARY_MAX_PER_ROLE]
        assistant_messages = [m for m in messages if m.role == "assistant"][:SUMMARY_MAX_PER_ROLE]

        summary = "Previous conversation summary:\n"
        if user_messages:
            summary += "\nUser asked about: "
            summary += ", ".join(m.content[:SUMMARY_SNIPPET_CHARS] for m in user_messages)
        if assistant_messages:
            summary += "\nAssistant helped with: "
            summary += ", ".join(m.content[:SUMMARY_SNIPPET_CHARS] for m in assistant_messages)

        return summary + "\n\nContinuing conversation with current context..."

    # ------------------------------------------------------------------
    # Cleanup-by-age
    # ------------------------------------------------------------------

    def cleanup_old_messages(self, session: ChatSession) -> ChatSession:
        """Drop messages older than a day, always keeping the last 10."""
        now = self._now()
        cutoff = now - CLEANUP_MAX_AGE
        total = len(session.messages)
        keep_from = total - CLEANUP_KEEP_RECENT

        recent = tuple(
            message
            for index, message in enumerate(session.messages)
            if message.timestamp > cutoff or index >= keep_from
        )
        if len(recent) == total:
            return session

        logger.info("Cleaned up session %s: %d -> %d messages", session.id, total, len(recent))
        return replace(session, messages=recent, updated_at=now)
