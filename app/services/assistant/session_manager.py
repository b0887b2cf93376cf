"""Send orchestration for assistant chat sessions.

``ChatSessionManager.send_message`` is the only effectful entry point: it
creates the session on first use, warns near the limit, cleans up stale
messages, publishes a loading placeholder, calls the responder, and
compacts the history once the limit is reached.

Responder failures never escape ``send_message``; they become a fallback
assistant message plus ``SendResult.error``.  Notices go through
``run_best_effort`` so a failing sink cannot affect the send.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from ...error_logging import error_logger
from .best_effort import run_best_effort
from .chat_storage import ChatStorageService
from .conversation_buffer import (
    append_messages,
    build_message,
    build_placeholder,
    new_message_id,
    replace_message,
    to_conversation_history,
)
from .notifications import NoticeVariant, NotificationSink
from .responder_factory import Responder
from .session_store import ChatContext, ChatSessionStore
from .types import AIAction, AIRequest, ChatMessage, ChatSession, PlatformContext, StorageStats, utc_now

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I'm sorry, I'm having trouble responding right now. Please try again in a moment."
DEFAULT_ERROR_TEXT = "Failed to get AI response"


class ChatSessionError(Exception):
    pass


class ChatSessionBusyError(ChatSessionError):
    """A send is already in flight for this owner."""


@dataclass(frozen=True)
class SendResult:
    session: ChatSession
    error: str | None = None
    actions: list[AIAction] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    # True when the session was cleared or replaced while the responder ran.
    discarded: bool = False


class ChatSessionManager:
    """Coordinates one owner's chat context with a responder and a notice sink."""

    def __init__(
        self,
        *,
        owner_id: str,
        store: ChatSessionStore,
        storage: ChatStorageService,
        responder: Responder,
        notifier: NotificationSink,
        error_log_fn: Callable[..., Any] = error_logger.log_exception,
    ) -> None:
        self.owner_id = owner_id
        self.store = store
        self.storage = storage
        self.responder = responder
        self.notifier = notifier
        self._log_error = error_log_fn

    @property
    def context(self) -> ChatContext:
        return self.store.context_for(self.owner_id)

    @property
    def is_loading(self) -> bool:
        return self.context.is_loading

    @property
    def error(self) -> str | None:
        return self.context.error

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def create_new_session(self) -> ChatSession:
        now = utc_now()
        return ChatSession(id=new_message_id(), messages=(), created_at=now, updated_at=now)

    def get_current_session(self) -> ChatSession:
        """Return the owner's session, registering a new one if absent."""
        session = self.context.session
        if session is None:
            session = self.create_new_session()
            self.store.publish(self.owner_id, session)
        return session

    def clear_session(self) -> None:
        self.store.clear(self.owner_id)

    def get_messages(self) -> tuple[ChatMessage, ...]:
        session = self.context.session
        return session.messages if session else ()

    def get_storage_stats(self) -> StorageStats:
        return self.storage.get_storage_stats(self.context.session)

    def get_conversation_summary(self) -> str:
        return self.storage.create_conversation_summary(self.get_messages())

    # ------------------------------------------------------------------
    # Send
    # ------------------------------------------------------------------

    async def _notify(self, title: str, description: str, variant: NoticeVariant = "default") -> None:
        await run_best_effort(self.notifier.notify, title, description, variant, label="chat notice")

    def _is_active(self, session_id: str) -> bool:
        current = self.context.session
        return current is not None and current.id == session_id

    async def send_message(self, content: str, *, current_page: str | None = None) -> SendResult:
        if not (content or "").strip():
            raise ValueError("Message content must not be empty")
        context = self.context
        if context.is_loading:
            raise ChatSessionBusyError("A message is already being processed for this session")

        # Claimed before the first await so a concurrent send sees the flag.
        context.is_loading = True
        context.error = None
        try:
            session = self.get_current_session()

            if self.storage.is_approaching_limit(session):
                stats = self.storage.get_storage_stats(session)
                await self._notify(
                    "Conversation Getting Long",
                    f"You have {stats['messages_until_limit']} messages left. "
                    "Older messages will be summarized to save space.",
                )

            session = self.storage.cleanup_old_messages(session)

            user_message = build_message("user", content)
            placeholder = build_placeholder()
            history = to_conversation_history(session.messages)
            pending = append_messages(session, user_message, placeholder)
            self.store.publish(self.owner_id, pending)

            request = AIRequest(
                message=content,
                conversation_history=history,
                user_id=self.owner_id,
                session_id=pending.id,
            )
            try:
                response = await self.responder.process_message(
                    request, PlatformContext(current_page=current_page)
                )
                reply = (response or {}).get("content")
                if not reply:
                    raise ValueError("Responder returned an empty reply")
                answer = build_message("assistant", reply, message_id=placeholder.id)
                actions = list(response.get("actions") or [])
                suggestions = list(response.get("suggestions") or [])
            except Exception as exc:  # noqa: BLE001
                return await self._handle_responder_failure(pending, placeholder, exc)

            final = replace_message(pending, placeholder.id, answer)

            if not self._is_active(final.id):
                logger.info("Discarding late response for session %s", final.id)
                return SendResult(session=final, discarded=True)

            if self.storage.has_exceeded_limit(final):
                final = self.storage.trim_session_messages(final)
                await self._notify(
                    "Conversation Trimmed",
                    "Older messages have been summarized to keep the conversation manageable.",
                )

            self.store.publish(self.owner_id, final)
            return SendResult(session=final, actions=actions, suggestions=suggestions)
        finally:
            context.is_loading = False

    async def _handle_responder_failure(
        self,
        pending: ChatSession,
        placeholder: ChatMessage,
        exc: Exception,
    ) -> SendResult:
        logger.warning("Error getting AI response for session %s: %s", pending.id, exc)
        error_text = str(exc) or DEFAULT_ERROR_TEXT

        fallback = ChatMessage(
            id=placeholder.id,
            role="assistant",
            content=FALLBACK_REPLY,
            timestamp=utc_now(),
            is_loading=False,
        )
        failed = replace_message(pending, placeholder.id, fallback)

        await run_best_effort(
            self._log_error,
            exc,
            tool="assistant_chat",
            user_id=self.owner_id,
            session_id=pending.id,
            label="error event logging",
        )

        if not self._is_active(failed.id):
            logger.info("Discarding late failure for session %s", failed.id)
            return SendResult(session=failed, error=error_text, discarded=True)

        self.context.error = error_text
        self.store.publish(self.owner_id, failed)
        await self._notify("Error", "Failed to get AI response. Please try again.", "destructive")
        return SendResult(session=failed, error=error_text)
