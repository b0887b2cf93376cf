"""Per-owner chat contexts.

Each owner (a signed-in user) holds at most one active ``ChatSession`` plus the
request-level ``is_loading`` flag and the last surfaced error.  State lives in
process memory only; a restart drops every session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from .types import ChatSession, utc_now

logger = logging.getLogger(__name__)


@dataclass
class ChatContext:
    owner_id: str
    session: ChatSession | None = None
    is_loading: bool = False
    error: str | None = None


class ChatSessionStore:
    def __init__(self) -> None:
        self._contexts: dict[str, ChatContext] = {}

    def context_for(self, owner_id: str) -> ChatContext:
        owner_id = (owner_id or "").strip()
        if not owner_id:
            raise ValueError("Missing owner_id")
        context = self._contexts.get(owner_id)
        if context is None:
            context = ChatContext(owner_id=owner_id)
            self._contexts[owner_id] = context
        return context

    def get_session(self, owner_id: str) -> ChatSession | None:
        return self.context_for(owner_id).session

    def publish(self, owner_id: str, session: ChatSession | None) -> None:
        """Swap in a new snapshot for ``owner_id``."""
        self.context_for(owner_id).session = session

    def clear(self, owner_id: str) -> None:
        context = self.context_for(owner_id)
        context.session = None
        context.error = None

    def sweep_expired(self, expiry_days: int, *, now: datetime | None = None) -> list[str]:
        """Drop idle sessions last updated more than ``expiry_days`` ago.

        Contexts with a request in flight are skipped.  Returns the owner ids
        whose sessions were dropped.
        """
        if expiry_days <= 0:
            return []
        cutoff = (now or utc_now()) - timedelta(days=expiry_days)
        expired: list[str] = []
        for owner_id, context in list(self._contexts.items()):
            if context.is_loading or context.session is None:
                continue
            if context.session.updated_at < cutoff:
                del self._contexts[owner_id]
                expired.append(owner_id)
        if expired:
            logger.info("Expired %d idle chat sessions", len(expired))
        return expired

    def __len__(self) -> int:
        return len(self._contexts)
