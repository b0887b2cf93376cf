from datetime import datetime, timedelta, timezone

import pytest

from app.services.assistant.session_store import ChatSessionStore
from app.services.assistant.types import ChatSession


NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


def _session(sid: str, *, idle_days: int) -> ChatSession:
    stamp = NOW - timedelta(days=idle_days)
    return ChatSession(id=sid, created_at=stamp, updated_at=stamp)


class TestChatSessionStore:
    def test_context_created_on_demand(self):
        store = ChatSessionStore()
        context = store.context_for("user-1")
        assert context.session is None
        assert context.is_loading is False
        assert store.context_for(" user-1 ") is context
        assert len(store) == 1

    def test_missing_owner_rejected(self):
        with pytest.raises(ValueError):
            ChatSessionStore().context_for("")

    def test_publish_and_clear(self):
        store = ChatSessionStore()
        session = ChatSession(id="s1")
        store.publish("user-1", session)
        store.context_for("user-1").error = "boom"

        assert store.get_session("user-1") is session
        store.clear("user-1")
        assert store.get_session("user-1") is None
        assert store.context_for("user-1").error is None

    def test_owners_are_isolated(self):
        store = ChatSessionStore()
        store.publish("a", ChatSession(id="s-a"))
        assert store.get_session("b") is None


class TestSweepExpired:
    def test_drops_idle_sessions(self):
        store = ChatSessionStore()
        store.publish("old", _session("s-old", idle_days=45))
        store.publish("fresh", _session("s-fresh", idle_days=2))

        expired = store.sweep_expired(30, now=NOW)

        assert expired == ["old"]
        assert store.get_session("fresh").id == "s-fresh"
        assert store.get_session("old") is None

    def test_skips_in_flight_contexts(self):
        store = ChatSessionStore()
        store.publish("busy", _session("s-busy", idle_days=90))
        store.context_for("busy").is_loading = True

        assert store.sweep_expired(30, now=NOW) == []
        assert store.get_session("busy").id == "s-busy"

    def test_non_positive_expiry_disables_sweep(self):
        store = ChatSessionStore()
        store.publish("old", _session("s-old", idle_days=400))
        assert store.sweep_expired(0, now=NOW) == []
