import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from app.auth import require_user
from app.main import app
from app.routers.chat import (
    get_chat_storage_service,
    get_chat_store,
    get_notification_service,
    get_responder,
)
from app.services.assistant.chat_storage import ChatStorageService
from app.services.assistant.notifications import NotificationService
from app.services.assistant.session_store import ChatSessionStore


class StubResponder:
    name = "stub"

    def __init__(self):
        self.error = None
        self.requests = []

    async def process_message(self, request, context=None):
        self.requests.append((request, context))
        if self.error is not None:
            raise self.error
        return {
            "content": f"echo: {request['message']}",
            "suggestions": ["Show me courses"],
        }


@pytest.fixture
def store():
    return ChatSessionStore()


@pytest.fixture
def storage():
    return ChatStorageService()


@pytest.fixture
def responder():
    return StubResponder()


@pytest.fixture(autouse=True)
def overrides(store, storage, responder):
    app.dependency_overrides[require_user] = lambda: {"sub": "user-1"}
    app.dependency_overrides[get_chat_store] = lambda: store
    app.dependency_overrides[get_chat_storage_service] = lambda: storage
    app.dependency_overrides[get_responder] = lambda: responder
    app.dependency_overrides[get_notification_service] = lambda: None
    yield
    app.dependency_overrides = {}


client = TestClient(app)


def test_healthz():
    assert client.get("/healthz").json()["ok"] is True
    assert client.get("/chat/healthz").json() == {"ok": True}


def test_session_starts_empty():
    response = client.get("/chat/session")
    assert response.status_code == 200
    body = response.json()
    assert body["session"] is None
    assert body["is_loading"] is False
    assert body["storage_stats"]["messages_until_limit"] == 50


def test_send_message_happy_path(responder):
    response = client.post("/chat/messages", json={"content": "hello", "current_page": "/courses"})

    assert response.status_code == 200
    body = response.json()
    assert body["error"] is None
    assert [m["content"] for m in body["session"]["messages"]] == ["hello", "echo: hello"]
    assert body["suggestions"] == ["Show me courses"]
    assert body["storage_stats"]["message_count"] == 2
    assert body["notices"] == []

    request, context = responder.requests[0]
    assert request["user_id"] == "user-1"
    assert context == {"current_page": "/courses"}

    state = client.get("/chat/session").json()
    assert len(state["session"]["messages"]) == 2


def test_send_message_failure_returns_fallback(responder):
    responder.error = RuntimeError("model unavailable")

    response = client.post("/chat/messages", json={"content": "hello"})

    assert response.status_code == 200
    body = response.json()
    assert body["error"] == "model unavailable"
    assert body["session"]["messages"][0]["content"] == "hello"
    assert body["session"]["messages"][-1]["content"].startswith("I'm sorry")
    assert body["notices"][-1]["variant"] == "destructive"

    state = client.get("/chat/session").json()
    assert state["error"] == "model unavailable"


def test_send_message_rejects_empty_content():
    assert client.post("/chat/messages", json={"content": ""}).status_code == 422


def test_send_message_rejects_whitespace_content(store):
    response = client.post("/chat/messages", json={"content": "   "})
    assert response.status_code == 422
    assert store.get_session("user-1") is None


def test_send_while_loading_conflicts(store):
    store.context_for("user-1").is_loading = True

    response = client.post("/chat/messages", json={"content": "hello"})

    assert response.status_code == 409


def test_clear_session():
    client.post("/chat/messages", json={"content": "hello"})

    assert client.delete("/chat/session").json() == {"ok": True}

    state = client.get("/chat/session").json()
    assert state["session"] is None
    assert state["storage_stats"]["message_count"] == 0


def test_stats_and_summary():
    client.post("/chat/messages", json={"content": "how do I schedule training"})

    stats = client.get("/chat/stats").json()
    assert stats["message_count"] == 2
    assert stats["is_near_limit"] is False

    summary = client.get("/chat/summary").json()["summary"]
    assert "User asked about: how do I schedule training" in summary


def test_limits_roundtrip(storage):
    assert client.get("/chat/limits").json() == {
        "max_messages_per_session": 50,
        "max_sessions_per_user": 10,
        "session_expiry_days": 30,
    }

    response = client.patch("/chat/limits", json={"max_messages_per_session": 4})
    assert response.status_code == 200
    assert response.json()["max_messages_per_session"] == 4
    assert response.json()["session_expiry_days"] == 30
    assert storage.get_limits().max_messages_per_session == 4


def test_limits_reject_non_positive():
    assert client.patch("/chat/limits", json={"max_messages_per_session": 0}).status_code == 422


def test_trim_notice_after_limit_lowered():
    client.patch("/chat/limits", json={"max_messages_per_session": 4})
    client.post("/chat/messages", json={"content": "one"})

    body = client.post("/chat/messages", json={"content": "two"}).json()

    titles = [n["title"] for n in body["notices"]]
    assert "Conversation Getting Long" in titles
    assert "Conversation Trimmed" in titles
    assert body["storage_stats"]["is_at_limit"] is False


def test_notices_are_persisted_when_enabled():
    db = MagicMock()
    db.rpc.return_value.execute.return_value = MagicMock(data="notif-1")
    app.dependency_overrides[get_notification_service] = lambda: NotificationService(db)
    client.patch("/chat/limits", json={"max_messages_per_session": 4})
    client.post("/chat/messages", json={"content": "one"})

    client.post("/chat/messages", json={"content": "two"})

    rpc_names = [call.args[0] for call in db.rpc.call_args_list]
    assert rpc_names and all(name == "create_notification" for name in rpc_names)
    params = db.rpc.call_args_list[0].args[1]
    assert params["p_recipient_id"] == "user-1"
    assert params["p_type"] == "assistant_notice"


def test_provider_status(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    body = client.get("/chat/provider").json()
    assert body["active"] == "local"
    assert body["configured"] is False
