from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..auth import require_user
from ..config import settings
from ..services.ai_token_usage_logger import get_supabase_admin_client
from ..services.assistant.chat_storage import ChatStorageService
from ..services.assistant.notifications import (
    FanoutSink,
    NotificationService,
    NotificationSink,
    SupabaseNotificationSink,
    ToastCollector,
)
from ..services.assistant.responder_factory import Responder, create_responder, get_provider_status
from ..services.assistant.session_manager import ChatSessionBusyError, ChatSessionManager
from ..services.assistant.session_store import ChatSessionStore
from ..services.assistant.types import ChatLimits, ChatSession


router = APIRouter(prefix="/chat", tags=["chat"])


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_chat_store() -> ChatSessionStore:
    return ChatSessionStore()


@lru_cache(maxsize=1)
def get_chat_storage_service() -> ChatStorageService:
    return ChatStorageService(
        ChatLimits(
            max_messages_per_session=settings.chat_max_messages_per_session,
            max_sessions_per_user=settings.chat_max_sessions_per_user,
            session_expiry_days=settings.chat_session_expiry_days,
        )
    )


def get_responder() -> Responder:
    return create_responder(settings.assistant_provider)


def get_notification_service() -> NotificationService | None:
    if not settings.chat_persist_notifications:
        return None
    return NotificationService(get_supabase_admin_client())


def _owner_id(user: dict[str, Any]) -> str:
    owner_id = str(user.get("sub") or "").strip()
    if not owner_id:
        raise HTTPException(status_code=401, detail="Token has no subject")
    return owner_id


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class ChatMessageOut(BaseModel):
    id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime
    is_loading: bool


class ChatSessionOut(BaseModel):
    id: str
    messages: list[ChatMessageOut]
    created_at: datetime
    updated_at: datetime


class StorageStatsOut(BaseModel):
    message_count: int
    is_near_limit: bool
    is_at_limit: bool
    messages_until_limit: int


class NoticeOut(BaseModel):
    title: str
    description: str
    variant: Literal["default", "destructive"]


class SendMessageRequest(BaseModel):
    content: str = Field(min_length=1, max_length=8000)
    current_page: str | None = Field(default=None)


class SendMessageResponse(BaseModel):
    session: ChatSessionOut
    error: str | None = None
    notices: list[NoticeOut] = Field(default_factory=list)
    actions: list[dict[str, Any]] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    discarded: bool = False
    storage_stats: StorageStatsOut


class SessionStateResponse(BaseModel):
    session: ChatSessionOut | None
    is_loading: bool
    error: str | None
    storage_stats: StorageStatsOut


class LimitsOut(BaseModel):
    max_messages_per_session: int
    max_sessions_per_user: int
    session_expiry_days: int


class LimitsUpdateRequest(BaseModel):
    max_messages_per_session: int | None = Field(default=None, gt=0)
    max_sessions_per_user: int | None = Field(default=None, gt=0)
    session_expiry_days: int | None = Field(default=None, gt=0)


def _session_out(session: ChatSession | None) -> ChatSessionOut | None:
    if session is None:
        return None
    return ChatSessionOut(
        id=session.id,
        messages=[
            ChatMessageOut(
                id=m.id,
                role=m.role,
                content=m.content,
                timestamp=m.timestamp,
                is_loading=m.is_loading,
            )
            for m in session.messages
        ],
        created_at=session.created_at,
        updated_at=session.updated_at,
    )


def _limits_out(limits: ChatLimits) -> LimitsOut:
    return LimitsOut(
        max_messages_per_session=limits.max_messages_per_session,
        max_sessions_per_user=limits.max_sessions_per_user,
        session_expiry_days=limits.session_expiry_days,
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/healthz")
def health():
    return {"ok": True}


@router.get("/session", response_model=SessionStateResponse)
def get_session(
    user=Depends(require_user),
    store: ChatSessionStore = Depends(get_chat_store),
    storage: ChatStorageService = Depends(get_chat_storage_service),
):
    context = store.context_for(_owner_id(user))
    return SessionStateResponse(
        session=_session_out(context.session),
        is_loading=context.is_loading,
        error=context.error,
        storage_stats=StorageStatsOut(**storage.get_storage_stats(context.session)),
    )


@router.post("/messages", response_model=SendMessageResponse)
async def send_message(
    payload: SendMessageRequest,
    user=Depends(require_user),
    store: ChatSessionStore = Depends(get_chat_store),
    storage: ChatStorageService = Depends(get_chat_storage_service),
    responder: Responder = Depends(get_responder),
    notification_service: NotificationService | None = Depends(get_notification_service),
):
    owner_id = _owner_id(user)
    store.sweep_expired(storage.get_limits().session_expiry_days)

    toasts = ToastCollector()
    notifier: NotificationSink = toasts
    if notification_service is not None:
        notifier = FanoutSink(toasts, SupabaseNotificationSink(notification_service, owner_id))

    manager = ChatSessionManager(
        owner_id=owner_id,
        store=store,
        storage=storage,
        responder=responder,
        notifier=notifier,
    )
    try:
        result = await manager.send_message(payload.content, current_page=payload.current_page)
    except ChatSessionBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return SendMessageResponse(
        session=_session_out(result.session),
        error=result.error,
        notices=[NoticeOut(**notice) for notice in toasts.notices],
        actions=[dict(action) for action in result.actions],
        suggestions=result.suggestions,
        discarded=result.discarded,
        storage_stats=StorageStatsOut(**storage.get_storage_stats(store.get_session(owner_id))),
    )


@router.delete("/session")
def clear_session(
    user=Depends(require_user),
    store: ChatSessionStore = Depends(get_chat_store),
):
    store.clear(_owner_id(user))
    return {"ok": True}


@router.get("/stats", response_model=StorageStatsOut)
def get_stats(
    user=Depends(require_user),
    store: ChatSessionStore = Depends(get_chat_store),
    storage: ChatStorageService = Depends(get_chat_storage_service),
):
    return StorageStatsOut(**storage.get_storage_stats(store.get_session(_owner_id(user))))


@router.get("/summary")
def get_summary(
    user=Depends(require_user),
    store: ChatSessionStore = Depends(get_chat_store),
    storage: ChatStorageService = Depends(get_chat_storage_service),
):
    session = store.get_session(_owner_id(user))
    messages = session.messages if session else ()
    return {"summary": storage.create_conversation_summary(messages)}


@router.get("/limits", response_model=LimitsOut)
def get_limits(
    _user=Depends(require_user),
    storage: ChatStorageService = Depends(get_chat_storage_service),
):
    return _limits_out(storage.get_limits())


@router.patch("/limits", response_model=LimitsOut)
def update_limits(
    payload: LimitsUpdateRequest,
    _user=Depends(require_user),
    storage: ChatStorageService = Depends(get_chat_storage_service),
):
    limits = storage.update_limits(**payload.model_dump(exclude_none=True))
    return _limits_out(limits)


@router.get("/provider")
def provider_status(_user=Depends(require_user)):
    return get_provider_status(settings.assistant_provider)
