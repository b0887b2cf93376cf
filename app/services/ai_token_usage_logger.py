"""Best-effort AI token usage logger.

Writes to ``public.ai_token_usage`` via a service-role Supabase client.
Never throws; failures are logged and swallowed so they never block the
chat response path.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from supabase import Client, create_client

from ..config import settings

logger = logging.getLogger(__name__)

_supabase_admin_client: Client | None = None


def get_supabase_admin_client() -> Client:
    global _supabase_admin_client  # noqa: PLW0603
    if _supabase_admin_client:
        return _supabase_admin_client
    if not settings.supabase_url or not settings.supabase_service_role:
        raise RuntimeError("Supabase credentials not configured")
    _supabase_admin_client = create_client(settings.supabase_url, settings.supabase_service_role)
    return _supabase_admin_client


async def log_ai_token_usage(
    *,
    tool: str,
    user_id: str | None = None,
    session_id: str | None = None,
    stage: str | None = None,
    prompt_tokens: int | None = None,
    completion_tokens: int | None = None,
    total_tokens: int | None = None,
    model: str | None = None,
    meta: dict[str, Any] | None = None,
) -> None:
    """Insert a row into ``ai_token_usage``.  Best-effort, never raises."""
    if not settings.usage_logging_enabled:
        return
    if not user_id:
        # ai_token_usage.user_id is NOT NULL; skip silently if actor is unresolved.
        return

    payload: dict[str, Any] = {"tool": tool, "user_id": user_id}
    optional = {
        "stage": stage,
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "total_tokens": total_tokens,
        "model": model,
    }
    payload.update({k: v for k, v in optional.items() if v is not None})
    if session_id is not None or meta is not None:
        payload["meta"] = {**(meta or {}), **({"session_id": session_id} if session_id else {})}

    try:
        db = get_supabase_admin_client()
        await asyncio.to_thread(
            lambda: db.table("ai_token_usage").insert(payload).execute()
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning("Failed to log AI token usage: %s", exc)
