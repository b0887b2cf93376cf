"""Best-effort writer for ``app_error_events``.

Used for failures that are recovered locally (e.g. the assistant responder
failing mid-send) but should still be visible to whoever watches the error
dashboard.  Never raises.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from supabase import Client, create_client

from .config import settings

logger = logging.getLogger(__name__)

_ALLOWED_COLUMNS = frozenset(
    {
        "occurred_at",
        "tool",
        "severity",
        "message",
        "route",
        "method",
        "status_code",
        "request_id",
        "user_id",
        "user_email",
        "meta",
    }
)


def build_error_row(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Split a payload into known columns plus a JSONB ``meta`` bag."""
    base_row = {k: v for k, v in payload.items() if k in _ALLOWED_COLUMNS and v is not None}
    base_row.setdefault("occurred_at", datetime.now(timezone.utc).isoformat())
    extra = {k: v for k, v in payload.items() if k not in _ALLOWED_COLUMNS and v is not None}
    if extra:
        meta = base_row.get("meta") if isinstance(base_row.get("meta"), dict) else {}
        base_row["meta"] = {**meta, **extra}
    return base_row


class AppErrorLogger:
    """Thin wrapper around Supabase inserts for `app_error_events`."""

    def __init__(self, client: Optional[Client] = None) -> None:
        self._client = client

    def _get_client(self) -> Optional[Client]:
        if self._client:
            return self._client
        if not settings.usage_logging_enabled:
            return None
        if not settings.supabase_url or not settings.supabase_service_role:
            logger.warning("Error logging enabled but Supabase service role credentials missing.")
            return None
        self._client = create_client(settings.supabase_url, settings.supabase_service_role)
        return self._client

    def log(self, payload: Dict[str, Any]) -> None:
        client = self._get_client()
        if not client:
            return
        try:
            client.table("app_error_events").insert(build_error_row(payload)).execute()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to record app error event: %s", exc)

    def log_exception(
        self,
        exc: BaseException,
        *,
        tool: str,
        severity: str = "error",
        user_id: str | None = None,
        **meta: Any,
    ) -> None:
        self.log(
            {
                "tool": tool,
                "severity": severity,
                "message": str(exc) or exc.__class__.__name__,
                "user_id": user_id,
                "error_type": exc.__class__.__name__,
                **meta,
            }
        )


error_logger = AppErrorLogger()
