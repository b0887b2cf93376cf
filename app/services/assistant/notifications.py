"""Notification sinks for the assistant chat service.

- ``ToastCollector`` keeps notices in memory so the HTTP layer can return
  them with the response (the UI renders them as toasts).
- ``SupabaseNotificationSink`` persists notices as in-app notifications.
- ``NotificationService`` wraps the ``create_notification`` RPC used by the
  rest of the platform.  Every method is best-effort: failures are logged and
  ``None`` is returned, never raised.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Protocol, TypedDict

from supabase import Client

logger = logging.getLogger(__name__)

NoticeVariant = Literal["default", "destructive"]
NotificationPriority = Literal["low", "medium", "high"]


class Notice(TypedDict):
    title: str
    description: str
    variant: NoticeVariant


class NotificationSink(Protocol):
    def notify(self, title: str, description: str, variant: NoticeVariant = "default") -> Any: ...


class ToastCollector:
    """In-memory sink; drained by the router after each request."""

    def __init__(self) -> None:
        self.notices: list[Notice] = []

    def notify(self, title: str, description: str, variant: NoticeVariant = "default") -> None:
        self.notices.append(Notice(title=title, description=description, variant=variant))


class FanoutSink:
    """Deliver each notice to several sinks; one failing sink does not stop the rest."""

    def __init__(self, *sinks: NotificationSink) -> None:
        self.sinks = sinks

    def notify(self, title: str, description: str, variant: NoticeVariant = "default") -> None:
        for sink in self.sinks:
            try:
                sink.notify(title, description, variant)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Notification sink %s failed: %s", type(sink).__name__, exc)


# ---------------------------------------------------------------------------
# Supabase-backed notifications
# ---------------------------------------------------------------------------


def expiry_priority(days_until_expiry: int) -> NotificationPriority:
    if days_until_expiry <= 7:
        return "high"
    if days_until_expiry <= 30:
        return "medium"
    return "low"


class NotificationService:
    """Best-effort wrapper around the ``create_notification`` RPC."""

    def __init__(self, supabase_client: Client) -> None:
        self.db = supabase_client

    def create_notification(
        self,
        *,
        recipient_id: str,
        type: str,
        title: str,
        message: str,
        priority: NotificationPriority = "medium",
        related_entity_type: str | None = None,
        related_entity_id: str | None = None,
        action_url: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str | None:
        """Create one notification.  Returns its id, or None on any failure."""
        recipient_id = (recipient_id or "").strip()
        if not recipient_id:
            return None

        try:
            response = self.db.rpc(
                "create_notification",
                {
                    "p_recipient_id": recipient_id,
                    "p_type": type,
                    "p_title": title,
                    "p_message": message,
                    "p_priority": priority,
                    "p_related_entity_type": related_entity_type,
                    "p_related_entity_id": related_entity_id,
                    "p_action_url": action_url,
                    "p_metadata": metadata,
                },
            ).execute()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to create notification for %s: %s", recipient_id, exc)
            return None

        return str(response.data) if response.data else None

    def notify_training_enrollment(
        self,
        *,
        recipient_id: str,
        training_title: str,
        training_date: str,
        training_id: str | None = None,
    ) -> str | None:
        return self.create_notification(
            recipient_id=recipient_id,
            type="training_enrollment",
            title=f"Enrolled in Training: {training_title}",
            message=f"You have been enrolled in {training_title} on {training_date}.",
            priority="medium",
            related_entity_type="training",
            related_entity_id=training_id,
            action_url=f"/scheduling/{training_id}" if training_id else None,
        )

    def notify_certificate_expiry(
        self,
        *,
        recipient_id: str,
        certificate_name: str,
        expiry_date: str,
        days_until_expiry: int,
        certificate_id: str | None = None,
    ) -> str | None:
        return self.create_notification(
            recipient_id=recipient_id,
            type="certificate_expiry",
            title=f"Certificate Expiring Soon: {certificate_name}",
            message=(
                f"Your {certificate_name} certificate will expire on {expiry_date}. "
                f"{days_until_expiry} days remaining. Please schedule renewal training."
            ),
            priority=expiry_priority(days_until_expiry),
            related_entity_type="certificate",
            related_entity_id=certificate_id,
            action_url="/certifications",
        )


class SupabaseNotificationSink:
    """Persist assistant notices as in-app notifications for one recipient."""

    def __init__(self, service: NotificationService, recipient_id: str) -> None:
        self.service = service
        self.recipient_id = recipient_id

    def notify(self, title: str, description: str, variant: NoticeVariant = "default") -> str | None:
        return self.service.create_notification(
            recipient_id=self.recipient_id,
            type="assistant_notice",
            title=title,
            message=description,
            priority="high" if variant == "destructive" else "low",
            related_entity_type="chat_session",
        )
