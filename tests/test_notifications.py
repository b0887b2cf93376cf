import pytest
from unittest.mock import MagicMock

from app.services.assistant.notifications import (
    FanoutSink,
    NotificationService,
    SupabaseNotificationSink,
    ToastCollector,
    expiry_priority,
)


def _db(data="notif-123"):
    db = MagicMock()
    db.rpc.return_value.execute.return_value = MagicMock(data=data)
    return db


class TestToastCollector:
    def test_collects_in_order(self):
        toasts = ToastCollector()
        toasts.notify("A", "first")
        toasts.notify("B", "second", "destructive")
        assert toasts.notices == [
            {"title": "A", "description": "first", "variant": "default"},
            {"title": "B", "description": "second", "variant": "destructive"},
        ]


class TestFanoutSink:
    def test_failing_sink_does_not_stop_others(self):
        broken = MagicMock()
        broken.notify.side_effect = Exception("down")
        toasts = ToastCollector()

        FanoutSink(broken, toasts).notify("Hi", "there")

        broken.notify.assert_called_once_with("Hi", "there", "default")
        assert len(toasts.notices) == 1


class TestNotificationService:
    def test_create_notification_calls_rpc(self):
        db = _db()
        service = NotificationService(db)

        notification_id = service.create_notification(
            recipient_id="user-1",
            type="system",
            title="Hello",
            message="World",
            priority="low",
        )

        assert notification_id == "notif-123"
        name, params = db.rpc.call_args.args
        assert name == "create_notification"
        assert params["p_recipient_id"] == "user-1"
        assert params["p_priority"] == "low"
        assert params["p_metadata"] is None

    def test_missing_recipient_skips_rpc(self):
        db = _db()
        assert NotificationService(db).create_notification(
            recipient_id="  ", type="system", title="t", message="m"
        ) is None
        db.rpc.assert_not_called()

    def test_rpc_failure_returns_none(self):
        db = MagicMock()
        db.rpc.return_value.execute.side_effect = Exception("rpc failed")
        assert NotificationService(db).create_notification(
            recipient_id="user-1", type="system", title="t", message="m"
        ) is None

    def test_empty_rpc_data_returns_none(self):
        assert NotificationService(_db(data=None)).create_notification(
            recipient_id="user-1", type="system", title="t", message="m"
        ) is None

    def test_training_enrollment(self):
        db = _db()
        NotificationService(db).notify_training_enrollment(
            recipient_id="user-1",
            training_title="VCA Basic",
            training_date="2026-04-01",
            training_id="t-9",
        )
        params = db.rpc.call_args.args[1]
        assert params["p_type"] == "training_enrollment"
        assert params["p_title"] == "Enrolled in Training: VCA Basic"
        assert params["p_action_url"] == "/scheduling/t-9"
        assert params["p_related_entity_id"] == "t-9"

    @pytest.mark.parametrize("days,priority", [(3, "high"), (7, "high"), (8, "medium"), (30, "medium"), (31, "low")])
    def test_certificate_expiry_priority(self, days, priority):
        assert expiry_priority(days) == priority
        db = _db()
        NotificationService(db).notify_certificate_expiry(
            recipient_id="user-1",
            certificate_name="BHV",
            expiry_date="2026-05-01",
            days_until_expiry=days,
        )
        params = db.rpc.call_args.args[1]
        assert params["p_priority"] == priority
        assert f"{days} days remaining" in params["p_message"]
        assert params["p_action_url"] == "/certifications"


class TestSupabaseNotificationSink:
    def test_destructive_notice_is_high_priority(self):
        db = _db()
        sink = SupabaseNotificationSink(NotificationService(db), "user-1")

        sink.notify("Error", "Failed to get AI response. Please try again.", "destructive")

        params = db.rpc.call_args.args[1]
        assert params["p_type"] == "assistant_notice"
        assert params["p_priority"] == "high"
        assert params["p_related_entity_type"] == "chat_session"

    def test_default_notice_is_low_priority(self):
        db = _db()
        SupabaseNotificationSink(NotificationService(db), "user-1").notify("Conversation Trimmed", "...")
        assert db.rpc.call_args.args[1]["p_priority"] == "low"
