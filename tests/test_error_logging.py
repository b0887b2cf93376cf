import pytest
from unittest.mock import MagicMock, patch

from app.error_logging import AppErrorLogger, build_error_row
from app.services.ai_token_usage_logger import log_ai_token_usage


class TestBuildErrorRow:
    def test_extra_fields_move_to_meta(self):
        row = build_error_row(
            {"tool": "assistant_chat", "message": "boom", "session_id": "s1", "route": None}
        )
        assert row["tool"] == "assistant_chat"
        assert row["meta"] == {"session_id": "s1"}
        assert "route" not in row
        assert "occurred_at" in row

    def test_existing_meta_is_merged(self):
        row = build_error_row({"tool": "t", "meta": {"a": 1}, "b": 2})
        assert row["meta"] == {"a": 1, "b": 2}


class TestAppErrorLogger:
    def test_log_exception_inserts_row(self):
        client = MagicMock()
        AppErrorLogger(client=client).log_exception(
            RuntimeError("upstream timeout"),
            tool="assistant_chat",
            user_id="user-1",
            session_id="s1",
        )

        client.table.assert_called_once_with("app_error_events")
        row = client.table.return_value.insert.call_args.args[0]
        assert row["message"] == "upstream timeout"
        assert row["severity"] == "error"
        assert row["user_id"] == "user-1"
        assert row["meta"] == {"error_type": "RuntimeError", "session_id": "s1"}

    def test_insert_failure_is_swallowed(self):
        client = MagicMock()
        client.table.return_value.insert.return_value.execute.side_effect = Exception("db down")
        AppErrorLogger(client=client).log({"tool": "t", "message": "m"})

    def test_disabled_without_client(self):
        with patch("app.error_logging.settings") as mock_settings:
            mock_settings.usage_logging_enabled = False
            with patch("app.error_logging.create_client") as mock_create:
                AppErrorLogger().log({"tool": "t"})
                mock_create.assert_not_called()


class TestTokenUsageLogger:
    @pytest.mark.asyncio
    async def test_inserts_usage_row(self):
        db = MagicMock()
        with patch("app.services.ai_token_usage_logger.settings") as mock_settings, patch(
            "app.services.ai_token_usage_logger.get_supabase_admin_client", return_value=db
        ):
            mock_settings.usage_logging_enabled = True
            await log_ai_token_usage(
                tool="assistant_chat",
                user_id="user-1",
                session_id="s1",
                prompt_tokens=10,
                completion_tokens=5,
                total_tokens=15,
                model="gpt-4o-mini",
            )

        db.table.assert_called_once_with("ai_token_usage")
        payload = db.table.return_value.insert.call_args.args[0]
        assert payload["total_tokens"] == 15
        assert payload["meta"] == {"session_id": "s1"}
        assert "stage" not in payload

    @pytest.mark.asyncio
    async def test_skips_without_user(self):
        with patch("app.services.ai_token_usage_logger.settings") as mock_settings, patch(
            "app.services.ai_token_usage_logger.get_supabase_admin_client"
        ) as mock_client:
            mock_settings.usage_logging_enabled = True
            await log_ai_token_usage(tool="assistant_chat", user_id=None)
            mock_client.assert_not_called()

    @pytest.mark.asyncio
    async def test_failures_are_swallowed(self):
        with patch("app.services.ai_token_usage_logger.settings") as mock_settings, patch(
            "app.services.ai_token_usage_logger.get_supabase_admin_client",
            side_effect=RuntimeError("Supabase credentials not configured"),
        ):
            mock_settings.usage_logging_enabled = True
            await log_ai_token_usage(tool="assistant_chat", user_id="user-1")
