import os
from functools import lru_cache
from typing import List


def _int_env(name: str, default: int) -> int:
  raw = os.getenv(name, "").strip()
  if not raw:
    return default
  try:
    return int(raw)
  except ValueError:
    return default


class Settings:
  """Centralized configuration pulled from environment variables."""

  app_name: str = "Training Portal Backend"
  app_version: str = os.getenv("APP_VERSION", "0.0.1")

  supabase_jwt_secret: str
  supabase_jwt_audience: str
  supabase_issuer: str

  supabase_url: str | None
  supabase_service_role: str | None

  allowed_origins: List[str]
  usage_logging_enabled: bool

  chat_max_messages_per_session: int
  chat_max_sessions_per_user: int
  chat_session_expiry_days: int
  chat_persist_notifications: bool
  assistant_provider: str

  def __init__(self) -> None:
    self.supabase_jwt_secret = os.getenv("SUPABASE_JWT_SECRET", "")
    self.supabase_jwt_audience = os.getenv("SUPABASE_JWT_AUDIENCE", "authenticated")
    self.supabase_url = os.getenv("SUPABASE_URL")
    # issuer defaults to the project's auth endpoint when only the URL is configured
    default_issuer = f"{self.supabase_url.rstrip('/')}/auth/v1" if self.supabase_url else ""
    self.supabase_issuer = os.getenv("SUPABASE_ISSUER", default_issuer)

    self.supabase_service_role = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv(
        "SUPABASE_SERVICE_ROLE"
    )

    default_allowed = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]
    allowed = os.getenv("BACKEND_ALLOWED_ORIGINS")
    if allowed:
      self.allowed_origins = [origin.strip() for origin in allowed.split(",") if origin.strip()]
    else:
      self.allowed_origins = default_allowed

    self.usage_logging_enabled = os.getenv("ENABLE_USAGE_LOGGING", "0") == "1"

    self.chat_max_messages_per_session = _int_env("CHAT_MAX_MESSAGES_PER_SESSION", 50)
    self.chat_max_sessions_per_user = _int_env("CHAT_MAX_SESSIONS_PER_USER", 10)
    self.chat_session_expiry_days = _int_env("CHAT_SESSION_EXPIRY_DAYS", 30)
    self.chat_persist_notifications = os.getenv("CHAT_PERSIST_NOTIFICATIONS", "0") == "1"
    self.assistant_provider = (os.getenv("ASSISTANT_PROVIDER", "openai").strip().lower() or "openai")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  return Settings()


settings = get_settings()
