"""Pick the assistant responder for the configured provider."""

from __future__ import annotations

import logging
from typing import Any, Protocol, TypedDict

from . import openai_client
from .local_responder import LocalResponder
from .openai_responder import OpenAIResponder
from .types import AIRequest, AIResponse, PlatformContext

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("local", "openai")


class Responder(Protocol):
    name: str

    async def process_message(
        self,
        request: AIRequest,
        context: PlatformContext | None = None,
    ) -> AIResponse: ...


class ProviderStatus(TypedDict):
    provider: str
    active: str
    configured: bool
    error: str | None


def is_provider_configured(provider: str) -> bool:
    if provider == "local":
        return True
    if provider == "openai":
        return openai_client.is_configured()
    return False


def create_responder(provider: str, **kwargs: Any) -> Responder:
    """Return the requested responder, falling back to the local one."""
    provider = (provider or "").strip().lower()
    if provider == "openai" and is_provider_configured("openai"):
        return OpenAIResponder(**kwargs)
    if provider not in ("", "local"):
        logger.info("Assistant provider %r unavailable; using local responder", provider)
    return LocalResponder()


def get_provider_status(provider: str) -> ProviderStatus:
    provider = (provider or "").strip().lower()
    configured = is_provider_configured(provider)
    if provider not in SUPPORTED_PROVIDERS:
        error: str | None = f"Unsupported provider: {provider}"
    elif not configured:
        error = "API key not configured"
    else:
        error = None
    return ProviderStatus(
        provider=provider,
        active=provider if configured else "local",
        configured=configured,
        error=error,
    )
