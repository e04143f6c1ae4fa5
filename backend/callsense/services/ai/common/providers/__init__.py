"""Provider factory: returns the configured provider, or ``None`` when unusable."""

from __future__ import annotations

import logging

from callsense.core.config import get_settings

from .base import BaseProvider, ProviderError, ProviderResponseError, ProviderResult
from .mock import MockProvider

logger = logging.getLogger(__name__)

__all__ = [
    "get_provider",
    "BaseProvider",
    "ProviderError",
    "ProviderResponseError",
    "ProviderResult",
    "MockProvider",
]


def get_provider(provider_name: str) -> BaseProvider | None:
    """Return a provider instance for *provider_name*.

    A provider outside the allowlist, an unknown provider or a missing
    API key yields ``None``: remote scoring is disabled and callers use the
    keyword scorer instead.
    """
    settings = get_settings()
    name = provider_name.lower().strip()

    if name not in settings.ai_allowed_providers:
        logger.warning("Provider %r not in allowlist, remote scoring disabled", name)
        return None

    if name == "mock":
        return MockProvider()

    if name == "gemini":
        if not settings.gemini_api_key.strip():
            logger.warning("GEMINI_API_KEY not set, remote scoring disabled")
            return None
        from .gemini import GeminiProvider

        return GeminiProvider(api_key=settings.gemini_api_key, base_url=settings.gemini_api_base_url)

    logger.warning("Unknown provider %r, remote scoring disabled", name)
    return None
