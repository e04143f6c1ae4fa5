"""AI Router: resolves provider + generation parameters for a scoring scope."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from callsense.core.config import get_settings

from .providers import BaseProvider, get_provider

logger = logging.getLogger(__name__)

SCOPES = frozenset({"analysis", "comparison"})


@dataclass(frozen=True)
class ResolvedConfig:
    """Final resolved provider + generation parameters for one scope."""

    provider: BaseProvider | None
    model: str
    temperature: float
    max_tokens: int
    top_k: int | None
    top_p: float | None
    timeout_seconds: float
    relax_safety: bool


def resolve(scope: str) -> ResolvedConfig:
    """Resolve provider + parameters for *scope*.

    ``analysis`` scores a single transcript with the full sampling config
    (temperature, top-k, top-p, output cap). ``comparison`` compares quarters
    with a smaller output cap and default top-k / top-p. Relaxed safety
    settings apply to transcript analysis only.

    ``provider`` is ``None`` when remote scoring is not configured.
    """
    if scope not in SCOPES:
        msg = f"Unknown AI scope {scope!r}; valid: {sorted(SCOPES)}"
        raise ValueError(msg)

    settings = get_settings()
    provider = get_provider(settings.ai_analysis_provider)

    if scope == "comparison":
        return ResolvedConfig(
            provider=provider,
            model=settings.ai_analysis_model,
            temperature=settings.ai_temperature,
            max_tokens=settings.ai_comparison_max_tokens,
            top_k=None,
            top_p=None,
            timeout_seconds=settings.ai_timeout_seconds,
            relax_safety=False,
        )

    return ResolvedConfig(
        provider=provider,
        model=settings.ai_analysis_model,
        temperature=settings.ai_temperature,
        max_tokens=settings.ai_max_tokens,
        top_k=settings.ai_top_k,
        top_p=settings.ai_top_p,
        timeout_seconds=settings.ai_timeout_seconds,
        relax_safety=True,
    )
