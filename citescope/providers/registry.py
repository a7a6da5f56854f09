"""Builds provider adapters from settings, injecting each credential explicitly."""

from __future__ import annotations

from citescope.config import Settings
from citescope.models.citation import ProviderId
from citescope.providers.base import HttpProvider
from citescope.providers.claude import ClaudeProvider
from citescope.providers.gemini import GeminiProvider
from citescope.providers.openai import OpenAIProvider
from citescope.providers.perplexity import PerplexityProvider


def build_adapters(settings: Settings) -> list[HttpProvider]:
    """One adapter per provider that has a credential; the rest are omitted."""
    candidates = [
        (PerplexityProvider, settings.perplexity_api_key, settings.perplexity_model),
        (OpenAIProvider, settings.openai_api_key, settings.openai_model),
        (GeminiProvider, settings.google_api_key, settings.gemini_model),
        (ClaudeProvider, settings.anthropic_api_key, settings.claude_model),
    ]
    return [cls(api_key=key, model=model) for cls, key, model in candidates if key]


def build_timeouts(settings: Settings) -> dict[ProviderId, float]:
    return {
        ProviderId.PERPLEXITY: settings.perplexity_timeout,
        ProviderId.CHATGPT: settings.openai_timeout,
        ProviderId.GEMINI: settings.gemini_timeout,
        ProviderId.CLAUDE: settings.claude_timeout,
    }
