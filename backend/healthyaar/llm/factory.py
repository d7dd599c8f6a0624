"""
LLM Provider Factory - Creates the configured provider instance.
"""

from typing import Optional

import httpx

from ..config import Settings
from .base import LLMProvider
from .gemini_provider import GeminiProvider


def create_llm_provider(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[LLMProvider]:
    """
    Create the Gemini provider from settings.

    Args:
        settings: Application settings
        transport: Optional httpx transport (tests, proxies)

    Returns:
        LLMProvider instance, or None if no API key is configured
    """
    if not settings.gemini_api_key:
        return None

    return GeminiProvider(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
        default_temperature=settings.llm_temperature,
        default_max_tokens=settings.llm_max_output_tokens,
        timeout=settings.llm_timeout,
        transport=transport,
    )
