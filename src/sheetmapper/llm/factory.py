"""Client construction from an external service configuration."""

import logging
from typing import Optional

from ..config import ExternalServiceConfig
from .anthropic_client import AnthropicClient
from .base import LLMClient
from .gemini_client import GeminiClient
from .openrouter_client import OpenRouterClient

logger = logging.getLogger(__name__)


def create_llm_client(config: ExternalServiceConfig) -> Optional[LLMClient]:
    """Create the client for the configured provider.

    Returns None when no API key is configured; callers treat that as
    "external matching disabled" rather than an error.
    """
    if not config.is_configured:
        logger.info(f"No API key configured for provider '{config.provider}'; external matchers disabled")
        return None

    if config.provider == "openrouter":
        if config.base_url:
            return OpenRouterClient(
                api_key=config.api_key, base_url=config.base_url, timeout=config.timeout_seconds
            )
        return OpenRouterClient(api_key=config.api_key, timeout=config.timeout_seconds)
    if config.provider == "gemini":
        if config.base_url:
            return GeminiClient(
                api_key=config.api_key, base_url=config.base_url, timeout=config.timeout_seconds
            )
        return GeminiClient(api_key=config.api_key, timeout=config.timeout_seconds)

    # Default to Anthropic
    return AnthropicClient(api_key=config.api_key, timeout=config.timeout_seconds)
