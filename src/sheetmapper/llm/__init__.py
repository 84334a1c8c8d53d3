"""Reasoning-service client module."""

from .base import LLMClient, LLMResponse
from .anthropic_client import AnthropicClient
from .openrouter_client import OpenRouterClient
from .gemini_client import GeminiClient
from .factory import create_llm_client
from .call_log import MatcherCallLogger, MatcherCallRecord

__all__ = [
    "LLMClient",
    "LLMResponse",
    "AnthropicClient",
    "OpenRouterClient",
    "GeminiClient",
    "create_llm_client",
    "MatcherCallLogger",
    "MatcherCallRecord",
]
