"""Base reasoning-service client interface."""

from abc import ABC, abstractmethod
from typing import Any, Optional
from dataclasses import dataclass


@dataclass
class LLMResponse:
    """Response from a reasoning service."""

    content: list[Any]
    stop_reason: str
    usage: Optional[dict] = None

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks."""
        parts = []
        for block in self.content:
            if isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)


class LLMClient(ABC):
    """Abstract base class for reasoning-service clients."""

    provider: str = "unknown"

    @abstractmethod
    async def create_message(
        self,
        messages: list[dict],
        system: str,
        max_tokens: int,
        model: str,
        temperature: float = 0.1,
    ) -> LLMResponse:
        """Send one conversation and return the completion."""
        pass
