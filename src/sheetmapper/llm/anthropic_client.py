"""Anthropic client."""

from anthropic import AsyncAnthropic

from .base import LLMClient, LLMResponse


class AnthropicClient(LLMClient):
    """Anthropic Claude client."""

    provider = "anthropic"

    def __init__(self, api_key: str, timeout: float = 60.0):
        self.client = AsyncAnthropic(api_key=api_key, timeout=timeout)

    async def create_message(
        self,
        messages: list[dict],
        system: str,
        max_tokens: int,
        model: str,
        temperature: float = 0.1,
    ) -> LLMResponse:
        """Create a message with Claude."""
        response = await self.client.messages.create(
            model=model,
            max_tokens=max_tokens,
            system=system,
            messages=messages,
            temperature=temperature,
        )

        content = [
            {"type": "text", "text": block.text}
            for block in response.content
            if getattr(block, "type", None) == "text"
        ]
        return LLMResponse(
            content=content,
            stop_reason=response.stop_reason or "end_turn",
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
        )
