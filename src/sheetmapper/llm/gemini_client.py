"""Google Gemini REST client."""

from typing import Optional

import httpx

from .base import LLMClient, LLMResponse


class GeminiClient(LLMClient):
    """Gemini ``generateContent`` REST client."""

    provider = "gemini"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    async def create_message(
        self,
        messages: list[dict],
        system: str,
        max_tokens: int,
        model: str,
        temperature: float = 0.1,
    ) -> LLMResponse:
        """Create a message via the Gemini API."""
        payload: dict = {
            "contents": self._convert_messages(messages),
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
            },
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                f"{self.base_url}/models/{model}:generateContent",
                params={"key": self.api_key},
                json=payload,
            )
            response.raise_for_status()
            data = response.json()

        return self._convert_response(data)

    def _convert_messages(self, messages: list[dict]) -> list[dict]:
        """Convert chat messages to Gemini ``contents``."""
        contents = []
        for msg in messages:
            role = "model" if msg["role"] == "assistant" else "user"
            content = msg["content"]
            if isinstance(content, list):
                text = " ".join(
                    item.get("text", "")
                    for item in content
                    if isinstance(item, dict) and item.get("type") == "text"
                )
            else:
                text = content
            contents.append({"role": role, "parts": [{"text": text}]})
        return contents

    def _convert_response(self, data: dict) -> LLMResponse:
        """Convert a Gemini response to our format."""
        candidates = data.get("candidates") or []
        content = []
        finish_reason = "STOP"
        if candidates:
            candidate = candidates[0]
            finish_reason = candidate.get("finishReason", "STOP")
            for part in candidate.get("content", {}).get("parts", []):
                if "text" in part:
                    content.append({"type": "text", "text": part["text"]})

        stop_reason_map = {
            "STOP": "end_turn",
            "MAX_TOKENS": "max_tokens",
        }

        usage = None
        metadata = data.get("usageMetadata")
        if metadata:
            usage = {
                "input_tokens": metadata.get("promptTokenCount", 0),
                "output_tokens": metadata.get("candidatesTokenCount", 0),
            }

        return LLMResponse(
            content=content,
            stop_reason=stop_reason_map.get(finish_reason, finish_reason.lower()),
            usage=usage,
        )
