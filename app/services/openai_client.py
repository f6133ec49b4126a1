"""
Generative text/vision client.
Thin wrapper over an OpenAI-compatible chat completions endpoint.
"""
import base64
import logging
from typing import Any, Dict, List, Optional

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


class GenerativeClient:
    """Client for chat completions with optional image input."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.base_url = settings.openai_base_url.rstrip("/")
        self.text_model = settings.openai_text_model
        self.vision_model = settings.openai_vision_model
        self.timeout = settings.openai_timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) and self.api_key != "placeholder"

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 300,
        temperature: float = 0.1,
    ) -> str:
        """Run a text completion and return the message content."""
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        return await self._chat(self.text_model, messages, max_tokens, temperature)

    async def complete_with_image(
        self,
        prompt: str,
        image_bytes: bytes,
        content_type: str = "image/jpeg",
        max_tokens: int = 500,
        temperature: float = 0.1,
    ) -> str:
        """Send an image with a prompt to the vision model."""
        encoded = base64.b64encode(image_bytes).decode("ascii")
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:{content_type};base64,{encoded}"},
                    },
                ],
            }
        ]
        return await self._chat(self.vision_model, messages, max_tokens, temperature)

    async def _chat(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        max_tokens: int,
        temperature: float,
    ) -> str:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=headers,
            )
            response.raise_for_status()
            data = response.json()

        logger.debug(f"Completion from {model}: usage={data.get('usage')}")
        return data.get("choices", [{}])[0].get("message", {}).get("content") or ""


# Global instance
generative_client = GenerativeClient()
