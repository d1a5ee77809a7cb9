import logging
from typing import Optional

from fastapi import Request
from openai import AsyncOpenAI

from eduhive.core.config import settings

logger = logging.getLogger(__name__)


class LLMNotConfiguredError(Exception):
    """No API key is configured for the language model service."""


class EmptyCompletionError(Exception):
    """The language model returned no text."""


class LLMClient:
    """Non-streaming chat completions against an OpenAI-compatible endpoint."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str,
        text_model: str,
        vision_model: str,
        temperature: float = 0.7,
        max_tokens: int = 800,
        vision_max_tokens: int = 1000,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.text_model = text_model
        self.vision_model = vision_model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.vision_max_tokens = vision_max_tokens
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout) if api_key else None

    @classmethod
    def from_settings(cls) -> "LLMClient":
        return cls(
            api_key=settings.LLM_API_KEY,
            base_url=settings.LLM_BASE_URL,
            text_model=settings.LLM_TEXT_MODEL,
            vision_model=settings.LLM_VISION_MODEL,
            temperature=settings.LLM_TEMPERATURE,
            max_tokens=settings.LLM_MAX_TOKENS,
            vision_max_tokens=settings.LLM_VISION_MAX_TOKENS,
            timeout=settings.LLM_TIMEOUT_SECONDS,
        )

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def complete(self, system_prompt: str, user_prompt: str, image_url: Optional[str] = None) -> str:
        """Return one complete answer; tries the vision model first when an image is given."""
        if not self.configured:
            raise LLMNotConfiguredError("LLM_API_KEY is not set")

        if image_url:
            try:
                return await self._create(
                    self.vision_model,
                    [
                        {"role": "system", "content": system_prompt},
                        {
                            "role": "user",
                            "content": [
                                {"type": "text", "text": user_prompt + "\n\nPlease also analyze this image and incorporate it into your explanation:"},
                                {"type": "image_url", "image_url": {"url": image_url}},
                            ],
                        },
                    ],
                    self.vision_max_tokens,
                )
            except Exception as e:
                logger.warning(f"Vision completion failed, falling back to text-only: {e}")

        return await self._create(
            self.text_model,
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            self.max_tokens,
        )

    async def _create(self, model: str, messages: list, max_tokens: int) -> str:
        logger.info(f"LLM request to {model} with {len(messages)} messages")
        completion = await self.client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=self.temperature,
            max_tokens=max_tokens,
        )
        content = completion.choices[0].message.content if completion.choices else None
        if not content or not content.strip():
            raise EmptyCompletionError(f"{model} returned an empty completion")
        return content.strip()


def get_llm_client(request: Request) -> LLMClient:
    """FastAPI dependency returning the app's LLM client"""
    return request.app.state.llm
