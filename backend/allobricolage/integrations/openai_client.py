"""OpenAI integration with fallback and timeout handling."""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI
from tenacity import retry, stop_after_attempt, wait_exponential

from allobricolage.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class LLMError(Exception):
    """The model could not produce a usable answer."""


class OpenAIClient:
    """
    Client for OpenAI API with:
    - Timeout handling
    - Fallback to cheaper model
    - Retry logic
    """

    def __init__(self, api_key: Optional[str] = None):
        api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.client = AsyncOpenAI(api_key=api_key) if api_key else None
        self.primary_model = settings.OPENAI_MODEL_PRIMARY
        self.fallback_model = settings.OPENAI_MODEL_FALLBACK
        self.timeout = settings.LLM_TIMEOUT_SECONDS

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def complete(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 800,
        json_mode: bool = False,
        use_fallback_on_timeout: bool = True,
    ) -> str:
        """
        Get a chat completion with timeout handling.
        Falls back to cheaper model if primary times out.
        """
        if not self.client:
            raise LLMError("OpenAI is not configured")

        model = model or self.primary_model

        try:
            return await asyncio.wait_for(
                self._call_api(messages, model, temperature, max_tokens, json_mode),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            if not use_fallback_on_timeout or model == self.fallback_model:
                raise LLMError("LLM request timed out")
            logger.warning("Model %s timed out, retrying with %s", model, self.fallback_model)
            try:
                return await asyncio.wait_for(
                    self._call_api(messages, self.fallback_model, temperature, max_tokens, json_mode),
                    timeout=self.timeout * 2,
                )
            except asyncio.TimeoutError:
                raise LLMError("LLM request timed out on both primary and fallback models")

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
        reraise=True,
    )
    async def _call_api(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float,
        max_tokens: int,
        json_mode: bool,
    ) -> str:
        """Make the actual API call with retry."""
        kwargs: Dict[str, Any] = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        response = await self.client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )
        return response.choices[0].message.content or ""

    async def complete_json(self, messages: List[Dict[str, str]], **kwargs) -> Dict[str, Any]:
        """Chat completion parsed as a JSON object."""
        content = await self.complete(messages, json_mode=True, **kwargs)
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise LLMError(f"Model returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise LLMError("Model returned a JSON value that is not an object")
        return data
