"""
Claude API Client

Async Anthropic wrapper used by the intent parser: retries with exponential
backoff on rate limits and connection errors, then falls back to a second
model before giving up.
"""

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Optional

from anthropic import APIConnectionError, APIError, AsyncAnthropic, RateLimitError

from podiatry_scheduler.config import settings

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class ClaudeClientError(Exception):
    """Raised when a Claude call fails or returns unusable output."""
    pass


@dataclass
class ClaudeResponse:
    """Response from Claude API."""
    content: str
    model: str
    input_tokens: int
    output_tokens: int
    latency_ms: float


class ClaudeClient:
    """Async Claude API client with retry and model fallback."""

    _instance: Optional["ClaudeClient"] = None

    def __init__(self, api_key: Optional[str] = None, max_retries: int = 3):
        """Initialize Claude client.

        Args:
            api_key: Anthropic API key (defaults to settings)
            max_retries: attempts per model on transient errors
        """
        self.api_key = api_key or settings.anthropic_api_key
        if not self.api_key:
            raise ValueError("Anthropic API key is required")

        self._client = AsyncAnthropic(api_key=self.api_key)
        self._default_model = settings.claude_intent_model
        self._fallback_model = settings.claude_fallback_model
        self._max_retries = max_retries

    @classmethod
    def get_instance(cls) -> "ClaudeClient":
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton instance (useful for testing)."""
        cls._instance = None

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 512,
        temperature: float = 0.0,
        use_fallback_on_error: bool = True,
    ) -> ClaudeResponse:
        """
        Generate a completion.

        Raises:
            ClaudeClientError: if both models fail
        """
        model = model or self._default_model
        start_time = time.time()

        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            response = await self._call_with_retry(kwargs)
        except (APIError, ClaudeClientError) as e:
            if use_fallback_on_error and model != self._fallback_model:
                logger.warning(f"Model {model} failed, trying fallback: {e}")
                return await self.generate(
                    prompt=prompt,
                    system_prompt=system_prompt,
                    model=self._fallback_model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    use_fallback_on_error=False,
                )
            raise ClaudeClientError(f"Claude API call failed: {e}") from e

        return ClaudeResponse(
            content="".join(
                block.text for block in response.content if getattr(block, "type", "") == "text"
            ),
            model=model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            latency_ms=(time.time() - start_time) * 1000,
        )

    async def generate_json(self, prompt: str, **kwargs: Any) -> tuple[dict, str]:
        """
        Generate and decode a single JSON object.

        Returns:
            (decoded object, raw text)

        Raises:
            ClaudeClientError: on API failure or when no JSON object is found
        """
        response = await self.generate(prompt, **kwargs)
        match = _JSON_OBJECT.search(response.content)
        if not match:
            raise ClaudeClientError("Response contained no JSON object")
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise ClaudeClientError(f"Invalid JSON in response: {e}") from e
        if not isinstance(data, dict):
            raise ClaudeClientError("Response JSON is not an object")
        return data, response.content

    async def _call_with_retry(self, kwargs: dict[str, Any]) -> Any:
        """Call API with exponential backoff on transient errors."""
        last_error: Optional[Exception] = None

        for attempt in range(self._max_retries):
            try:
                return await self._client.messages.create(**kwargs)

            except RateLimitError as e:
                last_error = e
                wait_time = 2 ** attempt
                logger.warning(f"Rate limited, waiting {wait_time}s (attempt {attempt + 1})")
                await asyncio.sleep(wait_time)

            except APIConnectionError as e:
                last_error = e
                wait_time = 2 ** attempt
                logger.warning(f"Connection error, retrying in {wait_time}s (attempt {attempt + 1})")
                await asyncio.sleep(wait_time)

        raise ClaudeClientError(f"Max retries exceeded: {last_error}")

    async def close(self) -> None:
        """Close the client."""
        await self._client.close()


async def get_claude_client() -> ClaudeClient:
    """Get Claude client singleton instance."""
    return ClaudeClient.get_instance()
