from collections.abc import AsyncIterator
from typing import Any

from google import genai

from models.provider_result import StreamShape

from .base_client import BaseAIClient


class GeminiClient(BaseAIClient):
    """
    A client for the Google Gemini API using the google.genai package.
    Calls go through the async surface (`client.aio`); streams yield
    GenerateContentResponse objects whose `.text` holds the delta.
    """

    provider_name = "gemini"
    api_key_env = "GOOGLE_GEMINI_API_KEY"
    stream_shape = StreamShape.GENAI_CHUNKS
    default_model = "gemini-2.5-flash"
    model_map = {"gemini-2.5": "gemini-2.5-flash"}

    def __init__(
        self,
        api_key: str | None,
        *,
        max_output_tokens: int = 1000,
        temperature: float = 0.7,
        client: Any = None,
        **kwargs,
    ):
        """
        Initialize the Gemini client.

        Args:
            api_key: The Google Gemini API key (None enables simulation mode)
            max_output_tokens: Maximum number of tokens to generate
            temperature: Controls randomness (0.0 to 1.0)
            client: Pre-built genai.Client
            **kwargs: Forwarded to BaseAIClient
        """
        super().__init__(api_key, **kwargs)
        self.max_output_tokens = max_output_tokens
        self.temperature = temperature
        if client is None and self.api_key:
            client = genai.Client(api_key=self.api_key)
        self.client = client

    def _generation_config(self) -> dict:
        return {
            'temperature': self.temperature,
            'max_output_tokens': self.max_output_tokens,
        }

    async def _complete(self, prompt: str, upstream_model: str) -> str:
        response = await self.client.aio.models.generate_content(
            model=upstream_model,
            contents=prompt,
            config=self._generation_config(),
        )
        return getattr(response, 'text', None) or ""

    async def _open_stream(self, prompt: str, upstream_model: str) -> AsyncIterator[Any]:
        source = await self.client.aio.models.generate_content_stream(
            model=upstream_model,
            contents=prompt,
            config=self._generation_config(),
        )
        # The SDK sends the request on first iteration, so upstream errors
        # surface here rather than mid-stream.
        try:
            first = await anext(source)
        except StopAsyncIteration:
            return _resume(None, source)
        return _resume(first, source)

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aio.aclose()


async def _resume(first: Any, source: AsyncIterator[Any]) -> AsyncIterator[Any]:
    """Replay an already-fetched first chunk, then the rest of the stream."""
    try:
        if first is None:
            return
        yield first
        async for chunk in source:
            yield chunk
    finally:
        close = getattr(source, "aclose", None)
        if close is not None:
            await close()
