from collections.abc import AsyncIterator
from typing import Any

import openai

from models.provider_result import StreamShape

from .base_client import BaseAIClient

MISTRAL_BASE_URL = "https://api.mistral.ai/v1"


class MistralClient(BaseAIClient):
    """
    Mistral chat client.

    Uses the OpenAI SDK with a custom base URL since the Mistral chat API is
    OpenAI-compatible. Streams are ChatCompletionChunk sequences.
    """

    provider_name = "mistral"
    api_key_env = "MISTRAL_API_KEY"
    stream_shape = StreamShape.OPENAI_CHUNKS
    default_model = "mistral-large-latest"
    model_map = {}

    def __init__(
        self,
        api_key: str | None,
        *,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        timeout_s: float = 60.0,
        client: Any = None,
        **kwargs,
    ):
        """
        Initialize the Mistral client.

        Args:
            api_key: Mistral API key (None enables simulation mode)
            max_tokens: Maximum number of tokens to generate
            temperature: Sampling temperature
            timeout_s: Request timeout passed to the SDK
            client: Pre-built AsyncOpenAI-compatible client
            **kwargs: Forwarded to BaseAIClient
        """
        super().__init__(api_key, **kwargs)
        self.max_tokens = max_tokens
        self.temperature = temperature
        if client is None and self.api_key:
            client = openai.AsyncOpenAI(
                api_key=self.api_key, base_url=MISTRAL_BASE_URL, timeout=timeout_s
            )
        self.client = client

    def simulation_label(self, model_id: str) -> str:
        return "Mistral AI"

    async def _complete(self, prompt: str, upstream_model: str) -> str:
        response = await self.client.chat.completions.create(
            model=upstream_model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        return response.choices[0].message.content or ""

    async def _open_stream(self, prompt: str, upstream_model: str) -> AsyncIterator[Any]:
        return await self.client.chat.completions.create(
            model=upstream_model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            stream=True,
        )

    async def aclose(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()
