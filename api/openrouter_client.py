from collections.abc import AsyncIterator

import httpx

from models.provider_result import StreamShape
from utils.logger import get_logger

from .base_client import BaseAIClient

logger = get_logger(__name__)

OPENROUTER_API_URL = "https://openrouter.ai/api/v1/chat/completions"


class OpenRouterClient(BaseAIClient):
    """
    OpenRouter chat client over raw HTTP.

    Streaming responses are server-sent events; the open source yields the raw
    text lines ("data: {...}", "data: [DONE]") for the normalizer to parse.
    """

    provider_name = "openrouter"
    api_key_env = "OPENROUTER_API_KEY"
    stream_shape = StreamShape.SSE_LINES
    default_model = "openai/gpt-oss-20b:free"
    model_map = {
        "gpt-5": "deepseek/deepseek-r1:free",
        "claude-4": "z-ai/glm-4.5-air:free",
    }

    def __init__(
        self,
        api_key: str | None,
        *,
        site_url: str = "http://localhost:3000",
        app_title: str = "Mirage AI",
        max_tokens: int = 1000,
        temperature: float = 0.7,
        timeout_s: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
        **kwargs,
    ):
        """
        Initialize the OpenRouter client.

        Args:
            api_key: OpenRouter API key (None enables simulation mode)
            site_url: Sent as HTTP-Referer for OpenRouter attribution
            app_title: Sent as X-Title for OpenRouter attribution
            max_tokens: Maximum number of tokens to generate
            temperature: Sampling temperature
            timeout_s: HTTP timeout applied to each call
            http_client: Pre-built AsyncClient (tests pass one with a MockTransport)
            **kwargs: Forwarded to BaseAIClient
        """
        super().__init__(api_key, **kwargs)
        self.site_url = site_url
        self.app_title = app_title
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout_s)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "HTTP-Referer": self.site_url,
            "X-Title": self.app_title,
            "Content-Type": "application/json",
        }

    def _payload(self, prompt: str, upstream_model: str, stream: bool) -> dict:
        return {
            "model": upstream_model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "stream": stream,
        }

    async def _complete(self, prompt: str, upstream_model: str) -> str:
        response = await self.http_client.post(
            OPENROUTER_API_URL,
            headers=self._headers(),
            json=self._payload(prompt, upstream_model, stream=False),
        )
        response.raise_for_status()
        data = response.json()
        return data["choices"][0]["message"]["content"] or ""

    async def _open_stream(self, prompt: str, upstream_model: str) -> AsyncIterator[str]:
        request = self.http_client.build_request(
            "POST",
            OPENROUTER_API_URL,
            headers=self._headers(),
            json=self._payload(prompt, upstream_model, stream=True),
        )
        response = await self.http_client.send(request, stream=True)
        if response.is_error:
            try:
                response.raise_for_status()
            finally:
                await response.aclose()
        return self._iter_lines(response)

    @staticmethod
    async def _iter_lines(response: httpx.Response) -> AsyncIterator[str]:
        try:
            async for line in response.aiter_lines():
                yield line
        finally:
            await response.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()
