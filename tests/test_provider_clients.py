"""
Provider adapter tests.

Everything runs offline: OpenRouter talks to an httpx.MockTransport, and the
Mistral / Gemini adapters receive fake SDK clients. The contract under test is
that adapters never raise and always hand back a ProviderCallResult.
"""

import json
import random
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest

from api.base_client import (
    SIMULATION_MARKER,
    SIMULATED_TEMPLATE,
    BaseAIClient,
)
from api.factory import create_clients
from api.google_gemini_client import GeminiClient
from api.mistral_client import MistralClient
from api.openrouter_client import OPENROUTER_API_URL, OpenRouterClient
from config.config import ProviderType
from models.provider_result import FallbackKind, StreamShape
from models.stream_event import EventKind
from orchestrator.stream_normalizer import StreamNormalizer


def mock_http(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def openrouter(handler, fake_sleep, **kwargs) -> OpenRouterClient:
    return OpenRouterClient(
        "or-key",
        http_client=mock_http(handler),
        sleep=fake_sleep,
        site_url="https://mirage.example",
        app_title="Mirage AI",
        **kwargs,
    )


class CountingLimiter:
    def __init__(self):
        self.acquired = 0

    async def acquire(self) -> float:
        self.acquired += 1
        return 0.0


async def drain(result) -> list:
    normalizer = StreamNormalizer(min_delay_s=0, max_delay_s=0, rng=random.Random(0))
    return [event async for event in normalizer.events(result)]


# -------------------------------------------------------------------
# Simulation mode
# -------------------------------------------------------------------


@pytest.mark.asyncio
async def test_missing_key_returns_simulated_text(fake_sleep):
    limiter = CountingLimiter()
    client = OpenRouterClient(None, http_client=mock_http(lambda r: httpx.Response(500)),
                              sleep=fake_sleep, simulated_delay_s=1.0, rate_limiter=limiter)

    result = await client.complete("Tell me a joke", "gpt-5")

    assert result.text == SIMULATED_TEMPLATE.format(
        label="gpt-5", prompt="Tell me a joke", key_env="OPENROUTER_API_KEY"
    )
    assert SIMULATION_MARKER in result.text
    assert result.fallback == FallbackKind.SIMULATED
    assert result.error.code == "not_configured"
    assert fake_sleep.calls == [1.0]
    assert limiter.acquired == 0


@pytest.mark.asyncio
async def test_mistral_simulation_uses_provider_label(fake_sleep):
    client = MistralClient(None, sleep=fake_sleep)

    result = await client.stream("hi", "llama-3")

    assert not result.is_stream
    assert result.text.startswith("Mistral AI Response: hi\n\n")
    assert "MISTRAL_API_KEY" in result.text


@pytest.mark.asyncio
async def test_gemini_simulation_names_its_key(fake_sleep):
    result = await GeminiClient("", sleep=fake_sleep).complete("hi", "gemini-2.5")

    assert result.text.startswith("gemini-2.5 Response: hi")
    assert "GOOGLE_GEMINI_API_KEY" in result.text


# -------------------------------------------------------------------
# OpenRouter over HTTP
# -------------------------------------------------------------------


@pytest.mark.asyncio
async def test_openrouter_sends_attribution_headers_and_mapped_model(fake_sleep):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "Paris."}}]})

    limiter = CountingLimiter()
    client = openrouter(handler, fake_sleep, rate_limiter=limiter, max_tokens=1000, temperature=0.7)

    result = await client.complete("Capital of France?", "gpt-5")

    assert result.text == "Paris."
    assert not result.is_fallback
    assert result.model == "deepseek/deepseek-r1:free"
    assert seen["url"] == OPENROUTER_API_URL
    assert seen["headers"]["Authorization"] == "Bearer or-key"
    assert seen["headers"]["HTTP-Referer"] == "https://mirage.example"
    assert seen["headers"]["X-Title"] == "Mirage AI"
    assert seen["body"] == {
        "model": "deepseek/deepseek-r1:free",
        "messages": [{"role": "user", "content": "Capital of France?"}],
        "max_tokens": 1000,
        "temperature": 0.7,
        "stream": False,
    }
    assert limiter.acquired == 1


@pytest.mark.parametrize(
    "model_id, upstream",
    [
        ("gpt-5", "deepseek/deepseek-r1:free"),
        ("claude-4", "z-ai/glm-4.5-air:free"),
        ("anything-else", "openai/gpt-oss-20b:free"),
    ],
)
def test_openrouter_model_map(model_id, upstream):
    assert OpenRouterClient(None, http_client=mock_http(lambda r: httpx.Response(200))).resolve_model(model_id) == upstream


@pytest.mark.asyncio
async def test_rate_limit_returns_high_demand_text(fake_sleep):
    client = openrouter(lambda r: httpx.Response(429, json={"error": "slow down"}), fake_sleep, failure_delay_s=1.0)

    result = await client.complete("hello", "gpt-5")

    assert result.fallback == FallbackKind.RATE_LIMITED
    assert result.text.startswith("gpt-5 Response: I'm currently experiencing high demand.")
    assert "(Rate limit reached - this is a temporary limitation from the API provider.)" in result.text
    assert result.error.code == "rate_limit"
    assert result.error.retryable is True
    assert fake_sleep.calls == [1.0]


@pytest.mark.asyncio
async def test_not_found_returns_unavailable_text(fake_sleep):
    client = openrouter(lambda r: httpx.Response(404), fake_sleep)

    result = await client.complete("hello", "claude-4")

    assert result.fallback == FallbackKind.UNAVAILABLE
    assert result.text.startswith(
        "claude-4 Response: The requested model is currently unavailable. Please try again later."
    )
    assert result.error.code == "not_found"


@pytest.mark.asyncio
async def test_other_failures_embed_prompt_and_message(fake_sleep):
    client = openrouter(lambda r: httpx.Response(500), fake_sleep)

    result = await client.complete("hello", "claude-4")

    assert result.fallback == FallbackKind.PROVIDER_ERROR
    assert result.text.startswith("claude-4 Response: hello\n\n(API call failed: ")
    assert result.text.endswith(". Showing simulated response.)")
    assert result.error.code == "provider_error"


@pytest.mark.asyncio
async def test_transport_error_never_raises(fake_sleep):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = await openrouter(handler, fake_sleep).complete("hello", "gpt-5")

    assert result.fallback == FallbackKind.PROVIDER_ERROR
    assert "connection refused" in result.text


@pytest.mark.asyncio
async def test_openrouter_stream_yields_sse_lines(fake_sleep):
    body = (
        'data: {"choices":[{"delta":{"content":"Hello"}}]}\n\n'
        'data: {"choices":[{"delta":{"content":" world"}}]}\n\n'
        "data: [DONE]\n\n"
    )

    def handler(request):
        assert json.loads(request.content)["stream"] is True
        return httpx.Response(200, content=body.encode(), headers={"content-type": "text/event-stream"})

    result = await openrouter(handler, fake_sleep).stream("hi", "gpt-5")

    assert result.is_stream
    assert result.shape == StreamShape.SSE_LINES
    events = await drain(result)
    assert [e.chunk for e in events if e.kind == EventKind.CHUNK] == ["Hello", " world"]
    assert events[-1].kind == EventKind.DONE


@pytest.mark.asyncio
async def test_openrouter_stream_error_status_degrades_before_opening(fake_sleep):
    result = await openrouter(lambda r: httpx.Response(429), fake_sleep).stream("hi", "gpt-5")

    assert not result.is_stream
    assert result.fallback == FallbackKind.RATE_LIMITED


# -------------------------------------------------------------------
# Mistral through the OpenAI SDK
# -------------------------------------------------------------------


def fake_openai(create) -> SimpleNamespace:
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


def sdk_error(cls, status: int):
    response = httpx.Response(status, request=httpx.Request("POST", "https://api.mistral.ai/v1/chat/completions"))
    return cls("upstream said no", response=response, body=None)


@pytest.mark.asyncio
async def test_mistral_complete_uses_default_model(fake_sleep):
    create = AsyncMock(
        return_value=SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="Bonjour"))])
    )
    client = MistralClient("m-key", client=fake_openai(create), sleep=fake_sleep)

    result = await client.complete("hi", "some-model")

    assert result.text == "Bonjour"
    assert create.await_args.kwargs["model"] == "mistral-large-latest"
    assert create.await_args.kwargs["messages"] == [{"role": "user", "content": "hi"}]


@pytest.mark.asyncio
async def test_mistral_stream_is_openai_chunks(fake_sleep):
    async def chunks():
        for piece in ("Bon", "jour"):
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=piece))])

    create = AsyncMock(return_value=chunks())
    client = MistralClient("m-key", client=fake_openai(create), sleep=fake_sleep)

    result = await client.stream("hi", "x")

    assert result.shape == StreamShape.OPENAI_CHUNKS
    assert create.await_args.kwargs["stream"] is True
    events = await drain(result)
    assert "".join(e.chunk for e in events) == "Bonjour"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error_cls, status, kind",
    [
        (openai.RateLimitError, 429, FallbackKind.RATE_LIMITED),
        (openai.NotFoundError, 404, FallbackKind.UNAVAILABLE),
        (openai.AuthenticationError, 401, FallbackKind.PROVIDER_ERROR),
    ],
)
async def test_mistral_sdk_errors_are_classified(fake_sleep, error_cls, status, kind):
    client = MistralClient(
        "m-key", client=fake_openai(AsyncMock(side_effect=sdk_error(error_cls, status))), sleep=fake_sleep
    )

    result = await client.complete("hi", "mistral")

    assert result.fallback == kind
    assert result.error.details["status"] == status


# -------------------------------------------------------------------
# Gemini through google-genai
# -------------------------------------------------------------------


def fake_genai(**methods) -> SimpleNamespace:
    return SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(**methods)))


@pytest.mark.asyncio
async def test_gemini_complete_and_stream(fake_sleep):
    async def pieces():
        yield SimpleNamespace(text="Hola")
        yield SimpleNamespace(text=" mundo")

    generate = AsyncMock(return_value=SimpleNamespace(text="Hola mundo"))
    generate_stream = AsyncMock(return_value=pieces())
    client = GeminiClient(
        "g-key",
        client=fake_genai(generate_content=generate, generate_content_stream=generate_stream),
        sleep=fake_sleep,
    )

    unary = await client.complete("hi", "gemini-2.5")
    streamed = await client.stream("hi", "gemini-2.5")

    assert unary.text == "Hola mundo"
    assert generate.await_args.kwargs["model"] == "gemini-2.5-flash"
    assert streamed.shape == StreamShape.GENAI_CHUNKS
    assert "".join(e.chunk for e in await drain(streamed)) == "Hola mundo"


@pytest.mark.asyncio
async def test_gemini_error_code_attribute_is_read(fake_sleep):
    class QuotaError(Exception):
        code = 429

    client = GeminiClient(
        "g-key", client=fake_genai(generate_content=AsyncMock(side_effect=QuotaError("quota"))), sleep=fake_sleep
    )

    result = await client.complete("hi", "gemini-2.5")

    assert result.fallback == FallbackKind.RATE_LIMITED


class QuotaError(Exception):
    code = 429


@pytest.mark.asyncio
async def test_gemini_stream_failing_on_first_chunk_degrades(fake_sleep):
    async def rejected():
        raise QuotaError("Resource exhausted")
        yield  # pragma: no cover

    client = GeminiClient(
        "g-key",
        client=fake_genai(generate_content_stream=AsyncMock(return_value=rejected())),
        sleep=fake_sleep,
    )

    result = await client.stream("hi", "gemini-2.5")

    assert not result.is_stream
    assert result.fallback == FallbackKind.RATE_LIMITED
    assert result.error.code == "rate_limit"
    text = "".join(e.chunk for e in await drain(result))
    assert "high demand" in text


@pytest.mark.asyncio
async def test_gemini_empty_stream_stays_a_stream(fake_sleep):
    async def nothing():
        return
        yield  # pragma: no cover

    client = GeminiClient(
        "g-key",
        client=fake_genai(generate_content_stream=AsyncMock(return_value=nothing())),
        sleep=fake_sleep,
    )

    result = await client.stream("hi", "gemini-2.5")
    events = await drain(result)

    assert result.is_stream
    assert result.fallback is None
    assert events[-1].kind == EventKind.DONE
    assert "".join(e.chunk for e in events).startswith("I apologize")


@pytest.mark.asyncio
async def test_gemini_aclose_releases_sdk_client(fake_sleep):
    genai_client = fake_genai()
    genai_client.aio.aclose = AsyncMock()
    client = GeminiClient("g-key", client=genai_client, sleep=fake_sleep)

    await client.aclose()
    await GeminiClient("", sleep=fake_sleep).aclose()

    genai_client.aio.aclose.assert_awaited_once()


# -------------------------------------------------------------------
# Base class and factory
# -------------------------------------------------------------------


class ExplodingClient(BaseAIClient):
    provider_name = "exploding"
    api_key_env = "EXPLODING_KEY"
    stream_shape = StreamShape.SSE_LINES

    async def _complete(self, prompt, upstream_model):
        raise TimeoutError("read timed out")

    async def _open_stream(self, prompt, upstream_model):
        raise ValueError("bad payload")


@pytest.mark.asyncio
async def test_base_client_classifies_timeouts_and_never_raises(fake_sleep):
    client = ExplodingClient("k", sleep=fake_sleep)

    unary = await client.complete("p", "m")
    streamed = await client.stream("p", "m")

    assert unary.error.code == "timeout"
    assert unary.error.retryable is True
    assert streamed.error.code == "provider_error"
    assert await client.call_unary("p", "m") == unary.text


def test_factory_builds_every_provider_and_limits_only_openrouter(config, registry):
    limiter = CountingLimiter()

    clients = create_clients(config, registry, limiter)

    assert set(clients) == {ProviderType.OPENROUTER, ProviderType.MISTRAL, ProviderType.GEMINI}
    assert clients[ProviderType.OPENROUTER].rate_limiter is limiter
    assert clients[ProviderType.MISTRAL].rate_limiter is None
    assert clients[ProviderType.GEMINI].rate_limiter is None
    assert not any(c.is_configured for c in clients.values())
