import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from typing import Any, Awaitable, Callable

from models.provider_result import FallbackKind, NormalizedError, ProviderCallResult, StreamShape
from utils.logger import get_logger
from utils.rate_limiter import RateLimiter

logger = get_logger(__name__)

SIMULATION_MARKER = "(This is a simulated response."

SIMULATED_TEMPLATE = (
    "{label} Response: {prompt}\n\n"
    "(This is a simulated response. Add your {key_env} to environment variables for real API calls.)"
)
RATE_LIMITED_TEMPLATE = (
    "{model_id} Response: I'm currently experiencing high demand. Please try again in a moment.\n\n"
    "(Rate limit reached - this is a temporary limitation from the API provider.)"
)
UNAVAILABLE_TEMPLATE = (
    "{model_id} Response: The requested model is currently unavailable. Please try again later.\n\n"
    "(Model not found error - the API provider may be updating their models.)"
)
PROVIDER_ERROR_TEMPLATE = (
    "{model_id} Response: {prompt}\n\n(API call failed: {message}. Showing simulated response.)"
)


class BaseAIClient(ABC):
    """
    Abstract base class for upstream chat providers.

    Subclasses implement `_complete` and `_open_stream` against their own
    transport and may raise freely there. The public `complete` / `stream`
    methods never raise: missing credentials yield a simulated response and
    upstream failures are classified into fallback text.
    """

    provider_name: str = "unknown"
    api_key_env: str = ""
    stream_shape: StreamShape
    default_model: str = ""
    model_map: Mapping[str, str] = {}

    def __init__(
        self,
        api_key: str | None,
        *,
        model_map: Mapping[str, str] | None = None,
        default_model: str | None = None,
        rate_limiter: RateLimiter | None = None,
        simulated_delay_s: float = 1.0,
        failure_delay_s: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the client.

        Args:
            api_key: Provider credential; None or empty enables simulation mode
            model_map: Logical model id -> upstream model identifier
            default_model: Upstream model used for unmapped ids
            rate_limiter: Shared pacing gate consulted before each real call
            simulated_delay_s: Latency imitated by simulated responses
            failure_delay_s: Pause before returning fallback text after a failure
            sleep: Awaitable sleep, injectable for tests
        """
        self.api_key = api_key or None
        self.model_map = dict(model_map if model_map is not None else self.model_map)
        self.default_model = default_model or self.default_model
        self.rate_limiter = rate_limiter
        self.simulated_delay_s = simulated_delay_s
        self.failure_delay_s = failure_delay_s
        self._sleep = sleep

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def resolve_model(self, model_id: str) -> str:
        """Map a logical model id to the upstream model identifier."""
        return self.model_map.get(model_id, self.default_model)

    def simulation_label(self, model_id: str) -> str:
        return model_id

    @abstractmethod
    async def _complete(self, prompt: str, upstream_model: str) -> str:
        """Perform one blocking completion and return the answer text."""

    @abstractmethod
    async def _open_stream(self, prompt: str, upstream_model: str) -> AsyncIterator[Any]:
        """Open an incremental source yielding provider-native items of `stream_shape`."""

    async def aclose(self) -> None:
        """Release transport resources. Subclasses with clients override this."""

    async def complete(self, prompt: str, model_id: str) -> ProviderCallResult:
        """
        Get a complete answer for the prompt.

        Returns:
            ProviderCallResult carrying text (real, simulated or fallback)

        IMPORTANT: Never raises exceptions - degrades to fallback text instead
        """
        if not self.is_configured:
            return await self._simulated(prompt, model_id)

        upstream_model = self.resolve_model(model_id)
        request_id = self._generate_request_id()
        start_time = time.time()
        try:
            await self._pace()
            text = await self._complete(prompt, upstream_model)
            logger.info(
                f"{self.provider_name} completion successful",
                extra={
                    "extra_fields": {
                        "request_id": request_id,
                        "model": upstream_model,
                        "latency_ms": self._measure_latency(start_time),
                        "chars": len(text or ""),
                    }
                },
            )
            return ProviderCallResult.from_text(self.provider_name, upstream_model, text or "")
        except Exception as e:
            return await self._degrade(e, prompt, model_id, upstream_model, request_id)

    async def call_unary(self, prompt: str, model_id: str) -> str:
        result = await self.complete(prompt, model_id)
        return result.text or ""

    async def stream(self, prompt: str, model_id: str) -> ProviderCallResult:
        """
        Open an incremental answer for the prompt.

        Returns:
            ProviderCallResult with an open stream tagged by `stream_shape`, or
            with text when the call degraded before the stream opened
        """
        if not self.is_configured:
            return await self._simulated(prompt, model_id)

        upstream_model = self.resolve_model(model_id)
        request_id = self._generate_request_id()
        try:
            await self._pace()
            source = await self._open_stream(prompt, upstream_model)
            logger.info(
                f"{self.provider_name} stream opened",
                extra={"extra_fields": {"request_id": request_id, "model": upstream_model}},
            )
            return ProviderCallResult.from_stream(
                self.provider_name, upstream_model, source, self.stream_shape
            )
        except Exception as e:
            return await self._degrade(e, prompt, model_id, upstream_model, request_id)

    async def _pace(self) -> None:
        if self.rate_limiter is not None:
            await self.rate_limiter.acquire()

    async def _simulated(self, prompt: str, model_id: str) -> ProviderCallResult:
        await self._sleep(self.simulated_delay_s)
        text = SIMULATED_TEMPLATE.format(
            label=self.simulation_label(model_id), prompt=prompt, key_env=self.api_key_env
        )
        return ProviderCallResult.from_text(
            self.provider_name,
            self.resolve_model(model_id),
            text,
            fallback=FallbackKind.SIMULATED,
            error=NormalizedError(
                code="not_configured",
                message=f"{self.api_key_env} is not set",
                provider=self.provider_name,
            ),
        )

    async def _degrade(
        self, exc: Exception, prompt: str, model_id: str, upstream_model: str, request_id: str
    ) -> ProviderCallResult:
        error = self._normalize_error(exc)
        logger.error(
            f"{self.provider_name} call failed: {error.code}",
            extra={
                "extra_fields": {
                    "request_id": request_id,
                    "model": upstream_model,
                    "error_code": error.code,
                    "error_message": error.message,
                    "retryable": error.retryable,
                }
            },
        )
        await self._sleep(self.failure_delay_s)

        if error.code == "rate_limit":
            kind = FallbackKind.RATE_LIMITED
            text = RATE_LIMITED_TEMPLATE.format(model_id=model_id)
        elif error.code == "not_found":
            kind = FallbackKind.UNAVAILABLE
            text = UNAVAILABLE_TEMPLATE.format(model_id=model_id)
        else:
            kind = FallbackKind.PROVIDER_ERROR
            text = PROVIDER_ERROR_TEMPLATE.format(
                model_id=model_id, prompt=prompt, message=error.message
            )
        return ProviderCallResult.from_text(
            self.provider_name, upstream_model, text, fallback=kind, error=error
        )

    def _normalize_error(self, exc: Exception) -> NormalizedError:
        """
        Classify an upstream exception.

        The HTTP status is read from whichever attribute the transport exposes
        (`status_code`, `code`, or `response.status_code`); the message text is
        checked as well because some clients only report it there.
        """
        message = str(exc) or type(exc).__name__
        lowered = message.lower()
        status = _status_code(exc)
        details = {"status": status, "error_type": type(exc).__name__}

        if status == 429 or "429" in message:
            code, retryable = "rate_limit", True
        elif status == 404 or "404" in message or "not found" in lowered:
            code, retryable = "not_found", False
        elif status in (401, 403):
            code, retryable = "auth", False
        elif isinstance(exc, (TimeoutError, asyncio.TimeoutError)) or "timed out" in lowered:
            code, retryable = "timeout", True
        elif status is not None and 400 <= status < 500:
            code, retryable = "bad_request", False
        else:
            code, retryable = "provider_error", True

        return NormalizedError(
            code=code,
            message=message,
            provider=self.provider_name,
            retryable=retryable,
            details=details,
        )

    @staticmethod
    def _generate_request_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def _measure_latency(start_time: float) -> int:
        return int((time.time() - start_time) * 1000)


def _status_code(exc: Exception) -> int | None:
    for attr in ("status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None
