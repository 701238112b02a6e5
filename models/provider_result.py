from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class StreamShape(Enum):
    """Wire shape of an open upstream stream; one member per provider format."""

    SSE_LINES = "sse_lines"  # raw "data: {json}" lines, "[DONE]" sentinel
    OPENAI_CHUNKS = "openai_chunks"  # ChatCompletionChunk objects
    GENAI_CHUNKS = "genai_chunks"  # GenerateContentResponse objects


class FallbackKind(Enum):
    """Which degraded path produced a text result."""

    SIMULATED = "simulated"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    PROVIDER_ERROR = "provider_error"


@dataclass(frozen=True)
class NormalizedError:
    code: str
    message: str
    provider: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        valid_codes = {
            "timeout",
            "auth",
            "rate_limit",
            "not_found",
            "bad_request",
            "provider_error",
            "not_configured",
            "unknown",
        }
        if self.code not in valid_codes:
            object.__setattr__(self, "code", "unknown")


@dataclass(frozen=True)
class ProviderCallResult:
    """
    Outcome of one upstream call.

    Carries either complete text or an open incremental source tagged with its
    StreamShape. Degraded outcomes are still text; `fallback` and `error` say why.
    """

    provider: str
    model: str
    text: str | None = None
    stream: AsyncIterator[Any] | None = None
    shape: StreamShape | None = None
    fallback: FallbackKind | None = None
    error: NormalizedError | None = None

    def __post_init__(self):
        if (self.text is None) == (self.stream is None):
            raise ValueError("ProviderCallResult needs exactly one of text or stream")
        if self.stream is not None and not isinstance(self.shape, StreamShape):
            raise ValueError("Streaming results must declare a StreamShape")

    @property
    def is_stream(self) -> bool:
        return self.stream is not None

    @property
    def is_fallback(self) -> bool:
        return self.fallback is not None

    @classmethod
    def from_text(cls, provider: str, model: str, text: str, **kwargs) -> "ProviderCallResult":
        return cls(provider=provider, model=model, text=text, **kwargs)

    @classmethod
    def from_stream(
        cls, provider: str, model: str, stream: AsyncIterator[Any], shape: StreamShape
    ) -> "ProviderCallResult":
        return cls(provider=provider, model=model, stream=stream, shape=shape)
