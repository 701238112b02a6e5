"""
Stream normalization.

Turns any ProviderCallResult into the uniform StreamEvent sequence: zero or
more `chunk` events followed by exactly one terminal `done` or `error`.
"""

import asyncio
import json
import random
import re
from collections.abc import AsyncIterator
from typing import Any, Awaitable, Callable

from config.config import Config
from models.provider_result import ProviderCallResult, StreamShape
from models.stream_event import StreamEvent
from utils.logger import get_logger

logger = get_logger(__name__)

FALLBACK_APOLOGY_TEXT = (
    "I apologize, but I wasn't able to generate a response right now. "
    "Please try again in a moment."
)

_WORD_PIECES = re.compile(r"\s*\S+\s*|\s+")


class UpstreamStreamError(RuntimeError):
    """An upstream stream reported an error inside its payload."""


async def _sse_line_deltas(source: AsyncIterator[str]) -> AsyncIterator[str]:
    async for line in source:
        if not line.startswith("data: "):
            continue
        data = line[6:].strip()
        if data == "[DONE]":
            return
        try:
            parsed = json.loads(data)
        except json.JSONDecodeError:
            continue
        if not isinstance(parsed, dict):
            continue
        if parsed.get("error"):
            error = parsed["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise UpstreamStreamError(message or "Upstream stream error")
        choices = parsed.get("choices") or [{}]
        content = ((choices[0] or {}).get("delta") or {}).get("content")
        if content:
            yield content


async def _openai_chunk_deltas(source: AsyncIterator[Any]) -> AsyncIterator[str]:
    async for chunk in source:
        choices = getattr(chunk, "choices", None) or []
        if not choices:
            continue
        content = getattr(choices[0].delta, "content", None)
        if content:
            yield content


async def _genai_chunk_deltas(source: AsyncIterator[Any]) -> AsyncIterator[str]:
    async for chunk in source:
        content = getattr(chunk, "text", None)
        if content:
            yield content


_DELTA_EXTRACTORS = {
    StreamShape.SSE_LINES: _sse_line_deltas,
    StreamShape.OPENAI_CHUNKS: _openai_chunk_deltas,
    StreamShape.GENAI_CHUNKS: _genai_chunk_deltas,
}

_missing_shapes = set(StreamShape) - set(_DELTA_EXTRACTORS)
if _missing_shapes:
    raise RuntimeError(f"No delta extractor for stream shapes: {sorted(s.value for s in _missing_shapes)}")


def split_words(text: str) -> list[str]:
    """
    Split text on single spaces; every token after the first keeps a leading
    space so that "".join(split_words(t)) == t.
    """
    words = text.split(" ")
    return [word if i == 0 else " " + word for i, word in enumerate(words)]


class StreamNormalizer:
    """
    Converts provider results into StreamEvents.

    - Complete text is emitted word by word with a small randomized pause.
    - Open streams are forwarded delta by delta.
    - A stream that raises or ends before producing any content is replaced
      by FALLBACK_APOLOGY_TEXT.
    - A stream that raises after producing content ends with one error event.
    """

    def __init__(
        self,
        *,
        min_delay_s: float = 0.05,
        max_delay_s: float = 0.15,
        idle_timeout_s: float | None = 60.0,
        resplit_words: bool = False,
        fallback_text: str = FALLBACK_APOLOGY_TEXT,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ):
        self.min_delay_s = min_delay_s
        self.max_delay_s = max(max_delay_s, min_delay_s)
        self.idle_timeout_s = idle_timeout_s
        self.resplit_words = resplit_words
        self.fallback_text = fallback_text
        self._sleep = sleep
        self._rng = rng or random.Random()

    @classmethod
    def from_config(cls, config: Config) -> "StreamNormalizer":
        return cls(
            min_delay_s=config.STREAM_MIN_DELAY_S,
            max_delay_s=config.STREAM_MAX_DELAY_S,
            idle_timeout_s=config.STREAM_IDLE_TIMEOUT_S or None,
        )

    async def events(self, result: ProviderCallResult) -> AsyncIterator[StreamEvent]:
        if not result.is_stream:
            text = result.text if result.text else self.fallback_text
            async for event in self.text_events(text):
                yield event
            return

        produced = False
        try:
            async for delta in self._deltas(result):
                for piece in self._pieces(delta):
                    produced = True
                    yield StreamEvent.text(piece)
        except Exception as e:
            if produced:
                logger.error(
                    "Upstream stream failed mid-response",
                    extra={
                        "extra_fields": {
                            "provider": result.provider,
                            "model": result.model,
                            "error": str(e),
                            "error_type": type(e).__name__,
                        }
                    },
                )
                yield StreamEvent.failure(str(e) or type(e).__name__)
                return
            logger.warning(
                "Upstream stream failed before any content; sending fallback text",
                extra={
                    "extra_fields": {
                        "provider": result.provider,
                        "model": result.model,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    }
                },
            )
        finally:
            await _close_source(result.stream)

        if not produced:
            logger.warning(
                "Upstream stream produced no content",
                extra={"extra_fields": {"provider": result.provider, "model": result.model}},
            )
            async for event in self.text_events(self.fallback_text):
                yield event
            return

        yield StreamEvent.done()

    async def text_events(self, text: str) -> AsyncIterator[StreamEvent]:
        """Emit complete text as paced word chunks followed by done."""
        words = split_words(text)
        for i, word in enumerate(words):
            yield StreamEvent.text(word)
            if i < len(words) - 1:
                await self._pause()
        yield StreamEvent.done()

    async def _deltas(self, result: ProviderCallResult) -> AsyncIterator[str]:
        extractor = _DELTA_EXTRACTORS[result.shape]
        deltas = extractor(result.stream)
        try:
            while True:
                try:
                    if self.idle_timeout_s:
                        delta = await asyncio.wait_for(deltas.__anext__(), self.idle_timeout_s)
                    else:
                        delta = await deltas.__anext__()
                except StopAsyncIteration:
                    return
                yield delta
        finally:
            await deltas.aclose()

    def _pieces(self, delta: str) -> list[str]:
        if not self.resplit_words:
            return [delta]
        return _WORD_PIECES.findall(delta)

    async def _pause(self) -> None:
        if self.max_delay_s <= 0:
            return
        await self._sleep(self._rng.uniform(self.min_delay_s, self.max_delay_s))


async def _close_source(source: Any) -> None:
    for name in ("aclose", "close"):
        closer = getattr(source, name, None)
        if closer is None:
            continue
        try:
            outcome = closer()
            if asyncio.iscoroutine(outcome):
                await outcome
        except Exception as e:
            logger.debug(f"Ignoring error while closing upstream stream: {e}")
        return
