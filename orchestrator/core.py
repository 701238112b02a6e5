"""
ChatOrchestrator - Core business logic layer for Mirage Chat.

Key guarantees:
- CLI/API layers stay thin (no provider imports there)
- No exceptions bubble up from chat() / stream_chat() / compare()
- Every stream ends with exactly one terminal event (done or error)
"""

import asyncio
import time
from collections.abc import AsyncIterator, Sequence
from typing import Any, NamedTuple

from api.base_client import BaseAIClient
from api.factory import create_clients
from config.config import Config
from models.chat import ChatMode, ChatRequest, ChatRequestError, ChatResult
from models.stream_event import EventKind, StreamEvent
from orchestrator.model_registry import ModelRegistry
from orchestrator.prompt_builder import build_prompt
from orchestrator.stream_normalizer import StreamNormalizer
from tools.web import SearchOutcome, SearchProviderChain, create_search_chain_from_env
from tools.web.intent import needs_web_search
from utils.logger import get_logger
from utils.rate_limiter import RateLimiter

logger = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"

MIN_COMPARE_MODELS = 2
MAX_COMPARE_MODELS = 4


class ComparedEvent(NamedTuple):
    """A StreamEvent from a compare run, tagged with the model that produced it.

    Search progress is shared by all models and carries index/model None.
    """

    index: int | None
    model: str | None
    event: StreamEvent

    def to_dict(self) -> dict[str, Any]:
        return {**self.event.to_dict(), "model": self.model, "index": self.index}


class ChatOrchestrator:
    def __init__(
        self,
        config: Config | None = None,
        *,
        registry: ModelRegistry | None = None,
        clients: dict | None = None,
        search_chain: SearchProviderChain | None = None,
        normalizer: StreamNormalizer | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        """
        Wire the orchestrator. Every collaborator can be injected; anything
        left out is built from `config`.

        Args:
            config: Environment configuration (defaults to Config())
            registry: Logical model -> provider routing table
            clients: Provider -> BaseAIClient mapping
            search_chain: Serper -> Bing -> stub search chain
            normalizer: Converts provider results into StreamEvents
            rate_limiter: Pacing gate shared by rate-limited providers
        """
        self.config = config or Config()
        self.registry = registry or ModelRegistry.from_yaml()
        self.rate_limiter = rate_limiter or RateLimiter(self.config.MIN_REQUEST_INTERVAL_S)
        self.clients = (
            clients
            if clients is not None
            else create_clients(self.config, self.registry, self.rate_limiter)
        )
        self.search_chain = search_chain or create_search_chain_from_env(self.config)
        self.normalizer = normalizer or StreamNormalizer.from_config(self.config)

    # ---------- helpers ----------

    def client_for(self, model_id: str) -> BaseAIClient:
        provider = self.registry.provider_for(model_id)
        try:
            return self.clients[provider]
        except KeyError as e:
            raise RuntimeError(f"No client registered for provider {provider.value}") from e

    def _should_search(self, request: ChatRequest) -> bool:
        return request.use_web_search and needs_web_search(request.message)

    async def _maybe_search(self, request: ChatRequest) -> SearchOutcome | None:
        if not self._should_search(request):
            return None
        try:
            return await self.search_chain.search(request.message)
        except Exception as e:
            logger.warning(
                "Web search failed; continuing without results",
                extra={"extra_fields": {"error": str(e), "error_type": type(e).__name__}},
            )
            return None

    async def _search_events(
        self, request: ChatRequest, found: list[SearchOutcome | None]
    ) -> AsyncIterator[StreamEvent]:
        """Forward search progress; the outcome is appended to `found`."""
        outcome = None
        if self._should_search(request):
            try:
                async for event in self.search_chain.stream_search(request.message):
                    if event.kind == EventKind.SEARCH_COMPLETE:
                        outcome = event.outcome
                    yield event
            except Exception as e:
                logger.warning(
                    "Web search failed; continuing without results",
                    extra={"extra_fields": {"error": str(e), "error_type": type(e).__name__}},
                )
                outcome = None
        found.append(outcome)

    def _log_turn(self, request: ChatRequest, outcome: SearchOutcome | None, *, stream: bool) -> None:
        logger.info(
            "Dispatching chat turn",
            extra={
                "extra_fields": {
                    "model": request.model_id,
                    "provider": self.registry.provider_for(request.model_id).value,
                    "mode": request.mode.value,
                    "stream": stream,
                    "search_results": len(outcome.results) if outcome else 0,
                }
            },
        )

    async def _unary_turn(self, request: ChatRequest, outcome: SearchOutcome | None) -> ChatResult:
        prompt = build_prompt(request.model_id, request.message, request.mode, outcome)
        self._log_turn(request, outcome, stream=False)
        start_time = time.time()
        result = await self.client_for(request.model_id).complete(prompt, request.model_id)
        logger.info(
            "Chat turn complete",
            extra={
                "extra_fields": {
                    "model": request.model_id,
                    "upstream_model": result.model,
                    "fallback": result.fallback.value if result.fallback else None,
                    "latency_ms": int((time.time() - start_time) * 1000),
                }
            },
        )
        return ChatResult(
            success=True,
            response=result.text or self.normalizer.fallback_text,
            model=request.model_id,
            mode=request.mode.value,
        )

    async def _model_events(
        self, request: ChatRequest, outcome: SearchOutcome | None
    ) -> AsyncIterator[StreamEvent]:
        prompt = build_prompt(request.model_id, request.message, request.mode, outcome)
        self._log_turn(request, outcome, stream=True)
        result = await self.client_for(request.model_id).stream(prompt, request.model_id)
        async for event in self.normalizer.events(result):
            yield event

    async def _guarded(self, events: AsyncIterator[StreamEvent], model_id: str) -> AsyncIterator[StreamEvent]:
        """Replace any unexpected failure with one generic error event."""
        try:
            async for event in events:
                yield event
        except Exception as e:
            logger.error(
                f"Streaming turn failed: {e}",
                extra={
                    "extra_fields": {
                        "model": model_id,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    }
                },
                exc_info=True,
            )
            yield StreamEvent.failure(INTERNAL_ERROR_MESSAGE)

    # ---------- single model ----------

    async def chat(self, request: ChatRequest) -> ChatResult:
        """
        Run one unary turn.

        Returns:
            ChatResult with the answer (real, simulated or fallback text), or
            success=False with a generic error when something unexpected failed
        """
        try:
            outcome = await self._maybe_search(request)
            return await self._unary_turn(request, outcome)
        except Exception as e:
            logger.error(
                f"Chat turn failed: {e}",
                extra={
                    "extra_fields": {
                        "model": request.model_id,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    }
                },
                exc_info=True,
            )
            return ChatResult(success=False, error=INTERNAL_ERROR_MESSAGE)

    async def stream_chat(self, request: ChatRequest) -> AsyncIterator[StreamEvent]:
        """
        Run one streaming turn.

        Yields search progress events first (when a search runs), then chunk
        events, then exactly one done or error event.
        """
        async for event in self._guarded(self._stream_turn(request), request.model_id):
            yield event

    async def _stream_turn(self, request: ChatRequest) -> AsyncIterator[StreamEvent]:
        found: list[SearchOutcome | None] = []
        async for event in self._search_events(request, found):
            yield event
        async for event in self._model_events(request, found[0] if found else None):
            yield event

    # ---------- compare ----------

    def build_compare_requests(
        self,
        message: str,
        model_ids: Sequence[str],
        mode: ChatMode | str,
        use_web_search: bool,
    ) -> list[ChatRequest]:
        if not MIN_COMPARE_MODELS <= len(model_ids) <= MAX_COMPARE_MODELS:
            raise ChatRequestError(
                f"Compare requires between {MIN_COMPARE_MODELS} and {MAX_COMPARE_MODELS} models"
            )
        return [
            ChatRequest(message=message, model_id=model_id, mode=mode, use_web_search=use_web_search)
            for model_id in model_ids
        ]

    async def compare(
        self,
        message: str,
        model_ids: Sequence[str],
        mode: ChatMode | str = ChatMode.DETAILED,
        use_web_search: bool = True,
    ) -> list[ChatResult]:
        """
        Ask several models the same question concurrently.

        The web search (if any) runs once and is shared by every model.

        Returns:
            One ChatResult per model, in request order

        Raises:
            ChatRequestError: Invalid message, mode or model count
        """
        requests = self.build_compare_requests(message, model_ids, mode, use_web_search)
        outcome = await self._maybe_search(requests[0])

        logger.info(
            f"Starting comparison with {len(requests)} models",
            extra={"extra_fields": {"models": list(model_ids)}},
        )

        async def run(request: ChatRequest) -> ChatResult:
            try:
                return await self._unary_turn(request, outcome)
            except Exception as e:
                logger.error(
                    f"Compare turn failed: {e}",
                    extra={
                        "extra_fields": {
                            "model": request.model_id,
                            "error": str(e),
                            "error_type": type(e).__name__,
                        }
                    },
                    exc_info=True,
                )
                return ChatResult(success=False, model=request.model_id, error=INTERNAL_ERROR_MESSAGE)

        return list(await asyncio.gather(*(run(r) for r in requests)))

    async def stream_compare(
        self,
        message: str,
        model_ids: Sequence[str],
        mode: ChatMode | str = ChatMode.DETAILED,
        use_web_search: bool = True,
    ) -> AsyncIterator[ComparedEvent]:
        """
        Stream several models at once.

        Shared search events come first; model events are then interleaved in
        arrival order. Each model's events end with exactly one terminal event.

        Raises:
            ChatRequestError: Invalid message, mode or model count (before any event)
        """
        requests = self.build_compare_requests(message, model_ids, mode, use_web_search)

        found: list[SearchOutcome | None] = []
        async for event in self._search_events(requests[0], found):
            yield ComparedEvent(None, None, event)
        outcome = found[0] if found else None

        queue: asyncio.Queue = asyncio.Queue()

        async def pump(index: int, request: ChatRequest) -> None:
            try:
                events = self._guarded(self._model_events(request, outcome), request.model_id)
                async for event in events:
                    await queue.put(ComparedEvent(index, request.model_id, event))
            finally:
                await queue.put(None)

        tasks = [asyncio.create_task(pump(i, r)) for i, r in enumerate(requests)]
        remaining = len(tasks)
        try:
            while remaining:
                item = await queue.get()
                if item is None:
                    remaining -= 1
                    continue
                yield item
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    # ---------- lifecycle ----------

    async def aclose(self) -> None:
        """Close provider and search transports."""
        for client in self.clients.values():
            try:
                await client.aclose()
            except Exception as e:
                logger.warning(f"Error closing {client.provider_name} client: {e}")
        await self.search_chain.aclose()
