"""Ordered search provider chain with a stub terminal fallback."""

import time
from collections.abc import AsyncIterator, Sequence

import httpx

from models.stream_event import EventKind, StreamEvent
from utils.logger import get_logger

from .contracts import SearchOutcome
from .search_providers import BaseSearchProvider, StubSearchProvider

logger = get_logger(__name__)


class SearchProviderChain:
    """
    Tries each provider in order and falls back to the stub.

    A provider without a credential is skipped immediately; a provider that
    raises is logged and skipped. Nothing raises past the stub.
    """

    def __init__(
        self,
        providers: Sequence[BaseSearchProvider],
        terminal: BaseSearchProvider | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.providers = list(providers)
        self.terminal = terminal or StubSearchProvider()
        self._http_client = http_client

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()

    async def search(self, query: str) -> SearchOutcome:
        """Run the chain and return its outcome without exposing progress."""
        outcome = None
        async for event in self.stream_search(query):
            if event.kind == EventKind.SEARCH_COMPLETE:
                outcome = event.outcome
        return outcome

    async def stream_search(self, query: str) -> AsyncIterator[StreamEvent]:
        """
        Run the chain, yielding progress events.

        Order: search_start, search_progress per provider attempt, one
        search_result per hit, then search_complete (which carries the
        SearchOutcome in `event.outcome`).
        """
        started = time.monotonic()
        yield StreamEvent.search(EventKind.SEARCH_START, query=query)

        outcome = None
        for provider in self.providers:
            if not provider.is_configured:
                logger.debug(
                    "Search provider not configured, skipping",
                    extra={"extra_fields": {"provider": provider.name}},
                )
                yield StreamEvent.search(
                    EventKind.SEARCH_PROGRESS,
                    message=f"{provider.source_label} is not configured, skipping",
                    provider=provider.name,
                )
                continue

            yield StreamEvent.search(
                EventKind.SEARCH_PROGRESS,
                message=f"Searching with {provider.source_label}...",
                provider=provider.name,
            )
            try:
                outcome = await provider.search(query)
                break
            except Exception as e:
                logger.warning(
                    "Search provider failed, trying next",
                    extra={
                        "extra_fields": {
                            "provider": provider.name,
                            "error": str(e),
                            "error_type": type(e).__name__,
                        }
                    },
                )
                yield StreamEvent.search(
                    EventKind.SEARCH_PROGRESS,
                    message=f"{provider.source_label} failed, trying next provider",
                    provider=provider.name,
                )

        if outcome is None:
            yield StreamEvent.search(
                EventKind.SEARCH_PROGRESS,
                message=f"Using {self.terminal.source_label}",
                provider=self.terminal.name,
            )
            outcome = await self.terminal.search(query)

        total = len(outcome.results)
        for index, result in enumerate(outcome.results):
            yield StreamEvent.search(
                EventKind.SEARCH_RESULT, result=result.to_dict(), index=index, total=total
            )

        logger.info(
            "Web search complete",
            extra={
                "extra_fields": {
                    "provider": outcome.provider,
                    "results": total,
                    "elapsed_ms": int((time.monotonic() - started) * 1000),
                }
            },
        )
        yield StreamEvent.search(
            EventKind.SEARCH_COMPLETE,
            outcome=outcome,
            searchInfo=outcome.search_info.to_dict(),
            totalResults=total,
        )
