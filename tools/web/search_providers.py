"""
Web search backends.

Each provider translates its upstream response shape into SearchResult /
SearchInfo. Non-terminal providers raise on failure; the chain decides what
happens next.
"""

from abc import ABC, abstractmethod
from typing import Any

import httpx

from utils.logger import get_logger

from .contracts import SearchInfo, SearchOutcome, SearchResult

logger = get_logger(__name__)

SERPER_API_URL = "https://google.serper.dev/search"
BING_SEARCH_URL = "https://api.bing.microsoft.com/v7.0/search"


class BaseSearchProvider(ABC):
    name: str = "unknown"
    source_label: str = ""

    def __init__(self, api_key: str | None, http_client: httpx.AsyncClient, max_results: int = 5):
        self.api_key = api_key or None
        self.http_client = http_client
        self.max_results = max_results

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @abstractmethod
    async def search(self, query: str) -> SearchOutcome:
        """Run the query; raises on transport or upstream failure."""


class SerperSearchProvider(BaseSearchProvider):
    """Google results via the Serper API."""

    name = "serper"
    source_label = "Google Search"

    async def search(self, query: str) -> SearchOutcome:
        response = await self.http_client.post(
            SERPER_API_URL,
            headers={"X-API-KEY": self.api_key, "Content-Type": "application/json"},
            json={"q": query, "num": self.max_results, "gl": "us", "hl": "en"},
        )
        response.raise_for_status()
        data = _json_object(response)

        results = [
            SearchResult(
                title=str(item.get("title") or ""),
                snippet=str(item.get("snippet") or ""),
                link=str(item.get("link") or ""),
                source=self.source_label,
            )
            for item in (data.get("organic") or [])
        ]
        info = data.get("searchInformation") or {}
        return SearchOutcome(
            query=query,
            results=results,
            search_info=SearchInfo(
                total_results=_as_int(info.get("totalResults")),
                search_time=_as_float(info.get("searchTime")),
            ),
            provider=self.name,
        )


class BingSearchProvider(BaseSearchProvider):
    """Bing Web Search v7."""

    name = "bing"
    source_label = "Bing Search"

    async def search(self, query: str) -> SearchOutcome:
        response = await self.http_client.get(
            BING_SEARCH_URL,
            params={"q": query, "count": self.max_results},
            headers={"Ocp-Apim-Subscription-Key": self.api_key},
        )
        response.raise_for_status()
        web_pages = _json_object(response).get("webPages") or {}

        results = [
            SearchResult(
                title=str(item.get("name") or ""),
                snippet=str(item.get("snippet") or ""),
                link=str(item.get("url") or ""),
                source=self.source_label,
            )
            for item in (web_pages.get("value") or [])
        ]
        return SearchOutcome(
            query=query,
            results=results,
            search_info=SearchInfo(
                total_results=_as_int(web_pages.get("totalEstimatedMatches")),
                search_time=0.1,
            ),
            provider=self.name,
        )


class StubSearchProvider(BaseSearchProvider):
    """Terminal link of the chain: always succeeds with one placeholder result."""

    name = "fallback"
    source_label = "Fallback Search"

    def __init__(self):
        super().__init__(api_key=None, http_client=None, max_results=1)

    @property
    def is_configured(self) -> bool:
        return True

    async def search(self, query: str) -> SearchOutcome:
        return SearchOutcome(
            query=query,
            results=[
                SearchResult(
                    title=f"Search results for: {query}",
                    snippet=(
                        "Web search functionality is available but requires API keys for full "
                        "functionality. Please add SERPER_API_KEY or BING_API_KEY to your "
                        "environment variables."
                    ),
                    link="https://example.com",
                    source=self.source_label,
                )
            ],
            search_info=SearchInfo(total_results=1, search_time=0.1),
            provider=self.name,
        )


def _json_object(response: httpx.Response) -> dict[str, Any]:
    data = response.json() if response.content else {}
    return data if isinstance(data, dict) else {}


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _as_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0
