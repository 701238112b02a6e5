"""Factory for creating the web search chain from environment configuration."""

import httpx

from config.config import Config
from utils.logger import get_logger

from .chain import SearchProviderChain
from .search_providers import BingSearchProvider, SerperSearchProvider, StubSearchProvider

logger = get_logger(__name__)


def create_search_chain_from_env(
    config: Config | None = None, http_client: httpx.AsyncClient | None = None
) -> SearchProviderChain:
    """
    Create the Serper -> Bing -> stub chain.

    Environment variables:
        SERPER_API_KEY: Serper (Google) key, primary provider
        BING_API_KEY: Bing Web Search key, secondary provider
        SEARCH_TIMEOUT_S: HTTP timeout per search call (default: 10)
        SEARCH_MAX_RESULTS: Results requested per search (default: 5)

    Missing keys are not an error; the chain skips to the next provider and
    always ends at the stub.
    """
    config = config or Config()
    owned_client = None
    if http_client is None:
        http_client = owned_client = httpx.AsyncClient(timeout=config.SEARCH_TIMEOUT_S)

    providers = [
        SerperSearchProvider(config.SERPER_API_KEY, http_client, config.SEARCH_MAX_RESULTS),
        BingSearchProvider(config.BING_API_KEY, http_client, config.SEARCH_MAX_RESULTS),
    ]
    configured = [p.name for p in providers if p.is_configured]
    if configured:
        logger.info(f"Web search providers configured: {', '.join(configured)}")
    else:
        logger.warning("No web search keys configured; searches will return the stub result")

    return SearchProviderChain(providers, terminal=StubSearchProvider(), http_client=owned_client)
