"""Web search tools for Mirage Chat."""

from .chain import SearchProviderChain
from .contracts import SearchInfo, SearchOutcome, SearchResult
from .factory import create_search_chain_from_env
from .intent import needs_web_search

__all__ = [
    "SearchInfo",
    "SearchOutcome",
    "SearchProviderChain",
    "SearchResult",
    "create_search_chain_from_env",
    "needs_web_search",
]
