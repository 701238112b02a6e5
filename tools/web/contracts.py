"""Data contracts for the web search module."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SearchResult:
    """One web hit, normalized across search providers."""

    title: str
    snippet: str
    link: str
    source: str

    def to_dict(self) -> dict[str, str]:
        return {
            "title": self.title,
            "snippet": self.snippet,
            "link": self.link,
            "source": self.source,
        }


@dataclass(frozen=True)
class SearchInfo:
    total_results: int = 0
    search_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"totalResults": self.total_results, "searchTime": self.search_time}


@dataclass(frozen=True)
class SearchOutcome:
    """Result of one search attempt, owned by the turn that requested it."""

    query: str
    results: list[SearchResult] = field(default_factory=list)
    search_info: SearchInfo = field(default_factory=SearchInfo)
    provider: str = ""

    @property
    def has_results(self) -> bool:
        return len(self.results) > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "results": [r.to_dict() for r in self.results],
            "searchInfo": self.search_info.to_dict(),
        }
