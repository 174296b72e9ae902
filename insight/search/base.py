"""
Search Engine Protocol

Abstract interface every search engine implements, plus the result types
it returns.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from typing import List


@dataclass(frozen=True)
class AutocompleteSuggestion:
    """One autocomplete suggestion.

    Attributes:
        query: Suggested query text
        position: 1-based rank in the suggestion list
        source: Engine that produced the suggestion
    """
    query: str
    position: int
    source: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SearchResult:
    """One organic search result."""
    title: str
    url: str
    snippet: str
    position: int

    def to_dict(self) -> dict:
        return asdict(self)


class SearchEngine(ABC):
    """Abstract base class for search engines."""

    @abstractmethod
    def get_suggestions(self, keyword: str) -> List[AutocompleteSuggestion]:
        """Autocomplete suggestions for a keyword, in rank order."""
        pass

    @abstractmethod
    def get_search_results(self, keyword: str, max_results: int = 10) -> List[SearchResult]:
        """Search results for a keyword, at most max_results of them."""
        pass

    @abstractmethod
    def get_name(self) -> str:
        pass
