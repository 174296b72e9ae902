"""
Search Engine Capability

Search engines supply autocomplete suggestions and result snippets that
agents feed into the LLM access layer.
"""

from insight.search.base import AutocompleteSuggestion, SearchResult, SearchEngine
from insight.search.mock_engine import MockSearchEngine

__all__ = [
    "AutocompleteSuggestion",
    "SearchResult",
    "SearchEngine",
    "MockSearchEngine",
]
