"""
Mock Search Engine

Deterministic offline engine for tests and demos. Known keywords return
curated data; any other keyword gets generated suggestions and results
derived from the keyword itself, so the same keyword always yields the
same output.
"""

import logging
import re
from typing import Dict, List, Optional

from insight.search.base import AutocompleteSuggestion, SearchEngine, SearchResult


logger = logging.getLogger(__name__)


SOURCE = "mock"

DEFAULT_SUGGESTIONS = {
    "ai agent": [
        "AI agent frameworks",
        "AI agent examples",
        "AI agent vs chatbot",
        "AI agent development",
        "AI agent architecture",
        "AI agent use cases",
        "AI agent python",
        "AI agent with memory",
    ],
}

DEFAULT_RESULTS = {
    "ai agent": [
        {
            "title": "Understanding AI Agents: A Comprehensive Guide",
            "snippet": "AI agents are software entities that can perceive their environment, "
                       "make decisions, and take actions to achieve specific goals.",
            "url": "https://example.com/ai-agents-guide",
        },
        {
            "title": "The Difference Between AI Agents and Traditional Software",
            "snippet": "Unlike traditional software, AI agents can adapt to new situations "
                       "and operate with some degree of autonomy.",
            "url": "https://example.com/ai-vs-traditional",
        },
        {
            "title": "Building Your First AI Agent: Tutorial",
            "snippet": "A step-by-step guide to creating your first AI agent using Python.",
            "url": "https://example.com/build-ai-agent",
        },
    ],
    "ai": [
        {
            "title": "Artificial Intelligence: An Introduction",
            "snippet": "Learn about the fundamentals of artificial intelligence and how it "
                       "is transforming industries around the world.",
            "url": "https://example.com/ai-intro",
        },
        {
            "title": "The Future of AI: Trends and Predictions",
            "snippet": "Experts predict how artificial intelligence will evolve in the coming years.",
            "url": "https://example.com/ai-future",
        },
    ],
}


def _slug(keyword: str) -> str:
    return re.sub(r"\s+", "-", keyword.strip()).lower()


class MockSearchEngine(SearchEngine):
    """Offline search engine with injectable canned data.

    Example:
        >>> engine = MockSearchEngine()
        >>> [s.query for s in engine.get_suggestions("AI agent")][:2]
        ['AI agent frameworks', 'AI agent examples']
    """

    def __init__(
        self,
        suggestions: Optional[Dict[str, List[str]]] = None,
        results: Optional[Dict[str, List[dict]]] = None
    ):
        self._suggestions: Dict[str, List[str]] = {}
        self._results: Dict[str, List[dict]] = {}

        for keyword, queries in (DEFAULT_SUGGESTIONS if suggestions is None else suggestions).items():
            self.add_suggestions(keyword, queries)
        for keyword, items in (DEFAULT_RESULTS if results is None else results).items():
            self.add_results(keyword, items)

    def add_suggestions(self, keyword: str, queries: List[str]):
        self._suggestions[keyword.lower()] = list(queries)

    def add_results(self, keyword: str, results: List[dict]):
        self._results[keyword.lower()] = list(results)

    def get_suggestions(self, keyword: str) -> List[AutocompleteSuggestion]:
        logger.debug(f"Getting suggestions for keyword: {keyword}")
        queries = self._suggestions.get(keyword.lower())
        if queries is None:
            queries = [
                f"{keyword} example 1",
                f"{keyword} example 2",
                f"{keyword} tutorial",
                f"{keyword} best practices",
                f"{keyword} for beginners",
            ]
        return [
            AutocompleteSuggestion(query=query, position=index, source=SOURCE)
            for index, query in enumerate(queries, start=1)
        ]

    def get_search_results(self, keyword: str, max_results: int = 10) -> List[SearchResult]:
        logger.debug(f"Getting search results for keyword: {keyword}")
        items = self._results.get(keyword.lower())
        if items is None:
            slug = _slug(keyword)
            items = [
                {
                    "title": f"What is {keyword}? - A Comprehensive Guide",
                    "snippet": f"This guide explains everything you need to know about {keyword}, "
                               "including key concepts and practical applications.",
                    "url": f"https://example.com/{slug}-guide",
                },
                {
                    "title": f"Top 10 {keyword} Tools and Resources",
                    "snippet": f"Discover the best tools and resources for working with {keyword}.",
                    "url": f"https://example.com/top-{slug}-tools",
                },
                {
                    "title": f"{keyword} Tutorial for Beginners",
                    "snippet": f"Learn the fundamentals of {keyword} with this step-by-step tutorial.",
                    "url": f"https://example.com/{slug}-tutorial",
                },
            ]
        return [
            SearchResult(title=item["title"], url=item["url"], snippet=item["snippet"], position=index)
            for index, item in enumerate(items[:max_results], start=1)
        ]

    def get_name(self) -> str:
        return "Mock"
