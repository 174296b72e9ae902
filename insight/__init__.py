"""
keyword-insight

Market and keyword research toolkit. The LLM access layer lives in
insight.llm; search engine capabilities live in insight.search.
"""

__version__ = "0.1.0"
