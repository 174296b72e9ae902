"""
Research Subcommand Module

Collects autocomplete suggestions and top results for a keyword from a
search engine, then asks the LLM access layer for a structured
unmet-needs analysis of them.
"""

import json
import sys
import click

from insight.llm.errors import ConfigurationError, AnalysisFailedError
from insight.llm.providers.base import RequestOptions
from insight.llm.service import EnhancedLLMService, is_error
from insight.search import MockSearchEngine
from insight.utils.logging_config import AnalysisProgressBar

from .analyze import echo_json, exit_for_error
from .help_texts import (
    RESEARCH_HELP,
    MAX_SUGGESTIONS_HELP,
    PROGRESS_HELP,
    CONFIGURATION_ERROR_HINT,
    ExitCodes,
)
from .shared_options import config_option, log_level_option, mock_option, load_llm_config


SEARCH_ENGINES = {
    "mock": MockSearchEngine,
}

KEYWORD_ANALYSIS_PROMPT = """keyword_analysis for "{keyword}".

Autocomplete suggestions (in rank order):
{suggestions}

Top search results:
{results}

Identify the potential unmet needs behind these searches. Respond with JSON:
{{"potentialUnmetNeeds": [{{"keyword": str, "confidence": float, "reason": str}}],
 "insights": [{{"title": str, "description": str}}]}}"""


def build_research_prompt(keyword, suggestions, results):
    return KEYWORD_ANALYSIS_PROMPT.format(
        keyword=keyword,
        suggestions="\n".join(f"{s.position}. {s.query}" for s in suggestions),
        results="\n".join(f"- {r.title}: {r.snippet}" for r in results),
    )


@click.command(help=RESEARCH_HELP)
@click.argument("keyword")
@click.option(
    "--engine",
    type=click.Choice(sorted(SEARCH_ENGINES)),
    default="mock",
    show_default=True,
    help="Search engine supplying suggestions and results."
)
@click.option("--max-suggestions", type=click.IntRange(min=1), default=5, show_default=True,
              help=MAX_SUGGESTIONS_HELP)
@click.option("--progress", is_flag=True, default=False, help=PROGRESS_HELP)
@mock_option()
@config_option()
@log_level_option()
def research(keyword, engine, max_suggestions, progress, mock, config_path, log_level, log_file):
    """Research KEYWORD and print suggestions with their analysis."""
    try:
        llm_config = load_llm_config(config_path, mock, log_level, log_file)
        search_engine = SEARCH_ENGINES[engine]()

        suggestions = search_engine.get_suggestions(keyword)[:max_suggestions]
        results = search_engine.get_search_results(keyword, max_results=max_suggestions)
        prompt = build_research_prompt(keyword, suggestions, results)

        with EnhancedLLMService(llm_config) as service:
            with AnalysisProgressBar(f"Researching {keyword}", disable=not progress) as bar:
                analysis = service.analyze(
                    prompt, "keyword_analysis",
                    RequestOptions(format="json"),
                    progress_callback=bar
                )

        if is_error(analysis):
            exit_for_error(analysis)

        echo_json({
            "keyword": keyword,
            "engine": search_engine.get_name(),
            "suggestions": [s.to_dict() for s in suggestions],
            "analysis": analysis,
        })

    except ConfigurationError as e:
        click.echo(f"\n❌ Configuration Error: {e}", err=True)
        click.echo(f"\n{CONFIGURATION_ERROR_HINT}", err=True)
        sys.exit(ExitCodes.INVALID_CONFIGURATION)

    except AnalysisFailedError as e:
        exit_for_error(e.result)
