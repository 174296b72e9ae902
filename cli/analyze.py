"""
Analyze Subcommand Module

Runs one prompt through the LLM access layer and prints the parsed result
as JSON. Upstream failures print the structured error and exit non-zero.
"""

import json
import sys
import logging
import click

from insight.llm.errors import ConfigurationError, AnalysisFailedError
from insight.llm.providers.base import RequestOptions, VALID_FORMATS
from insight.llm.service import EnhancedLLMService, is_error
from insight.utils.logging_config import AnalysisProgressBar

from .help_texts import (
    ANALYZE_HELP,
    ANALYZE_TYPE_HELP,
    ANALYZE_FORMAT_HELP,
    ANALYZE_STRICT_HELP,
    NO_CACHE_HELP,
    STREAM_HELP,
    PROGRESS_HELP,
    CONFIGURATION_ERROR_HINT,
    ERROR_EXIT_CODES,
    ExitCodes,
)
from .shared_options import config_option, log_level_option, model_option, mock_option, load_llm_config


logger = logging.getLogger(__name__)


def echo_json(data):
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def exit_for_error(result):
    """Print an AnalysisError and exit with the matching code."""
    echo_json(result.to_dict())
    sys.exit(ERROR_EXIT_CODES.get(result.error, ExitCodes.GENERAL_ERROR))


@click.command(help=ANALYZE_HELP)
@click.argument("prompt")
@click.option("--type", "analysis_type", default="general", show_default=True, help=ANALYZE_TYPE_HELP)
@click.option(
    "--format", "output_format",
    type=click.Choice(list(VALID_FORMATS)),
    default="json",
    show_default=True,
    help=ANALYZE_FORMAT_HELP
)
@click.option("--strict/--no-strict", default=None, help=ANALYZE_STRICT_HELP)
@model_option()
@click.option("--no-cache", is_flag=True, default=False, help=NO_CACHE_HELP)
@click.option("--stream", is_flag=True, default=False, help=STREAM_HELP)
@click.option("--progress", is_flag=True, default=False, help=PROGRESS_HELP)
@mock_option()
@config_option()
@log_level_option()
def analyze(prompt, analysis_type, output_format, strict, model, no_cache, stream,
            progress, mock, config_path, log_level, log_file):
    """Analyze PROMPT and print the result."""
    try:
        llm_config = load_llm_config(config_path, mock, log_level, log_file)
        options = RequestOptions(
            format=output_format,
            strict_format=strict,
            model=model,
            enable_cache=not no_cache,
            stream=stream,
        )

        with EnhancedLLMService(llm_config) as service:
            on_chunk = (lambda chunk: click.echo(chunk, nl=False)) if stream else None

            with AnalysisProgressBar("Analyzing", disable=not progress) as bar:
                result = service.analyze(
                    prompt, analysis_type, options,
                    on_chunk=on_chunk,
                    progress_callback=bar
                )

        if stream:
            click.echo()

        if is_error(result):
            exit_for_error(result)

        if not stream:
            echo_json(result)

    except ConfigurationError as e:
        click.echo(f"\n❌ Configuration Error: {e}", err=True)
        click.echo(f"\n{CONFIGURATION_ERROR_HINT}", err=True)
        sys.exit(ExitCodes.INVALID_CONFIGURATION)

    except AnalysisFailedError as e:
        exit_for_error(e.result)

    except ValueError as e:
        click.echo(f"\n❌ Invalid option: {e}", err=True)
        sys.exit(ExitCodes.MISSING_REQUIRED_OPTION)
