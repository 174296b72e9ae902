"""
Stats Subcommand Module

Prints the effective LLM configuration after environment, config file
and default layering, with secrets masked.
"""

import sys
import click

from insight.llm.errors import ConfigurationError
from insight.llm.factory import resolve_provider_kind
from insight.utils.logging_config import mask_sensitive

from .analyze import echo_json
from .help_texts import STATS_HELP, ExitCodes
from .shared_options import config_option, log_level_option, mock_option, load_llm_config


@click.command(help=STATS_HELP)
@mock_option()
@config_option()
@log_level_option()
def stats(mock, config_path, log_level, log_file):
    """Show the effective configuration."""
    llm_config = load_llm_config(config_path, mock, log_level, log_file)

    try:
        kind = resolve_provider_kind(
            llm_config.provider.provider,
            llm_config.provider.model,
            llm_config.provider.mock_mode
        )
    except ConfigurationError as e:
        click.echo(f"\n❌ Configuration Error: {e}", err=True)
        sys.exit(ExitCodes.INVALID_CONFIGURATION)

    echo_json({
        "provider_kind": kind.value,
        "config": mask_sensitive(llm_config.masked()),
    })
