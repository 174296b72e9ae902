"""
Shared CLI Option Decorators

This module provides reusable Click decorators for common CLI options,
ensuring consistency across subcommands, plus the helper that turns
those options into an LLM configuration.
"""

import click

from insight.llm.config import LLMConfig
from insight.utils.logging_config import configure_logging, logging_config

from .help_texts import CONFIG_HELP, LOG_LEVEL_HELP, LOG_FILE_HELP, MOCK_HELP, MODEL_HELP


def config_option(help=None):
    """Decorator for configuration file path."""
    def decorator(f):
        return click.option(
            '--config', 'config_path',
            type=click.Path(exists=True, dir_okay=False),
            default=None,
            help=help or CONFIG_HELP
        )(f)
    return decorator


def log_level_option(help=None):
    """Decorator for logging level options."""
    def decorator(f):
        f = click.option(
            '--log-file',
            type=click.Path(dir_okay=False),
            default=None,
            help=LOG_FILE_HELP
        )(f)
        return click.option(
            '--log-level',
            type=click.Choice(['debug', 'info', 'warning', 'error'], case_sensitive=False),
            default='warning',
            help=help or LOG_LEVEL_HELP
        )(f)
    return decorator


def model_option(help=None):
    """Decorator for model selection."""
    def decorator(f):
        return click.option(
            '--model', '-m',
            default=None,
            help=help or MODEL_HELP
        )(f)
    return decorator


def mock_option(help=None):
    """Decorator for mock mode."""
    def decorator(f):
        return click.option(
            '--mock',
            is_flag=True,
            default=False,
            help=help or MOCK_HELP
        )(f)
    return decorator


def load_llm_config(config_path=None, mock=False, log_level='warning', log_file=None) -> LLMConfig:
    """Configure logging and load the LLM configuration for a command."""
    configure_logging(level=log_level, log_file=log_file)

    llm_config = LLMConfig.load_from_yaml(config_path)
    if mock:
        llm_config.provider.mock_mode = True

    logging_config.log_configuration_details(llm_config.masked())
    return llm_config
