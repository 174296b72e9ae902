"""
CLI Package for keyword-insight

This package provides the command line interface using Click groups and
subcommands, one module per subcommand. The cli() function serves as the
console script entry point for setup.py.
"""

import os
import click
from dotenv import load_dotenv

# Load environment variables from .env files
# Priority: .env.dev (if exists) overrides .env
if os.path.exists('.env.dev'):
    load_dotenv('.env.dev')
elif os.path.exists('.env'):
    load_dotenv('.env')

from insight import __version__
from .analyze import analyze
from .research import research
from .stats import stats


@click.group()
@click.version_option(version=__version__, prog_name='keyword-insight')
def main():
    """keyword-insight CLI - LLM-backed market and keyword research.

    Analyze prompts through a caching LLM access layer with retries,
    and turn search suggestions into structured insight.
    """
    pass


# Register subcommands
main.add_command(analyze)
main.add_command(research)
main.add_command(stats)


# Entry point for setup.py console script
def cli():
    """Console script entry point."""
    main()
