# ABOUTME: CLI package for ZenPub, built on Click.
# ABOUTME: Defines the root command group, verbose logging, and registers subcommands.

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from zenpub.cli.commands import (
    cache_cmd,
    export_cmd,
    import_cmd,
    inspect_cmd,
    suggest_cmd,
    verify_cmd,
)


def _enable_verbose_logging() -> None:
    """Send zenpub DEBUG logs to stderr through Rich."""
    logger = logging.getLogger("zenpub")
    logger.setLevel(logging.DEBUG)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(
            RichHandler(console=Console(stderr=True), show_time=False, show_path=False)
        )


@click.group()
@click.version_option(package_name="zenpub")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show debug logging.")
def cli(verbose: bool) -> None:
    """ZenPub - write books in Markdown, publish them as EPUB, PDF, or Markdown."""
    if verbose:
        _enable_verbose_logging()


cli.add_command(export_cmd.export)
cli.add_command(import_cmd.import_epub)
cli.add_command(inspect_cmd.inspect)
cli.add_command(verify_cmd.verify)
cli.add_command(suggest_cmd.suggest)
cli.add_command(suggest_cmd.research)
cli.add_command(cache_cmd.cache)
