# ABOUTME: Shared Click options for ZenPub CLI commands.
# ABOUTME: Provides reusable decorators for the cache database, output directory, and AI access.

from pathlib import Path

import click

from zenpub.assist.client import API_KEY_ENV, DEFAULT_MODEL
from zenpub.db.connection import DEFAULT_CACHE_PATH

db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    help=f"Path to cache database (default: {DEFAULT_CACHE_PATH})",
)

output_dir_option = click.option(
    "-o",
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory to write exported files to.",
)

api_key_option = click.option(
    "--api-key",
    envvar=API_KEY_ENV,
    default=None,
    help=f"AI API key (default: ${API_KEY_ENV}).",
)

model_option = click.option(
    "--model",
    default=DEFAULT_MODEL,
    show_default=True,
    help="AI model name.",
)
