# ABOUTME: The `zenpub suggest` and `zenpub research` commands for AI writing help.
# ABOUTME: Sends text to the writing assistant and prints the suggestion or research summary.

from collections.abc import Callable
from typing import TypeVar

import click
from rich.console import Console

from zenpub.assist.client import SuggestionClient, TaskKind
from zenpub.assist.http import SuggestionError, ZenpubHttpClient
from zenpub.cli.options import api_key_option, model_option

console = Console()

T = TypeVar("T")


def _read_text(text: str | None) -> str:
    if text is None or text == "-":
        with click.open_file("-") as stream:
            return stream.read()
    return text


def _run(api_key: str | None, model: str, call: Callable[[SuggestionClient], T]) -> T:
    http_client = ZenpubHttpClient()
    try:
        return call(SuggestionClient(api_key, http_client=http_client, model=model))
    except SuggestionError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc
    finally:
        http_client.close()


@click.command()
@click.argument("task", type=click.Choice([kind.value for kind in TaskKind]))
@click.argument("text", required=False)
@api_key_option
@model_option
def suggest(task: str, text: str | None, api_key: str | None, model: str) -> None:
    """Ask the assistant to fix, expand, summarize, or continue TEXT.

    Reads the text from stdin when TEXT is omitted or "-".
    """
    context = _read_text(text).strip()
    if not context:
        console.print("[red]Error:[/red] No text given")
        raise SystemExit(1)

    suggestion = _run(api_key, model, lambda client: client.suggest(TaskKind(task), context))
    console.print(suggestion, markup=False, highlight=False)


@click.command()
@click.argument("query")
@api_key_option
@model_option
def research(query: str, api_key: str | None, model: str) -> None:
    """Run a web-grounded research query and print a summary with sources."""
    result = _run(api_key, model, lambda client: client.research(query))
    console.print(result.text, markup=False, highlight=False)
    if result.sources:
        console.print("\n[bold]Sources[/bold]")
        for source in result.sources:
            console.print(f"  - {source.title}: {source.uri}", markup=False, highlight=False)
