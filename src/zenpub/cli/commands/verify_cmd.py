# ABOUTME: The `zenpub verify` command for checking EPUB packaging before distribution.
# ABOUTME: Lists every structural issue found and exits non-zero when there are any.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from zenpub.core.verifier import verify_epub
from zenpub.formats.errors import FormatError

console = Console()


@click.command("verify")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def verify(path: Path) -> None:
    """Verify an EPUB's packaging and XML well-formedness."""
    try:
        result = verify_epub(path.read_bytes())
    except (FormatError, OSError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc

    if not result.ok:
        table = Table()
        table.add_column("#", style="dim", width=4)
        table.add_column("Issue", style="red")
        for position, issue in enumerate(result.issues, start=1):
            table.add_row(str(position), issue)
        console.print(table)
        console.print(f"\n[red]{len(result.issues)} issue(s) found in {path.name}.[/red]")
        raise SystemExit(1)

    console.print(
        f"[green]{path.name} verified ({result.checked_documents} XML document(s)).[/green]"
    )
