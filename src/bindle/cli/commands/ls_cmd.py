# ABOUTME: The `bindle ls` command for listing cataloged books.
# ABOUTME: Displays a Rich table of books, optionally scoped to one owner.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from bindle.cli.options import db_option, library_option, library_session, owner_option

console = Console()


@click.command("ls")
@library_option
@db_option
@owner_option
def ls(library_root: Path | None, db_path: Path | None, owner_id: str) -> None:
    """List books in the library catalog."""
    with library_session(library_root, db_path) as lib:
        records = lib.catalog.list_all(owner_id)

    if not records:
        console.print("[yellow]No books in the library.[/yellow]")
        return

    table = Table()
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("Series")
    table.add_column("Format", width=6)

    for record in records:
        meta = record.metadata
        series_display = ""
        if meta.has_series:
            if meta.series_index:
                series_display = f"{meta.series} #{meta.series_index:g}"
            else:
                series_display = meta.series

        table.add_row(
            record.id,
            meta.title,
            meta.author,
            series_display,
            record.file_format,
        )

    console.print(table)
    console.print(f"\n[dim]{len(records)} book(s)[/dim]")
