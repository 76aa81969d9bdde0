# ABOUTME: The `bindle duplicates`, `bindle merge`, and `bindle backfill` commands.
# ABOUTME: Reports books with identical content, removes chosen duplicates, and fills in missing hashes.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from bindle.cli.options import db_option, library_option, library_session, owner_option
from bindle.config import DEFAULT_BACKFILL_BATCH_SIZE
from bindle.core.duplicates import DuplicateResolver
from bindle.errors import BindleError

console = Console()


@click.command()
@library_option
@db_option
@owner_option
@click.option(
    "--check",
    "check_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Report library books identical to this file instead of listing groups.",
)
def duplicates(
    library_root: Path | None, db_path: Path | None, owner_id: str, check_path: Path | None
) -> None:
    """List groups of books with identical file content."""
    with library_session(library_root, db_path) as lib:
        resolver = DuplicateResolver(lib.catalog)

        if check_path is not None:
            result = resolver.check_for_duplicate(check_path, owner_id)
            if not result.is_duplicate:
                console.print(f"[green]No duplicates of {check_path.name}.[/green]")
                return
            console.print(f"[yellow]{check_path.name} is already in the library:[/yellow]")
            for book in result.duplicates:
                console.print(f"  {book.id}  {book.metadata.title}", highlight=False)
            return

        groups = resolver.find_duplicates(owner_id)

    if not groups:
        console.print("[green]No duplicates found.[/green]")
        return

    for group in groups:
        table = Table(title=f"sha256 {group.file_hash[:16]}", title_justify="left")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Title", style="bold")
        table.add_column("Added")
        for book in group.books:
            table.add_row(book.id, book.metadata.title, book.date_added)
        console.print(table)

    console.print(f"\n[dim]{len(groups)} duplicate group(s)[/dim]")


@click.command()
@click.argument("keep_id")
@click.argument("delete_ids", nargs=-1, required=True)
@library_option
@db_option
@owner_option
def merge(
    keep_id: str,
    delete_ids: tuple[str, ...],
    library_root: Path | None,
    db_path: Path | None,
    owner_id: str,
) -> None:
    """Keep KEEP_ID and remove the listed duplicates of it."""
    with library_session(library_root, db_path) as lib:
        try:
            result = DuplicateResolver(lib.catalog).merge_duplicates(
                keep_id, list(delete_ids), owner_id
            )
        except BindleError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            raise SystemExit(1) from exc

    console.print(f"Kept [bold]{result.kept_book.metadata.title}[/bold] ({keep_id})")
    console.print(
        f"[green]{len(result.deleted_books)} removed[/green], "
        f"{result.files_removed} with files cleaned up"
    )
    skipped = len(set(delete_ids) - set(result.deleted_books) - {keep_id})
    if skipped:
        console.print(f"[yellow]{skipped} skipped[/yellow] (see log for reasons)")


@click.command()
@library_option
@db_option
@owner_option
@click.option(
    "--batch-size",
    type=click.IntRange(min=1),
    default=DEFAULT_BACKFILL_BATCH_SIZE,
    show_default=True,
    help="Books fetched per batch.",
)
def backfill(
    library_root: Path | None, db_path: Path | None, owner_id: str, batch_size: int
) -> None:
    """Compute content hashes for books that do not have one yet."""
    with library_session(library_root, db_path) as lib:
        progress = DuplicateResolver(lib.catalog).compute_missing_hashes(owner_id, batch_size)

    if progress.total == 0:
        console.print("[green]All books already have a hash.[/green]")
        return

    console.print(
        f"{progress.total} book(s) without hash: "
        f"[green]{progress.processed} hashed[/green], [red]{progress.failed} failed[/red]"
    )
    if progress.failed:
        raise SystemExit(1)
