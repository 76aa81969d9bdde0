# ABOUTME: The `bindle import` command for ingesting EPUB, CBZ, and CBR files.
# ABOUTME: Accepts files or directories, dedups by content hash, and files books into the library.

from pathlib import Path

import click
from rich.console import Console

from bindle.cli.options import db_option, library_option, library_session, owner_option
from bindle.core.importer import IngestStatus, ingest_paths
from bindle.formats.registry import FileFormat

console = Console()

_SUPPORTED_SUFFIXES = {fmt.extension for fmt in FileFormat}


def _collect_files(sources: tuple[Path, ...]) -> list[Path]:
    """Expand directories into the supported archives they contain, recursively."""
    files: list[Path] = []
    for source in sources:
        if source.is_dir():
            files.extend(
                sorted(
                    p for p in source.rglob("*")
                    if p.is_file() and p.suffix.lower() in _SUPPORTED_SUFFIXES
                )
            )
        else:
            files.append(source)
    return files


@click.command("import")
@click.argument(
    "sources",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, path_type=Path),
)
@library_option
@db_option
@owner_option
@click.option(
    "--allow-duplicates",
    is_flag=True,
    default=False,
    help="Add files even when identical content is already in the library.",
)
def import_command(
    sources: tuple[Path, ...],
    library_root: Path | None,
    db_path: Path | None,
    owner_id: str,
    allow_duplicates: bool,
) -> None:
    """Ingest archive files (or directories of them) into the library."""
    files = _collect_files(sources)

    if not files:
        console.print("[yellow]No EPUB, CBZ, or CBR files found.[/yellow]")
        return

    console.print(f"Found [bold]{len(files)}[/bold] file(s)\n")

    with library_session(library_root, db_path) as lib:
        result = ingest_paths(
            files, lib.catalog, lib.paths, owner_id, allow_duplicates=allow_duplicates
        )

    for outcome in result.outcomes:
        if outcome.status is IngestStatus.ADDED:
            console.print(f"  [green]+[/green] {outcome.metadata.title} [dim]({outcome.book_id})[/dim]")
        else:
            console.print(
                f"  [yellow]=[/yellow] {outcome.source.name} "
                f"[dim]duplicate of {outcome.duplicates[0].id}[/dim]"
            )

    parts = []
    if result.added:
        parts.append(f"[green]{result.added} added[/green]")
    if result.skipped:
        parts.append(f"[yellow]{result.skipped} skipped[/yellow]")
    if result.errors:
        parts.append(f"[red]{result.errors} error(s)[/red]")

    console.print("\n" + ", ".join(parts))

    if result.error_details:
        console.print(f"\n[yellow]{result.errors} file(s) could not be imported:[/yellow]")
        for path, msg in result.error_details:
            console.print(f"  [dim]{path.name}:[/dim] {msg}")
