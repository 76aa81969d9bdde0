# ABOUTME: The `bindle inspect` command for viewing archive metadata.
# ABOUTME: Shows parsed metadata for an EPUB, CBZ, or CBR file plus filename hints for comics.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from bindle.core.hashing import compute_file_hash
from bindle.errors import BindleError
from bindle.formats.comic_filename import parse_comic_filename
from bindle.formats.registry import FileFormat, detect_format, get_handler

console = Console()

_NONE = "[dim]none[/dim]"


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--format",
    "declared_format",
    type=click.Choice([fmt.value for fmt in FileFormat], case_sensitive=False),
    default=None,
    help="Treat the file as this format instead of detecting it.",
)
def inspect(path: Path, declared_format: str | None) -> None:
    """Show metadata extracted from an EPUB, CBZ, or CBR file."""
    try:
        fmt = detect_format(path) if declared_format is None else FileFormat(declared_format.lower())
        handler = get_handler(fmt)
        handler.validate(path)
        meta = handler.parse(path)
        contents = handler.list_contents(path)
    except BindleError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc

    table = Table(title=str(path.name), show_header=False, pad_edge=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("Format", fmt.value.upper())
    table.add_row("Type", meta.content_type.value)
    table.add_row("Title", meta.title)
    table.add_row("Author", meta.author)
    table.add_row("Series", meta.series or _NONE)
    if meta.series_index:
        table.add_row("Series Index", f"{meta.series_index:g}")
    if fmt is FileFormat.EPUB:
        table.add_row("Language", meta.language or _NONE)
        table.add_row("Publisher", meta.publisher or _NONE)
        table.add_row("Published", meta.publish_date or _NONE)
        table.add_row("ISBN", meta.isbn or _NONE)
        table.add_row("Chapters", str(len(contents)))
        if meta.subjects:
            table.add_row("Subjects", ", ".join(meta.subjects))
    else:
        table.add_row("Pages", str(meta.page_count))
    table.add_row("SHA-256", compute_file_hash(path))

    console.print(table)

    if fmt is not FileFormat.EPUB:
        hints = parse_comic_filename(path.name)
        console.print("\n[bold]Filename hints[/bold]")
        console.print(f"  Series: {hints.series or 'none'}")
        if hints.issue_number:
            console.print(f"  Issue: {hints.issue_number}")
        if hints.volume:
            console.print(f"  Volume: {hints.volume}")
        if hints.year:
            console.print(f"  Year: {hints.year}")
