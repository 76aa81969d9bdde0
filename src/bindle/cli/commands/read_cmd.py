# ABOUTME: The `bindle toc`, `bindle text`, and `bindle pages` commands for reading archive contents.
# ABOUTME: Lists EPUB chapters, prints chapter text, and lists or extracts comic pages.

import mimetypes
from collections.abc import Callable
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.table import Table

from bindle.errors import BindleError
from bindle.formats import comic, epub
from bindle.formats.registry import FileFormat, detect_format

console = Console()

_PAGE_LISTERS: dict[FileFormat, Callable[[Path], list[str]]] = {
    FileFormat.CBZ: comic.get_page_list_cbz,
    FileFormat.CBR: comic.get_page_list_cbr,
}
_PAGE_READERS: dict[FileFormat, Callable[[Path, int], tuple[bytes, str]]] = {
    FileFormat.CBZ: comic.get_page_cbz,
    FileFormat.CBR: comic.get_page_cbr,
}

_path_argument = click.argument(
    "path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)


def _fail(exc: Exception) -> NoReturn:
    console.print(f"[red]Error:[/red] {exc}")
    raise SystemExit(1) from exc


def _require_epub(path: Path) -> None:
    if detect_format(path) is not FileFormat.EPUB:
        raise click.UsageError(f"{path.name} is not an EPUB file")


@click.command()
@_path_argument
def toc(path: Path) -> None:
    """List the chapters of an EPUB in reading order."""
    try:
        _require_epub(path)
        chapters = epub.get_table_of_contents(path)
    except BindleError as exc:
        _fail(exc)

    if not chapters:
        console.print("[yellow]No chapters found.[/yellow]")
        return

    table = Table()
    table.add_column("#", justify="right", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Entry")
    for chapter in chapters:
        table.add_row(str(chapter.index), chapter.title, chapter.href)
    console.print(table)


@click.command()
@_path_argument
@click.argument("index", type=int)
@click.option("--html", "raw_html", is_flag=True, default=False, help="Print raw chapter markup.")
def text(path: Path, index: int, raw_html: bool) -> None:
    """Print the text of the EPUB chapter at INDEX (zero-based)."""
    try:
        _require_epub(path)
        if raw_html:
            content = epub.get_chapter_content(path, index)
        else:
            content = epub.get_chapter_text(path, index)
    except BindleError as exc:
        _fail(exc)

    if not content:
        console.print(f"[yellow]No chapter at index {index}.[/yellow]")
        raise SystemExit(1)
    click.echo(content)


@click.command()
@_path_argument
@click.option("--extract", "extract_index", type=int, default=None, help="Page index to extract.")
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Where to write the extracted page (default: page name in the current directory).",
)
def pages(path: Path, extract_index: int | None, output: Path | None) -> None:
    """List the pages of a CBZ or CBR comic, or extract one."""
    try:
        fmt = detect_format(path)
        if fmt not in _PAGE_LISTERS:
            raise click.UsageError(f"{path.name} is not a comic archive")

        if extract_index is None:
            names = _PAGE_LISTERS[fmt](path)
        else:
            data, mime = _PAGE_READERS[fmt](path, extract_index)
    except BindleError as exc:
        _fail(exc)

    if extract_index is not None:
        suffix = mimetypes.guess_extension(mime) or ".bin"
        dest = output or Path(f"page-{extract_index:04d}{suffix}")
        dest.write_bytes(data)
        console.print(f"Wrote page {extract_index} ({mime}, {len(data)} bytes) to {dest}")
        return

    for number, name in enumerate(names):
        console.print(f"[dim]{number:>4}[/dim]  {name}", highlight=False)
    console.print(f"\n[dim]{len(names)} page(s)[/dim]")
