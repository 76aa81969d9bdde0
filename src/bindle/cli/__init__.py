# ABOUTME: CLI package for Bindle, built on Click.
# ABOUTME: Defines the root command group, configures logging, and registers subcommands.

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from bindle.cli.commands import (
    duplicates_cmd,
    import_cmd,
    inspect_cmd,
    ls_cmd,
    read_cmd,
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(package_name="bindle")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Bindle - ingest, inspect, and dedupe EPUB and comic archives."""
    _configure_logging(verbose)


cli.add_command(import_cmd.import_command)
cli.add_command(inspect_cmd.inspect)
cli.add_command(read_cmd.toc)
cli.add_command(read_cmd.text)
cli.add_command(read_cmd.pages)
cli.add_command(duplicates_cmd.duplicates)
cli.add_command(duplicates_cmd.merge)
cli.add_command(duplicates_cmd.backfill)
cli.add_command(ls_cmd.ls)
