#!/usr/bin/env python3
"""
SeatFinder CLI - look up which table a guest is seated at.

Usage:
    seat find "john smith"            - Fuzzy search the guest list
    seat find "jon" --csv guests.csv  - Search a local CSV export
    seat check                        - Load the guest list and report counts
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from ..engine.config import Config, configure_logging
from ..engine.directory import GuestDirectory
from ..engine.error_handling import FetchError, InvalidConfiguration

console = Console()


def _load_config(config_path: Optional[str], csv_path: Optional[str],
                 sheet_id: Optional[str], sheet_name: Optional[str]) -> Config:
    config = Config.load(Path(config_path) if config_path else None)

    source_update = {}
    if sheet_id:
        source_update.update(kind="google_sheet", sheet_id=sheet_id)
    if sheet_name:
        source_update["sheet_name"] = sheet_name
    if source_update:
        config = config.model_copy(update={"source": config.source.model_copy(update=source_update)})

    if csv_path:
        config = config.model_copy(update={
            "source": config.source.model_copy(update={"kind": "csv", "csv_path": Path(csv_path)})
        })

    return config


def _open_directory(config: Config, threshold: Optional[float] = None) -> GuestDirectory:
    matcher = config.matcher
    if threshold is not None:
        matcher = matcher.model_copy(update={"threshold": threshold})

    directory = GuestDirectory(config.source.create_source(), matcher.to_options())
    asyncio.run(directory.refresh())
    return directory


def source_options(func):
    func = click.option("--config", "-c", "config_path", type=click.Path(exists=True), help="Config file path")(func)
    func = click.option("--csv", "csv_path", type=click.Path(exists=True), help="Read guests from a CSV file")(func)
    func = click.option("--sheet-id", help="Google Sheet id to read guests from")(func)
    func = click.option("--sheet-name", help="Sheet (tab) name")(func)
    return func


@click.group()
def cli():
    """SeatFinder - find your table."""


@cli.command()
@click.argument("query")
@source_options
@click.option("--limit", "-l", default=10, show_default=True, help="Max results")
@click.option("--threshold", "-t", type=float, help="Override the match threshold (0-1)")
def find(query: str, config_path: Optional[str], csv_path: Optional[str], sheet_id: Optional[str],
         sheet_name: Optional[str], limit: int, threshold: Optional[float]):
    """Search the guest list for QUERY."""
    directory = _connect(config_path, csv_path, sheet_id, sheet_name, threshold)
    results = directory.search(query, limit=limit)

    if not results:
        console.print("[yellow]No guests found[/yellow]")
        return

    table = Table(title=f"Guests matching '{query.strip()}'")
    table.add_column("Name", style="cyan")
    table.add_column("Table", justify="right", style="magenta")
    table.add_column("Score", justify="right")

    for r in results:
        table.add_row(r.record.full_name, str(r.record.table), f"{r.score:.3f}")

    console.print(table)


@cli.command()
@source_options
def check(config_path: Optional[str], csv_path: Optional[str], sheet_id: Optional[str],
          sheet_name: Optional[str]):
    """Load the guest list and report how many rows were usable."""
    directory = _connect(config_path, csv_path, sheet_id, sheet_name)
    status = directory.get_status()

    console.print(f"[green]✓[/green] Loaded {status['record_count']} guest(s)")
    console.print(f"Dropped rows: {status['dropped_rows']}")
    if status.get("source"):
        console.print(f"Source: {status['source']}")


def _connect(config_path, csv_path, sheet_id, sheet_name, threshold=None) -> GuestDirectory:
    try:
        config = _load_config(config_path, csv_path, sheet_id, sheet_name)
        configure_logging(config.log_level)
        return _open_directory(config, threshold)
    except FetchError as e:
        console.print(f"[red]Unable to load guest list.[/red] {e}")
        sys.exit(1)
    except (InvalidConfiguration, ValueError) as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
