"""Tally CLI - daily counter."""

import json
import logging
import sys

import click

from .adapters.file_store import FileSnapshotStore
from .config import Config, load_config
from .core.counts import format_average, validate_entry
from .errors import TallyError, ValidationError
from .store import DailyTallyStore, TallySnapshot

ENTRY_SETTINGS = {"ignore_unknown_options": True}


def open_store(config: Config) -> DailyTallyStore:
    """Build a loaded store from config, reporting any recovered corruption."""
    store = DailyTallyStore(
        FileSnapshotStore(config.data_dir),
        key=config.storage_key,
        timezone=config.timezone,
    )
    snapshot = store.load()
    if snapshot.warning:
        click.echo(f"Warning: {snapshot.warning}", err=True)
    return store


def _fail(e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    sys.exit(1)


def _show_summary(snapshot: TallySnapshot) -> None:
    click.echo(f"Today's count: {snapshot.today_count}")
    click.echo(f"Average per day: {format_average(snapshot.average)}")


@click.group()
@click.version_option(package_name="tally")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """Tally - count something once a tap, day by day."""
    if debug:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=logging.DEBUG,
        )


@main.command()
def tap():
    """Add one to today's count."""
    try:
        store = open_store(load_config())
        snapshot = store.increment()
    except TallyError as e:
        _fail(e)

    _show_summary(snapshot)


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(as_json: bool):
    """Show today's count, the average and the history."""
    try:
        snapshot = open_store(load_config()).snapshot()
    except TallyError as e:
        _fail(e)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "today": snapshot.today,
                    "today_count": snapshot.today_count,
                    "average": snapshot.average,
                    "history": [
                        {"date": r.date, "count": r.count} for r in snapshot.history
                    ],
                },
                indent=2,
            )
        )
        return

    _show_summary(snapshot)
    click.echo()
    if not snapshot.history:
        click.echo("No days recorded yet.")
        return

    click.echo("History")
    for record in snapshot.history:
        click.echo(f"  {record.date}  {record.count}")


@main.command(context_settings=ENTRY_SETTINGS)
@click.argument("day")
@click.argument("count")
def add(day: str, count: str):
    """Add a day (YYYY-MM-DD) with a count, replacing any existing count."""
    try:
        validate_entry(day, count)
        store = open_store(load_config())
        snapshot = store.upsert(day, count)
    except TallyError as e:
        _fail(e)

    click.echo(f"Saved {day.strip()}: {snapshot.counts[day.strip()]}")
    _show_summary(snapshot)


@main.command(context_settings=ENTRY_SETTINGS)
@click.argument("day")
@click.argument("count")
def edit(day: str, count: str):
    """Change the count of a day that is already recorded."""
    try:
        validate_entry(day, count)
        store = open_store(load_config())
        if day.strip() not in store.counts:
            raise ValidationError(f"No entry for {day.strip()}; use 'tally add' instead")
        snapshot = store.upsert(day, count)
    except TallyError as e:
        _fail(e)

    click.echo(f"Updated {day.strip()}: {snapshot.counts[day.strip()]}")
    _show_summary(snapshot)


@main.command()
@click.argument("day")
def delete(day: str):
    """Remove a day from the history."""
    try:
        store = open_store(load_config())
        if day not in store.counts:
            click.echo(f"No entry for {day}.")
            return
        snapshot = store.delete(day)
    except TallyError as e:
        _fail(e)

    click.echo(f"Deleted {day}.")
    _show_summary(snapshot)
