"""Inspection commands: next run, running instance and address check."""

import asyncio
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated

import typer

from ipherald.cli.console import (
    console,
    create_table,
    dim,
    error,
    format_instant,
    load_config_or_exit,
    success,
    warning,
)
from ipherald.errors import HeraldError, NotFoundError

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration file",
    ),
]


def _flag(value: bool) -> str:
    return "[green]yes[/green]" if value else "[dim]no[/dim]"


def register(app: typer.Typer) -> None:
    """Register inspection commands."""

    @app.command("next")
    def next_run(config: ConfigOption = None) -> None:
        """Show when the next address check is due."""
        from ipherald.scheduling import compute_next_run
        from ipherald.stores import TextFileTimeStore

        herald_config = load_config_or_exit(config)
        schedule = herald_config.schedule

        try:
            last_run = asyncio.run(TextFileTimeStore(herald_config.ran_file).get())
        except NotFoundError:
            last_run = None
        except HeraldError as e:
            warning(f"Ignoring run record: {e}")
            last_run = None

        now = datetime.now(UTC)
        result = compute_next_run(now, schedule.offset, schedule.interval, last_run)

        table = create_table(
            "Schedule",
            [
                ("Property", "cyan"),
                ("Value", ""),
            ],
        )
        table.add_row("Offset", schedule.offset.isoformat())
        table.add_row("Interval", str(schedule.interval))
        table.add_row("Now", now.isoformat())
        table.add_row("Last run", format_instant(last_run))
        table.add_row("Next run", result.next_run.isoformat())
        table.add_row("Run now", _flag(result.run_now))
        table.add_row("Advanced", _flag(result.was_advanced))
        console.print(table)

    @app.command()
    def status(config: ConfigOption = None) -> None:
        """Show whether a scheduler instance is running."""
        from ipherald.service import read_pid_file

        herald_config = load_config_or_exit(config)
        pid_path = herald_config.pid_file.expanduser()
        info = read_pid_file(pid_path)

        if info is None:
            warning("Not running")
            dim(f"PID file: {pid_path}")
            raise typer.Exit(1)
        if not info.alive:
            warning(f"Not running (stale PID file for {info.pid})")
            dim(f"PID file: {pid_path}")
            raise typer.Exit(1)

        started = datetime.fromtimestamp(info.start_time, UTC)
        success(f"Running (PID {info.pid}, started {started.isoformat()})")
        dim(f"PID file: {pid_path}")

    @app.command()
    def check(config: ConfigOption = None) -> None:
        """Look up the external address and compare it with the cache."""
        from ipherald.stores import PlainTextAddressSource, TextFileAddressStore

        herald_config = load_config_or_exit(config)
        source = PlainTextAddressSource(
            herald_config.ip_service_url, timeout=herald_config.ip_service_timeout
        )
        cache = TextFileAddressStore(herald_config.ip_cache_file)

        try:
            address = asyncio.run(source.get())
        except HeraldError as e:
            error(f"Lookup failed: {e}")
            raise typer.Exit(1) from e

        try:
            cached = asyncio.run(cache.get())
        except HeraldError as e:
            dim(f"No cached address: {e}")
            cached = None

        table = create_table(
            "Address",
            [
                ("Address", {"style": "cyan", "no_wrap": True}),
                ("Source", ""),
            ],
        )
        table.add_row(str(address), herald_config.ip_service_url)
        table.add_row(
            str(cached) if cached is not None else "[dim]none[/dim]",
            str(herald_config.ip_cache_file),
        )
        console.print(table)

        if cached is not None and cached != address:
            warning("Address has changed since the last check")
        dim(f"Message: {herald_config.format_message(address)}")
