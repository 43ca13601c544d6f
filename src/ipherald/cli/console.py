"""Rich console output shared by the CLI commands."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from ipherald.config import HeraldConfig, load_config
from ipherald.errors import HeraldError

console = Console()


def _say(style: str, msg: str) -> None:
    console.print(f"[{style}]{msg}[/{style}]")


def error(msg: str) -> None:
    _say("red", msg)


def warning(msg: str) -> None:
    _say("yellow", msg)


def success(msg: str) -> None:
    _say("green", msg)


def dim(msg: str) -> None:
    _say("dim", msg)


def create_table(title: str, columns: list[tuple[str, str | dict[str, Any]]]) -> Table:
    """Build a table; each column is (header, style) or (header, add_column kwargs)."""
    table = Table(title=title)
    for header, spec in columns:
        options = spec if isinstance(spec, dict) else {"style": spec}
        table.add_column(header, **options)
    return table


def format_instant(instant: datetime | None) -> str:
    return "[dim]unknown[/dim]" if instant is None else instant.isoformat()


def load_config_or_exit(path: Path | None) -> HeraldConfig:
    """Load configuration; on failure print why and exit with status 1."""
    try:
        return load_config(path)
    except HeraldError as e:
        error(str(e))
        raise typer.Exit(1) from e
