"""Serve command for running the ipherald scheduler."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer

from ipherald.cli.console import console, error, load_config_or_exit
from ipherald.config import HeraldConfig
from ipherald.errors import FatalError

logger = logging.getLogger(__name__)


def register(app: typer.Typer) -> None:
    """Register the serve command."""

    @app.command()
    def serve(
        config: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
        log_level: Annotated[
            str | None,
            typer.Option(
                "--log-level",
                "-l",
                help="Override the configured log level",
            ),
        ] = None,
    ) -> None:
        """Run the scheduler until interrupted."""
        herald_config = load_config_or_exit(config)
        try:
            _run(herald_config, log_level)
        except FatalError as e:
            error(str(e))
            raise typer.Exit(1) from e
        except KeyboardInterrupt:
            console.print("\n[bold yellow]Scheduler stopped[/bold yellow]")


def _run(config: HeraldConfig, log_level: str | None = None) -> None:
    """Configure logging, take the process lock and run the scheduler.

    Raises:
        FatalError: If logging, the lock or the channel cannot be set up.
    """
    from ipherald.logging import configure_logging
    from ipherald.service.pid import PidLock

    configure_logging(
        level=log_level or config.log_level,
        log_file=config.log_file,
        use_rich=not config.log_file,
    )

    with PidLock(config.pid_file) as lock:
        logger.debug("pid_lock_acquired", extra={"file.path": str(lock.path)})
        asyncio.run(_run_scheduler(config))


async def _run_scheduler(config: HeraldConfig) -> None:
    """Run the scheduler with SIGINT/SIGTERM wired to its stop event."""
    import signal as signal_module

    from ipherald.cli.runtime import create_channel, create_scheduler

    channel = create_channel(config)
    scheduler = create_scheduler(config, channel)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()

    def handle_signal() -> None:
        logger.info("shutdown_requested")
        stop.set()

    signals = (signal_module.SIGTERM, signal_module.SIGINT)
    for sig in signals:
        loop.add_signal_handler(sig, handle_signal)
    try:
        await scheduler.run(stop)
    finally:
        for sig in signals:
            loop.remove_signal_handler(sig)
