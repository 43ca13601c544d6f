"""Main CLI application."""

import typer

from ipherald.cli.commands import serve, service

app = typer.Typer(
    name="ipherald",
    help="ipherald - announce external IP address changes over Telegram",
    no_args_is_help=True,
)

serve.register(app)
service.register(app)


if __name__ == "__main__":
    app()
