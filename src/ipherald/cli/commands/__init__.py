"""CLI command modules."""

from ipherald.cli.commands import serve, service

__all__ = ["serve", "service"]
