"""Telegram notification channel."""

from ipherald.providers.telegram.provider import TelegramChannel

__all__ = ["TelegramChannel"]
