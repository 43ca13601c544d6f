"""Notification channels."""

from ipherald.providers.base import NotificationChannel

__all__ = ["NotificationChannel"]
