"""Abstract interface for notification channels."""

import asyncio
from abc import ABC, abstractmethod


class NotificationChannel(ABC):
    """Chat transport used to announce address changes.

    Channels deliver "wake" events whenever someone asks for the address.
    Each event carries the destination the answer should be sent to.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Channel identifier (e.g., 'telegram')."""
        ...

    @abstractmethod
    async def open(self) -> None:
        """Open the channel session.

        Must be idempotent: calling it on an open channel does nothing.

        Raises:
            ChannelError: With WARNING severity for recoverable conditions,
                ERROR or worse when the channel cannot be used.
        """
        ...

    @abstractmethod
    def wake_events(self) -> asyncio.Queue[str]:
        """Queue receiving a destination id each time the bot is asked."""
        ...

    @abstractmethod
    async def send(self, destination: str, text: str) -> None:
        """Send a message.

        Raises:
            ChannelError: If the message could not be sent.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the session and clean up resources."""
        ...
