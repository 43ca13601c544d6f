"""Storage and lookup interfaces consumed by the scheduler."""

from datetime import datetime
from typing import Protocol, runtime_checkable

from ipherald.scheduling.types import IPAddress


@runtime_checkable
class RunHistoryStore(Protocol):
    """Persists the instant at which the last cycle began."""

    async def get(self) -> datetime:
        """Return the last run instant.

        Raises:
            NotFoundError: If no run has been recorded yet.
            StoreError: If the record cannot be read.
        """
        ...

    async def put(self, instant: datetime) -> None: ...


@runtime_checkable
class AddressStore(Protocol):
    """Persists the last known external address."""

    async def get(self) -> IPAddress: ...

    async def put(self, address: IPAddress) -> None: ...


@runtime_checkable
class AddressSource(Protocol):
    """Looks up the current external address."""

    async def get(self) -> IPAddress:
        """Perform a live lookup.

        Raises:
            AddressLookupError: If the lookup fails.
        """
        ...


@runtime_checkable
class Clock(Protocol):
    def now(self) -> datetime: ...
