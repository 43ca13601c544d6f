"""Collaborators for persistence, address lookup and time.

Public API:
- TextFileTimeStore: Run record in a text file
- TextFileAddressStore: Address cache in a text file
- PlainTextAddressSource: Live lookup over HTTP or from a file
- SystemClock: Wall-clock time

Interfaces:
- RunHistoryStore, AddressStore, AddressSource, Clock
"""

from ipherald.stores.base import AddressSource, AddressStore, Clock, RunHistoryStore
from ipherald.stores.clock import SystemClock
from ipherald.stores.files import TextFileAddressStore, TextFileTimeStore, parse_address
from ipherald.stores.http import PlainTextAddressSource

__all__ = [
    "AddressSource",
    "AddressStore",
    "Clock",
    "PlainTextAddressSource",
    "RunHistoryStore",
    "SystemClock",
    "TextFileAddressStore",
    "TextFileTimeStore",
    "parse_address",
]
