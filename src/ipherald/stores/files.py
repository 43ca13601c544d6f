"""Plain-text file stores for the run record and the address cache."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from ipaddress import ip_address
from pathlib import Path

import aiofiles

from ipherald.errors import NotFoundError, StoreError
from ipherald.scheduling.types import IPAddress

logger = logging.getLogger(__name__)


def clean_text(raw: str) -> str:
    """Trim whitespace and NUL padding from stored or downloaded text."""
    return raw.replace("\x00", "").strip()


def parse_address(raw: str) -> IPAddress:
    """Parse an IPv4/IPv6 address from text.

    Raises:
        StoreError: If the text is not an address.
    """
    text = clean_text(raw)
    try:
        return ip_address(text)
    except ValueError as e:
        raise StoreError(f"failed to parse IP address: {text!r}") from e


async def _read_text(path: Path, desc: str) -> str:
    try:
        async with aiofiles.open(path, encoding="utf-8") as f:
            return await f.read()
    except FileNotFoundError as e:
        raise NotFoundError(f"{desc} file not found: {path}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise StoreError(f"failed to read {desc} file {path}: {e}") from e


async def _write_text(path: Path, desc: str, text: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StoreError(f"failed to make directory for {desc} file {path}: {e}") from e
    try:
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(text)
    except OSError as e:
        raise StoreError(f"failed to write {desc} file {path}: {e}") from e


class TextFileTimeStore:
    """Stores the last run instant as an ISO 8601 timestamp."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    async def get(self) -> datetime:
        text = clean_text(await _read_text(self._path, "time"))
        try:
            instant = datetime.fromisoformat(text)
        except ValueError as e:
            raise StoreError(f"failed to parse date from time file: {text!r}") from e
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=UTC)
        return instant

    async def put(self, instant: datetime) -> None:
        await _write_text(self._path, "time", instant.isoformat())
        logger.debug("run_record_written", extra={"file.path": str(self._path)})


class TextFileAddressStore:
    """Stores the last known address as text."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    async def get(self) -> IPAddress:
        return parse_address(await _read_text(self._path, "IP"))

    async def put(self, address: IPAddress) -> None:
        await _write_text(self._path, "IP", str(address))
