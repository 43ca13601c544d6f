"""Live external address lookup from a plain-text service."""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import unquote, urlsplit

import aiofiles
import httpx

from ipherald.errors import AddressLookupError, StoreError
from ipherald.scheduling.types import IPAddress
from ipherald.stores.files import parse_address

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class PlainTextAddressSource:
    """Fetches the external address from a service that returns it as text.

    ``url`` may be an http(s) URL, a ``file://`` URL or a bare file path.
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._client = client

    @property
    def url(self) -> str:
        return self._url

    async def get(self) -> IPAddress:
        parts = urlsplit(self._url)
        if parts.scheme in ("http", "https"):
            text = await self._download()
        elif parts.scheme == "file":
            text = await self._read_file(Path(unquote(parts.netloc + parts.path)))
        else:
            text = await self._read_file(Path(self._url).expanduser())

        try:
            address = parse_address(text)
        except StoreError as e:
            raise AddressLookupError(f"{e} (from {self._url})") from e
        logger.debug(
            "ip_address_fetched",
            extra={"ip.address": str(address), "http.url": self._url},
        )
        return address

    async def _download(self) -> str:
        try:
            if self._client is not None:
                response = await self._client.get(self._url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(self._url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise AddressLookupError(
                f"failed to download from {self._url}: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise AddressLookupError(f"failed to download from {self._url}: {e}") from e
        return response.text

    async def _read_file(self, path: Path) -> str:
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                return await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise AddressLookupError(f"failed to open IP file {path}: {e}") from e
