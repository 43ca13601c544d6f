"""Shared test fixtures and fakes."""

import asyncio
from datetime import UTC, datetime, timedelta
from ipaddress import ip_address
from pathlib import Path

import pytest

from ipherald.errors import (
    AddressLookupError,
    ChannelError,
    HeraldError,
    NotFoundError,
)
from ipherald.providers.base import NotificationChannel
from ipherald.scheduling import Schedule, Scheduler
from ipherald.scheduling.types import IPAddress

OFFSET = datetime(2023, 11, 28, 0, 5, tzinfo=UTC)
HOUR = timedelta(hours=1)

# =============================================================================
# In-memory collaborators
# =============================================================================


class MemoryRunHistory:
    """Run record held in memory; records every write."""

    def __init__(self, last_run: datetime | None = None):
        self.value = last_run
        self.writes: list[datetime] = []
        self.get_error: Exception | None = None
        self.put_error: HeraldError | None = None

    async def get(self) -> datetime:
        if self.get_error is not None:
            raise self.get_error
        if self.value is None:
            raise NotFoundError("no run recorded")
        return self.value

    async def put(self, instant: datetime) -> None:
        self.writes.append(instant)
        if self.put_error is not None:
            raise self.put_error
        self.value = instant


class MemoryAddressStore:
    def __init__(self, address: str | None = None):
        self.value: IPAddress | None = ip_address(address) if address else None
        self.put_error: HeraldError | None = None

    async def get(self) -> IPAddress:
        if self.value is None:
            raise NotFoundError("no address cached")
        return self.value

    async def put(self, address: IPAddress) -> None:
        if self.put_error is not None:
            raise self.put_error
        self.value = address


class FakeAddressSource:
    """Returns a configurable address and counts lookups."""

    def __init__(self, address: str | None = "1.2.3.4"):
        self.address = address
        self.calls = 0

    async def get(self) -> IPAddress:
        self.calls += 1
        if self.address is None:
            raise AddressLookupError("lookup failed")
        return ip_address(self.address)


class FixedClock:
    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current


class FakeChannel(NotificationChannel):
    """Records sends and lets tests inject wake events and failures."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[str] = asyncio.Queue()
        self.sent: list[tuple[str, str]] = []
        self.open_calls = 0
        self.closed = False
        self.open_error: Exception | None = None
        self.send_error: ChannelError | None = None

    @property
    def name(self) -> str:
        return "fake"

    async def open(self) -> None:
        self.open_calls += 1
        if self.open_error is not None:
            raise self.open_error

    def wake_events(self) -> asyncio.Queue[str]:
        return self.queue

    async def send(self, destination: str, text: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((destination, text))

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def schedule() -> Schedule:
    return Schedule(offset=OFFSET, interval=HOUR)


@pytest.fixture
def run_history() -> MemoryRunHistory:
    return MemoryRunHistory()


@pytest.fixture
def address_cache() -> MemoryAddressStore:
    return MemoryAddressStore()


@pytest.fixture
def address_source() -> FakeAddressSource:
    return FakeAddressSource()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2023, 11, 28, 14, 0, tzinfo=UTC))


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def scheduler(
    schedule, run_history, address_cache, address_source, channel, clock
) -> Scheduler:
    """Scheduler wired to in-memory fakes with a default chat configured."""
    return Scheduler(
        schedule,
        run_history=run_history,
        address_source=address_source,
        address_cache=address_cache,
        channel=channel,
        clock=clock,
        message_format="IP is {address}",
        default_destination="100",
    )


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def config_yaml_content(tmp_path: Path) -> str:
    return f"""
interval: 90m
offset: "2023-11-28T00:05:00Z"
pid_file: {tmp_path / "ipherald.pid"}
ran_file: {tmp_path / "cache" / "ran"}
ip_cache_file: {tmp_path / "cache" / "ip"}
ip_service_url: {tmp_path / "ip.txt"}
ip_message_format: "Current IP: {{address}}"
telegram:
  bot_token: "123456789:AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA"
  default_chat_id: -100200
  allowed_users: ["@alice", 42]
"""


@pytest.fixture
def config_file(tmp_path: Path, config_yaml_content: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(config_yaml_content)
    return path


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point IPHERALD_HOME at a temp dir and clear the bot token env var."""
    home = tmp_path / "home"
    monkeypatch.setenv("IPHERALD_HOME", str(home))
    monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)
    monkeypatch.delenv("IPHERALD_LOG_LEVEL", raising=False)
    return home


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})
