"""Configuration models using Pydantic."""

import re
import string
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from ipaddress import IPv4Address, IPv6Address
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator

from ipherald.config.paths import get_ip_cache_path, get_pid_path, get_ran_path
from ipherald.errors import ConfigError
from ipherald.scheduling.types import Schedule

DEFAULT_IP_SERVICE_URL = "https://api.ipify.org"
ADDRESS_FIELD = "address"

_DURATION_UNITS_US: dict[str, Decimal] = {
    "ns": Decimal("0.001"),
    "us": Decimal(1),
    "µs": Decimal(1),
    "ms": Decimal(1_000),
    "s": Decimal(1_000_000),
    "m": Decimal(60_000_000),
    "h": Decimal(3_600_000_000),
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(text: str) -> timedelta:
    """Parse a duration string such as "1h", "1h30m", "2.5s" or "500ms".

    Sub-microsecond remainders are truncated.

    Raises:
        ValueError: If the string is not a valid duration.
    """
    value = text.strip()
    sign = 1
    if value[:1] in ("+", "-"):
        sign = -1 if value[0] == "-" else 1
        value = value[1:]
    if value == "0":
        return timedelta(0)
    if not value:
        raise ValueError(f"invalid duration: {text!r}")

    total_us = Decimal(0)
    pos = 0
    for match in _DURATION_PART.finditer(value):
        if match.start() != pos:
            break
        total_us += Decimal(match.group(1)) * _DURATION_UNITS_US[match.group(2)]
        pos = match.end()
    if pos != len(value):
        raise ValueError(f"invalid duration: {text!r}")
    return timedelta(microseconds=sign * int(total_us))


class TelegramConfig(BaseModel):
    """Configuration for the Telegram notification channel."""

    bot_token: SecretStr | None = None
    # Chat that receives unsolicited change announcements
    default_chat_id: str | None = None
    allowed_users: list[str] = []
    allowed_groups: list[str] = []

    @field_validator("default_chat_id", mode="before")
    @classmethod
    def _chat_id_to_str(cls, value: object) -> object:
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("allowed_users", "allowed_groups", mode="before")
    @classmethod
    def _ids_to_str(cls, value: object) -> object:
        if isinstance(value, list):
            return [str(v) for v in value]
        return value


class HeraldConfig(BaseModel):
    """Root configuration model."""

    interval: timedelta = timedelta(hours=1)
    offset: datetime = datetime(2023, 11, 28, tzinfo=UTC)
    # camelCase keys (pidFile, ipServiceURL, ...) are accepted too
    pid_file: Path = Field(
        default_factory=get_pid_path,
        validation_alias=AliasChoices("pid_file", "pidFile"),
    )
    ran_file: Path = Field(
        default_factory=get_ran_path,
        validation_alias=AliasChoices("ran_file", "ranFile"),
    )
    ip_service_url: str = Field(
        default=DEFAULT_IP_SERVICE_URL,
        validation_alias=AliasChoices("ip_service_url", "ipServiceURL"),
    )
    ip_service_timeout: float = 10.0
    ip_cache_file: Path = Field(
        default_factory=get_ip_cache_path,
        validation_alias=AliasChoices("ip_cache_file", "ipCacheFile"),
    )
    ip_message_format: str = Field(
        default="{address}",
        validation_alias=AliasChoices("ip_message_format", "ipMessageFormat"),
    )
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    log_file: str = Field(
        default="", validation_alias=AliasChoices("log_file", "logFile")
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("interval", mode="before")
    @classmethod
    def _parse_interval(cls, value: object) -> object:
        # ISO 8601 durations ("PT1H") and plain numbers are handled by pydantic
        if isinstance(value, str) and not value.strip().upper().startswith("P"):
            return parse_duration(value)
        return value

    @field_validator("interval")
    @classmethod
    def _interval_positive(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("interval must be positive")
        return value

    @field_validator("offset")
    @classmethod
    def _offset_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @field_validator("ip_message_format", mode="before")
    @classmethod
    def _convert_printf_format(cls, value: object) -> object:
        # "My IP is %s" -> "My IP is {address}"
        if isinstance(value, str) and value.count("%s") == 1 and "{" not in value:
            return value.replace("%s", "{" + ADDRESS_FIELD + "}")
        return value

    @field_validator("ip_message_format")
    @classmethod
    def _check_message_format(cls, value: str) -> str:
        try:
            fields = [
                name
                for _, name, _, _ in string.Formatter().parse(value)
                if name is not None
            ]
        except ValueError as e:
            raise ValueError(f"invalid message format: {e}") from e
        if fields != [ADDRESS_FIELD]:
            raise ValueError(
                "message format must contain exactly one '{address}' placeholder"
            )
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.upper()
        return value

    @property
    def schedule(self) -> Schedule:
        return Schedule(offset=self.offset, interval=self.interval)

    def format_message(self, address: IPv4Address | IPv6Address) -> str:
        return self.ip_message_format.format(address=address)


__all__ = [
    "ConfigError",
    "HeraldConfig",
    "TelegramConfig",
    "parse_duration",
]
