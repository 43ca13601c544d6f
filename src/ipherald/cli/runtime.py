"""Shared runtime bootstrap helpers for CLI entrypoints."""

from __future__ import annotations

from dataclasses import dataclass

from ipherald.config import ConfigError, HeraldConfig
from ipherald.providers.base import NotificationChannel
from ipherald.scheduling import Scheduler
from ipherald.stores import (
    PlainTextAddressSource,
    SystemClock,
    TextFileAddressStore,
    TextFileTimeStore,
)


@dataclass(slots=True)
class RuntimeComponents:
    """Collaborators wired from configuration."""

    run_history: TextFileTimeStore
    address_source: PlainTextAddressSource
    address_cache: TextFileAddressStore
    clock: SystemClock


def create_components(config: HeraldConfig) -> RuntimeComponents:
    """Create the file stores, address source and clock."""
    return RuntimeComponents(
        run_history=TextFileTimeStore(config.ran_file),
        address_source=PlainTextAddressSource(
            config.ip_service_url, timeout=config.ip_service_timeout
        ),
        address_cache=TextFileAddressStore(config.ip_cache_file),
        clock=SystemClock(),
    )


def create_channel(config: HeraldConfig) -> NotificationChannel:
    """Create the Telegram channel.

    Raises:
        ConfigError: If no bot token is configured or it is malformed.
    """
    from aiogram.utils.token import TokenValidationError

    from ipherald.providers.telegram import TelegramChannel

    telegram = config.telegram
    if telegram.bot_token is None:
        raise ConfigError(
            "No Telegram bot token configured. Set telegram.bot_token "
            "or TELEGRAM_BOT_TOKEN"
        )
    try:
        return TelegramChannel(
            bot_token=telegram.bot_token.get_secret_value(),
            allowed_users=telegram.allowed_users,
            allowed_groups=telegram.allowed_groups,
        )
    except TokenValidationError as e:
        raise ConfigError(f"Invalid Telegram bot token: {e}") from e


def create_scheduler(
    config: HeraldConfig,
    channel: NotificationChannel,
    components: RuntimeComponents | None = None,
) -> Scheduler:
    """Wire a Scheduler from configuration."""
    components = components or create_components(config)
    return Scheduler(
        config.schedule,
        run_history=components.run_history,
        address_source=components.address_source,
        address_cache=components.address_cache,
        channel=channel,
        clock=components.clock,
        message_format=config.ip_message_format,
        default_destination=config.telegram.default_chat_id,
    )
