"""Configuration module."""

from ipherald.config.loader import find_config_path, get_default_config, load_config
from ipherald.config.models import (
    ConfigError,
    HeraldConfig,
    TelegramConfig,
    parse_duration,
)
from ipherald.config.paths import (
    get_config_path,
    get_ipherald_home,
    get_pid_path,
)

__all__ = [
    "ConfigError",
    "HeraldConfig",
    "TelegramConfig",
    "find_config_path",
    "get_config_path",
    "get_default_config",
    "get_ipherald_home",
    "get_pid_path",
    "load_config",
    "parse_duration",
]
