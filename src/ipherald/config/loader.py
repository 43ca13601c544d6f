"""Configuration loading from YAML files and environment variables."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import SecretStr, ValidationError

from ipherald.config.models import HeraldConfig
from ipherald.config.paths import get_config_path
from ipherald.errors import ConfigError

TOKEN_ENV = "TELEGRAM_BOT_TOKEN"


def _search_paths() -> list[Path]:
    """Config files tried in order when none is given."""
    return [
        Path("ipherald.yaml"),
        get_config_path(),
        Path("/etc/ipherald/config.yaml"),
    ]


def _apply_env_token(raw: dict[str, Any]) -> dict[str, Any]:
    """Fill telegram.bot_token from $TELEGRAM_BOT_TOKEN unless the file sets it."""
    token = os.environ.get(TOKEN_ENV)
    section = raw.get("telegram") or {}
    if not token or not isinstance(section, dict) or section.get("bot_token"):
        return raw
    raw["telegram"] = {**section, "bot_token": SecretStr(token)}
    return raw


def find_config_path(path: Path | None = None) -> Path:
    """Resolve the config file to load.

    Raises:
        ConfigError: If no config file is found.
    """
    if path is not None:
        explicit = Path(path).expanduser()
        if not explicit.exists():
            raise ConfigError(f"Config file not found: {explicit}")
        return explicit

    candidates = [candidate.expanduser() for candidate in _search_paths()]
    found = next((candidate for candidate in candidates if candidate.exists()), None)
    if found is None:
        searched = ", ".join(map(str, candidates))
        raise ConfigError(f"No config file found. Searched: {searched}")
    return found


def load_config(path: Path | None = None) -> HeraldConfig:
    """Load and validate the YAML configuration.

    Without an explicit path, ./ipherald.yaml, the home config and
    /etc/ipherald/config.yaml are tried in that order.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    source = find_config_path(path)

    try:
        raw = yaml.safe_load(source.read_bytes())
    except OSError as e:
        raise ConfigError(f"Failed to read config file {source}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to decode config file {source}: {e}") from e

    raw = {} if raw is None else raw
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {source} must contain a mapping")

    try:
        return HeraldConfig.model_validate(_apply_env_token(raw))
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {source}: {e}") from e


def get_default_config() -> HeraldConfig:
    """Defaults plus any token from the environment, without reading a file."""
    return HeraldConfig.model_validate(_apply_env_token({}))
