"""Tests for centralized path management."""

from pathlib import Path

from ipherald.config.paths import (
    ENV_VAR,
    get_cache_path,
    get_config_path,
    get_ip_cache_path,
    get_ipherald_home,
    get_pid_path,
    get_ran_path,
)


class TestPaths:
    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv(ENV_VAR, str(tmp_path / "custom"))
        assert get_ipherald_home() == (tmp_path / "custom").resolve()

    def test_default_home(self, monkeypatch):
        monkeypatch.delenv(ENV_VAR, raising=False)
        assert get_ipherald_home() == Path.home() / ".ipherald"

    def test_layout(self, isolated_home):
        home = get_ipherald_home()
        assert get_config_path() == home / "config.yaml"
        assert get_cache_path() == home / "cache"
        assert get_ran_path() == home / "cache" / "ran"
        assert get_ip_cache_path() == home / "cache" / "ip"
        assert get_pid_path() == home / "ipherald.pid"
