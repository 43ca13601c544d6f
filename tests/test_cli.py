"""Tests for CLI commands."""

import os
from ipaddress import ip_address
from unittest.mock import AsyncMock, patch

import pytest

from ipherald.cli.app import app
from ipherald.cli.runtime import create_channel, create_components, create_scheduler
from ipherald.config import ConfigError, HeraldConfig, load_config
from ipherald.scheduling import Scheduler
from ipherald.service import PidLock
from tests.conftest import FakeChannel


class TestNextCommand:
    def test_without_run_record(self, cli_runner, config_file):
        result = cli_runner.invoke(app, ["next", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "Next run" in result.stdout
        assert "1:30:00" in result.stdout
        assert "unknown" in result.stdout

    def test_with_run_record(self, cli_runner, config_file, tmp_path):
        ran = tmp_path / "cache" / "ran"
        ran.parent.mkdir(parents=True)
        ran.write_text("2023-11-28T13:05:00+00:00")

        result = cli_runner.invoke(app, ["next", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "2023-11-28T13:05:00+00:00" in result.stdout

    def test_corrupt_run_record(self, cli_runner, config_file, tmp_path):
        ran = tmp_path / "cache" / "ran"
        ran.parent.mkdir(parents=True)
        ran.write_text("garbage")

        result = cli_runner.invoke(app, ["next", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "Ignoring run record" in result.stdout

    def test_missing_config(self, cli_runner, tmp_path):
        result = cli_runner.invoke(
            app, ["next", "--config", str(tmp_path / "missing.yaml")]
        )
        assert result.exit_code == 1
        assert "not found" in result.stdout


class TestStatusCommand:
    def test_not_running(self, cli_runner, config_file):
        result = cli_runner.invoke(app, ["status", "--config", str(config_file)])
        assert result.exit_code == 1
        assert "Not running" in result.stdout

    def test_running(self, cli_runner, config_file, tmp_path):
        with PidLock(tmp_path / "ipherald.pid"):
            result = cli_runner.invoke(app, ["status", "--config", str(config_file)])

        assert result.exit_code == 0
        assert f"PID {os.getpid()}" in result.stdout

    def test_stale(self, cli_runner, config_file, tmp_path):
        (tmp_path / "ipherald.pid").write_text("999999999\n0\n")
        result = cli_runner.invoke(app, ["status", "--config", str(config_file)])
        assert result.exit_code == 1
        assert "stale" in result.stdout


class TestCheckCommand:
    def test_first_lookup(self, cli_runner, config_file, tmp_path):
        (tmp_path / "ip.txt").write_text("203.0.113.7\n")

        result = cli_runner.invoke(app, ["check", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "203.0.113.7" in result.stdout
        assert "Current IP: 203.0.113.7" in result.stdout

    def test_changed(self, cli_runner, config_file, tmp_path):
        (tmp_path / "ip.txt").write_text("203.0.113.7")
        cache = tmp_path / "cache" / "ip"
        cache.parent.mkdir(parents=True)
        cache.write_text("198.51.100.1")

        result = cli_runner.invoke(app, ["check", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "198.51.100.1" in result.stdout
        assert "changed" in result.stdout
        # check never writes the cache
        assert cache.read_text() == "198.51.100.1"

    def test_lookup_failure(self, cli_runner, config_file):
        result = cli_runner.invoke(app, ["check", "--config", str(config_file)])
        assert result.exit_code == 1
        assert "Lookup failed" in result.stdout


class TestServeCommand:
    @pytest.fixture(autouse=True)
    def no_logging_setup(self):
        with patch("ipherald.logging.configure_logging") as mock:
            yield mock

    def test_runs_scheduler_under_lock(
        self, cli_runner, config_file, tmp_path, no_logging_setup
    ):
        pid_path = tmp_path / "ipherald.pid"
        held = []

        async def fake_run(config):
            held.append(pid_path.exists())

        with patch(
            "ipherald.cli.commands.serve._run_scheduler", side_effect=fake_run
        ):
            result = cli_runner.invoke(
                app, ["serve", "--config", str(config_file), "--log-level", "debug"]
            )

        assert result.exit_code == 0
        assert held == [True]
        assert not pid_path.exists()
        no_logging_setup.assert_called_once_with(
            level="debug", log_file="", use_rich=True
        )

    def test_lock_held_elsewhere(self, cli_runner, config_file, tmp_path):
        run = AsyncMock()
        with PidLock(tmp_path / "ipherald.pid"):
            with patch("ipherald.cli.commands.serve._run_scheduler", run):
                result = cli_runner.invoke(
                    app, ["serve", "--config", str(config_file)]
                )

        assert result.exit_code == 1
        assert "failed to lock" in result.stdout
        run.assert_not_called()

    def test_missing_token(self, cli_runner, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(f"pid_file: {tmp_path / 'ipherald.pid'}\n")

        result = cli_runner.invoke(app, ["serve", "--config", str(path)])

        assert result.exit_code == 1
        assert "No Telegram bot token" in result.stdout

    def test_missing_config(self, cli_runner, tmp_path):
        result = cli_runner.invoke(
            app, ["serve", "--config", str(tmp_path / "missing.yaml")]
        )
        assert result.exit_code == 1


class TestRuntime:
    def test_create_channel_requires_token(self):
        with pytest.raises(ConfigError):
            create_channel(HeraldConfig())

    def test_create_channel(self, config_file):
        with patch("ipherald.providers.telegram.provider.Bot"):
            channel = create_channel(load_config(config_file))
        assert channel.name == "telegram"

    @pytest.mark.asyncio
    async def test_create_scheduler_wires_config(self, config_file, tmp_path):
        config = load_config(config_file)
        (tmp_path / "ip.txt").write_text("10.0.0.1")
        channel = FakeChannel()

        scheduler = create_scheduler(config, channel)
        sent = await scheduler.run_cycle(config.offset, cached=False)

        assert isinstance(scheduler, Scheduler)
        assert sent
        assert channel.sent == [("-100200", "Current IP: 10.0.0.1")]
        components = create_components(config)
        assert await components.address_cache.get() == ip_address("10.0.0.1")
        assert await components.run_history.get() == config.offset
