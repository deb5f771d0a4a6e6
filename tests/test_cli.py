"""Tests for the command-line entry point."""

import pytest
from click.testing import CliRunner

from arbscout.cli.main import build_engine, main
from arbscout.core.config import load_settings
from arbscout.core.errors import ConfigurationError
from arbscout.providers.base import NoTransferRestrictions, StaticUniverseProvider
from conftest import FakeVenue


class TestCli:
    def test_status(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("venues: [binance, okx]\ncyclic:\n  venues: [binance]\n")
        monkeypatch.setenv("ARBSCOUT_CONFIG", str(path))

        result = CliRunner().invoke(main, ["--status"])

        assert result.exit_code == 0
        assert "Arbitrage threshold" in result.output
        assert "binance, okx" in result.output

    def test_missing_config_exits_1(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ARBSCOUT_CONFIG", str(tmp_path / "missing.yaml"))

        result = CliRunner().invoke(main, ["--status"])

        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_bad_log_level_exits_1(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")

        result = CliRunner().invoke(main, ["--status"])

        assert result.exit_code == 1
        assert "Unknown log level" in result.output

    @pytest.mark.asyncio
    async def test_build_engine_with_static_symbols(self):
        config = {
            "venues": ["binance", "definitely_not_an_exchange"],
            "exchange_status": {"enabled": False},
            "scanner": {"batch_delay_seconds": 0},
        }
        engine = await build_engine(load_settings(telegram_enabled=False), config, symbols=["BTC", "ETH"])

        assert engine.market.list_venues() == ["binance"]
        assert isinstance(engine.universe, StaticUniverseProvider)
        assert isinstance(engine.eligibility, NoTransferRestrictions)
        await engine.market.close()

    @pytest.mark.asyncio
    async def test_build_engine_closes_venues_on_bad_config(self, monkeypatch):
        venue = FakeVenue("binance")
        monkeypatch.setattr("arbscout.cli.main.create_ccxt_venues", lambda *args, **kwargs: [venue])
        config = {
            "exchange_status": {"enabled": False},
            "sweep": {"interval_seconds": 0},
        }

        with pytest.raises(ConfigurationError):
            await build_engine(load_settings(telegram_enabled=False), config, symbols=["BTC"])

        assert venue.closed is True
