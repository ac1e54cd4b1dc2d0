"""
Tests for trader configuration loading and validation.
"""

from datetime import time

import pytest

from optrader.config import TraderConfig, load_config
from optrader.config.loader import ENV_MAPPING, merge_config_with_env
from optrader.core.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Drop OPTRADER_* overrides from the environment."""
    for env_var in ENV_MAPPING:
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def config_file(tmp_path):
    def write(text):
        path = tmp_path / "optrader.yaml"
        path.write_text(text)
        return str(path)
    return write


class TestDefaults:
    """Test the default configuration."""

    def test_defaults_are_valid(self):
        config = TraderConfig()

        assert config.validate() == []
        assert config.tickers == ["SPY", "QQQ", "IWM"]
        assert config.portfolio.min_implied_volatility == 0.20
        assert config.portfolio.commission_per_contract == 0.65
        assert config.portfolio.risk_free_rate == 0.005
        assert config.portfolio.hedge_skew == 1.0
        assert config.scanner.batch_size == 10
        assert config.eod.parsed_time() == time(16, 15)

    def test_missing_file_uses_defaults(self, tmp_path):
        """Test a missing config file falls back to defaults."""
        config = load_config(str(tmp_path / "missing.yaml"))
        assert config == TraderConfig()

    def test_storage_paths(self):
        """Test replay runs write positions to their own table."""
        storage = TraderConfig().storage

        assert storage.positions_path("unusual_options").endswith("positions/unusual_options")
        assert storage.positions_path("unusual_options", replay=True).endswith("unusual_options_replay")
        assert storage.replay_source_path() == storage.archive_path()


class TestLoadConfig:
    """Test loading from YAML."""

    def test_loads_yaml(self, config_file):
        path = config_file(
            "tickers: [spy, aapl]\n"
            "scanner:\n"
            "  enable_replay: true\n"
            "  replay_date: 20210520\n"
            "portfolio:\n"
            "  hedge_skew: 0.5\n"
            "storage:\n"
            "  remote_lake_path: /mnt/remote\n"
        )

        config = load_config(path)

        assert config.tickers == ["SPY", "AAPL"]
        assert config.scanner.enable_replay
        assert config.scanner.replay_date == "20210520"
        assert config.portfolio.hedge_skew == 0.5
        assert config.storage.replay_source_path() == "/mnt/remote/snapshot_archive"

    def test_env_overrides_file(self, config_file, monkeypatch):
        """Test OPTRADER_* variables win over the file."""
        path = config_file("ib_connection:\n  port: 4002\n")
        monkeypatch.setenv("OPTRADER_IB_PORT", "4001")
        monkeypatch.setenv("OPTRADER_ENABLE_REPLAY", "yes")
        monkeypatch.setenv("OPTRADER_REPLAY_DATE", "20210521")

        config = load_config(path)

        assert config.ib_connection.port == 4001
        assert config.scanner.enable_replay
        assert config.scanner.replay_date == "20210521"

    def test_bad_env_value(self, monkeypatch):
        monkeypatch.setenv("OPTRADER_IB_PORT", "not-a-port")
        with pytest.raises(ConfigurationError):
            merge_config_with_env({})

    def test_invalid_yaml(self, config_file):
        with pytest.raises(ConfigurationError):
            load_config(config_file("tickers: [SPY\n"))

    def test_unknown_key(self, config_file):
        with pytest.raises(ConfigurationError):
            load_config(config_file("portfolio:\n  leverage: 3\n"))

    @pytest.mark.parametrize("text", [
        "scanner:\n  enable_replay: true\n",
        "scanner:\n  enable_replay: true\n  replay_date: 2021-05-20\n",
        "portfolio:\n  min_implied_volatility: 25\n",
        "portfolio:\n  exit_quantity: 0\n",
        "tickers: []\n",
        "eod:\n  report_time: '4pm'\n",
        "ib_connection:\n  port: 70000\n",
    ])
    def test_invalid_values(self, config_file, text):
        """Test validation errors are raised as ConfigurationError."""
        with pytest.raises(ConfigurationError):
            load_config(config_file(text))
