"""
Configuration Loader Module

Loads the trader configuration from YAML, applies environment variable
overrides and configures loguru sinks.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from loguru import logger

from optrader.core.errors import ConfigurationError
from optrader.config.trader_config import LoggingConfig, TraderConfig

DEFAULT_CONFIG_PATH = Path("config/optrader.yaml")

# env var -> (section, key, type); section None is top level
ENV_MAPPING = {
    "OPTRADER_ENABLE_REPLAY": ("scanner", "enable_replay", bool),
    "OPTRADER_REPLAY_DATE": ("scanner", "replay_date", str),
    "OPTRADER_SCAN_INTERVAL": ("scanner", "scan_interval", float),
    "OPTRADER_LAKE_PATH": ("storage", "lake_path", str),
    "OPTRADER_REMOTE_LAKE_PATH": ("storage", "remote_lake_path", str),
    "OPTRADER_IB_HOST": ("ib_connection", "host", str),
    "OPTRADER_IB_PORT": ("ib_connection", "port", int),
    "OPTRADER_LOG_LEVEL": ("logging", "level", str),
}


def merge_config_with_env(config_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge configuration with environment variables.

    Environment variables override config file settings.

    Examples:
        OPTRADER_ENABLE_REPLAY=true
        OPTRADER_REPLAY_DATE=20210520
        OPTRADER_IB_PORT=4001

    Args:
        config_data: Configuration data from file

    Returns:
        Merged configuration with env vars applied

    Raises:
        ConfigurationError: If an env value cannot be converted
    """
    for env_var, (section, key, kind) in ENV_MAPPING.items():
        env_value = os.environ.get(env_var)
        if env_value is None:
            continue

        try:
            if kind is bool:
                value = env_value.lower() in ("true", "1", "yes", "on")
            else:
                value = kind(env_value)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for {env_var}: {env_value!r}") from e

        config_data.setdefault(section, {})
        if config_data[section] is None:
            config_data[section] = {}
        config_data[section][key] = value
        logger.debug(f"Overriding {section}.{key} from env: {env_var}")

    return config_data


def load_config(config_path: Optional[str] = None) -> TraderConfig:
    """
    Load and validate the trader configuration.

    A missing or empty file falls back to defaults (with env overrides).

    Args:
        config_path: Path to config file (default: config/optrader.yaml)

    Returns:
        Validated TraderConfig

    Raises:
        ConfigurationError: If the file cannot be parsed or the config is invalid
    """
    config_file = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    data: Dict[str, Any] = {}

    if not config_file.exists():
        logger.warning(f"Config file not found: {config_file}, using defaults")
    else:
        try:
            with open(config_file, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing YAML config {config_file}: {e}") from e
        logger.info(f"✓ Loaded config from {config_file}")

    data = merge_config_with_env(data)

    try:
        config = TraderConfig.from_dict(data)
    except TypeError as e:
        raise ConfigurationError(f"Unknown configuration key: {e}") from e

    errors = config.validate()
    if errors:
        error_msg = "Configuration validation errors:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)

    mode = f"replay of {config.scanner.replay_date}" if config.scanner.enable_replay else "live"
    logger.debug(f"  Mode: {mode}")
    logger.debug(f"  Tickers: {config.tickers}")
    logger.debug(f"  Lake: {config.storage.lake_path}")
    return config


def setup_logging(config: LoggingConfig) -> None:
    """
    Configure loguru: a stderr sink plus a rotating file sink.

    Args:
        config: Logging section of the trader config
    """
    log_config = config.get_log_config()
    logger.remove()
    logger.add(sys.stderr, level=log_config["level"], format=log_config["format"])

    if config.log_file:
        Path(config.log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            config.log_file,
            rotation=log_config["rotation"],
            retention=log_config["retention"],
            compression=log_config["compression"],
            level=log_config["level"],
            format=log_config["format"],
        )
        logger.info(f"Logging to: {config.log_file}")
