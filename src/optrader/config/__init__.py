"""
Configuration for optrader.

This package provides:
- Trader configuration dataclasses (TraderConfig and its sections)
- YAML loading with OPTRADER_ environment overrides
- Loguru sink setup
"""

from optrader.config.loader import load_config, merge_config_with_env, setup_logging
from optrader.config.trader_config import (
    EodConfig,
    IBConnectionConfig,
    LoggingConfig,
    PortfolioConfig,
    ScannerConfig,
    StorageConfig,
    TraderConfig,
)

__all__ = [
    "EodConfig",
    "IBConnectionConfig",
    "LoggingConfig",
    "PortfolioConfig",
    "ScannerConfig",
    "StorageConfig",
    "TraderConfig",
    "load_config",
    "merge_config_with_env",
    "setup_logging",
]
