"""
Trader Configuration

Loads and validates the trader configuration from a YAML file.

Config location: config/optrader.yaml

Schema:
- tickers: Underlyings to scan
- scanner: Live/replay toggle, scan cadence and chain request settings
- portfolio: Strategy, pricing and hedging parameters
- storage: Delta Lake locations (local lake, optional remote replay lake)
- ib_connection: IB Gateway connection settings
- eod: End-of-day report settings
- logging: Log level and rotating file sink
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, time
from pathlib import Path
from typing import List, Optional

DEFAULT_TICKERS = ["SPY", "QQQ", "IWM"]


@dataclass
class ScannerConfig:
    """Snapshot scheduling configuration."""
    enable_replay: bool = False
    replay_date: Optional[str] = None  # YYYYMMDD
    batch_size: int = 10
    strike_count: int = 20
    days_to_expiration_max: int = 30
    request_timeout: float = 30.0  # seconds per ticker request
    scan_interval: float = 60.0    # seconds between cycle starts

    def __post_init__(self):
        # YAML reads an unquoted 20210520 as an int
        if self.replay_date is not None:
            self.replay_date = str(self.replay_date)


@dataclass
class PortfolioConfig:
    """Strategy, pricing and hedging parameters."""
    name: str = "unusual_options"
    min_implied_volatility: float = 0.20
    commission_per_contract: float = 0.65
    risk_free_rate: float = 0.005
    hedge_skew: float = 1.0
    entry_quantity: int = 1
    exit_quantity: Optional[int] = None  # None exits the full position


@dataclass
class StorageConfig:
    """Delta Lake locations."""
    lake_path: str = "data/lake"
    remote_lake_path: Optional[str] = None  # read-only archive for replay

    def positions_path(self, portfolio: str, replay: bool = False) -> str:
        """Positions table of a portfolio (replay runs use a separate table)."""
        suffix = "_replay" if replay else ""
        return str(Path(self.lake_path) / "positions" / f"{portfolio}{suffix}")

    def archive_path(self) -> str:
        return str(Path(self.lake_path) / "snapshot_archive")

    def replay_source_path(self) -> str:
        """Archive replay reads from: the remote lake if set, else the local one."""
        if self.remote_lake_path:
            return str(Path(self.remote_lake_path) / "snapshot_archive")
        return self.archive_path()


@dataclass
class IBConnectionConfig:
    """IB Gateway connection configuration."""
    host: str = "127.0.0.1"
    port: int = 4002
    client_id: int = 1
    connect_timeout: int = 10
    max_retries: int = 3
    retry_delay: float = 2.0
    failure_threshold: int = 5     # request failures that open the circuit breaker
    circuit_cooldown: float = 60.0  # seconds before an open circuit is probed


@dataclass
class EodConfig:
    """End-of-day report configuration."""
    enabled: bool = True
    report_time: str = "16:15"  # HH:MM, local time

    def parsed_time(self) -> time:
        return datetime.strptime(self.report_time, "%H:%M").time()


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_file: Optional[str] = "logs/optrader.log"
    max_log_size_mb: int = 100
    log_backup_count: int = 7

    def get_log_config(self) -> dict:
        """
        Get logging configuration for loguru.

        Returns:
            Dictionary with loguru configuration
        """
        return {
            "rotation": f"{self.max_log_size_mb} MB",
            "retention": f"{self.log_backup_count} days",
            "compression": "zip",
            "level": self.level,
            "format": (
                "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "<level>{message}</level>"
            ),
        }


@dataclass
class TraderConfig:
    """Complete trader configuration."""

    tickers: List[str] = field(default_factory=lambda: list(DEFAULT_TICKERS))
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    portfolio: PortfolioConfig = field(default_factory=PortfolioConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    ib_connection: IBConnectionConfig = field(default_factory=IBConnectionConfig)
    eod: EodConfig = field(default_factory=EodConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "TraderConfig":
        """Create config from dictionary with nested dataclass instantiation."""
        return cls(
            tickers=[str(t).upper() for t in data.get("tickers", DEFAULT_TICKERS)],
            scanner=ScannerConfig(**(data.get("scanner") or {})),
            portfolio=PortfolioConfig(**(data.get("portfolio") or {})),
            storage=StorageConfig(**(data.get("storage") or {})),
            ib_connection=IBConnectionConfig(**(data.get("ib_connection") or {})),
            eod=EodConfig(**(data.get("eod") or {})),
            logging=LoggingConfig(**(data.get("logging") or {})),
        )

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.tickers:
            errors.append("At least one ticker is required")

        # Scanner
        scanner = self.scanner
        if scanner.enable_replay:
            if not scanner.replay_date:
                errors.append("replay_date is required when enable_replay is set")
            elif not re.fullmatch(r"\d{8}", str(scanner.replay_date)):
                errors.append(f"replay_date must be YYYYMMDD: {scanner.replay_date}")
        if scanner.batch_size < 1:
            errors.append(f"batch_size must be >= 1: {scanner.batch_size}")
        if scanner.strike_count < 1:
            errors.append(f"strike_count must be >= 1: {scanner.strike_count}")
        if scanner.days_to_expiration_max < 0:
            errors.append(f"days_to_expiration_max must be >= 0: {scanner.days_to_expiration_max}")
        if scanner.request_timeout <= 0:
            errors.append(f"request_timeout must be > 0: {scanner.request_timeout}")
        if scanner.scan_interval <= 0:
            errors.append(f"scan_interval must be > 0: {scanner.scan_interval}")

        # Portfolio
        portfolio = self.portfolio
        if not portfolio.name:
            errors.append("Portfolio name is required")
        if not (0 <= portfolio.min_implied_volatility <= 5):
            errors.append(f"min_implied_volatility must be a decimal between 0 and 5: {portfolio.min_implied_volatility}")
        if portfolio.commission_per_contract < 0:
            errors.append(f"commission_per_contract must be >= 0: {portfolio.commission_per_contract}")
        if portfolio.hedge_skew < 0:
            errors.append(f"hedge_skew must be >= 0: {portfolio.hedge_skew}")
        if portfolio.entry_quantity < 1:
            errors.append(f"entry_quantity must be >= 1: {portfolio.entry_quantity}")
        if portfolio.exit_quantity is not None and portfolio.exit_quantity < 1:
            errors.append(f"exit_quantity must be >= 1: {portfolio.exit_quantity}")

        # Storage
        if not self.storage.lake_path:
            errors.append("lake_path is required")

        # IB connection
        if self.ib_connection.port < 1 or self.ib_connection.port > 65535:
            errors.append(f"Invalid IB port: {self.ib_connection.port}")
        if self.ib_connection.client_id < 0:
            errors.append(f"Invalid client_id: {self.ib_connection.client_id}")
        if self.ib_connection.connect_timeout < 1:
            errors.append(f"Invalid connect_timeout: {self.ib_connection.connect_timeout}")
        if self.ib_connection.max_retries < 1:
            errors.append(f"Invalid max_retries: {self.ib_connection.max_retries}")
        if self.ib_connection.failure_threshold < 1:
            errors.append(f"Invalid failure_threshold: {self.ib_connection.failure_threshold}")

        # EOD
        try:
            self.eod.parsed_time()
        except ValueError:
            errors.append(f"eod report_time must be HH:MM: {self.eod.report_time}")

        return errors
