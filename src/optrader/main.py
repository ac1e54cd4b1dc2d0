#!/usr/bin/env python
"""
optrader entry point

Loads the configuration, sets up logging, registers the default portfolio
(unusual options strategy with a pricing entry signal, an expiry exit signal
and a delta hedger) and runs the trader in live or replay mode.

Usage:
    python -m optrader --config config/optrader.yaml
    OPTRADER_ENABLE_REPLAY=true OPTRADER_REPLAY_DATE=20210520 optrader
"""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

from loguru import logger

from optrader.config import TraderConfig, load_config, setup_logging
from optrader.core.errors import ConfigurationError
from optrader.data import PositionsRepository, SnapshotArchive
from optrader.feeds import IBOptionChainFeed
from optrader.hedge import DeltaHedger
from optrader.orchestration import (
    ActionQueue,
    EndOfDayReporter,
    LiveScheduler,
    LogAlerter,
    OptionTrader,
    PortfolioManager,
    ReplayScheduler,
)
from optrader.signals import ExpiryExitSignal, PricingEntrySignal
from optrader.strategy import UnusualOptionsStrategy
from optrader.utils.ib_connection import IBConnectionManager


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Unusual options volume trader with delta hedging",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config (default: config/optrader.yaml)",
    )
    return parser.parse_args(argv)


def build_portfolio_managers(config: TraderConfig) -> List[PortfolioManager]:
    """
    Register the portfolio managers of this process.

    Args:
        config: Trader configuration

    Returns:
        Portfolio managers to deliver snapshots to
    """
    portfolio = config.portfolio
    replay = config.scanner.enable_replay
    store = PositionsRepository(config.storage.positions_path(portfolio.name, replay=replay))

    strategy = UnusualOptionsStrategy(
        store=store,
        tickers=config.tickers,
        entry_signals=[
            PricingEntrySignal(
                risk_free_rate=portfolio.risk_free_rate,
                min_volatility=portfolio.min_implied_volatility,
            ),
        ],
        exit_signals=[ExpiryExitSignal()],
        hedger=DeltaHedger(skew=portfolio.hedge_skew),
        entry_quantity=portfolio.entry_quantity,
        exit_quantity=portfolio.exit_quantity,
        commission_per_contract=portfolio.commission_per_contract,
    )
    return [PortfolioManager(portfolio.name, strategy, store)]


def build_trader(
    config: TraderConfig,
    ib_conn: Optional[IBConnectionManager] = None
) -> OptionTrader:
    """
    Build the trader for the configured mode.

    Raises:
        ConfigurationError: If replay is requested without a usable archive
    """
    managers = build_portfolio_managers(config)
    queue = ActionQueue()
    local_archive = SnapshotArchive(config.storage.archive_path())
    scanner = config.scanner

    if scanner.enable_replay:
        if config.storage.remote_lake_path:
            source = SnapshotArchive(config.storage.replay_source_path(), read_only=True)
        else:
            source = local_archive
        scheduler = ReplayScheduler(source, local_archive, scanner.replay_date, queue, managers)
        scheduler.validate()
        return OptionTrader(managers, scheduler, queue)

    feed = IBOptionChainFeed(ib_conn or IBConnectionManager.from_config(config.ib_connection))
    scheduler = LiveScheduler(
        feed=feed,
        tickers=config.tickers,
        queue=queue,
        portfolio_managers=managers,
        archive=local_archive,
        scan_interval=scanner.scan_interval,
        batch_size=scanner.batch_size,
        days_to_expiration_max=scanner.days_to_expiration_max,
        strike_count=scanner.strike_count,
        request_timeout=scanner.request_timeout,
    )
    reporter = None
    if config.eod.enabled:
        reporter = EndOfDayReporter(queue, managers, LogAlerter(), config.eod.parsed_time())
    return OptionTrader(managers, scheduler, queue, reporter=reporter)


async def run(config: TraderConfig) -> int:
    """
    Run the trader until it finishes (replay) or is stopped (live).

    Returns:
        Exit code (0 for success, 1 for error)
    """
    ib_conn = None
    try:
        if not config.scanner.enable_replay:
            ib_conn = IBConnectionManager.from_config(config.ib_connection)
            await ib_conn.connect()
        trader = build_trader(config, ib_conn)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, trader.stop)

        await trader.run()
        return 0

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    except asyncio.CancelledError:
        logger.info("Trader cancelled, shutting down...")
        return 0

    except Exception as e:
        logger.exception(f"Trader failed: {e}")
        return 1

    finally:
        if ib_conn is not None:
            ib_conn.disconnect()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    setup_logging(config.logging)
    logger.info("=" * 60)
    mode = f"Replay {config.scanner.replay_date}" if config.scanner.enable_replay else "Live"
    logger.info(f"optrader - {mode} Mode")
    logger.info("=" * 60)

    return asyncio.run(run(config))


if __name__ == "__main__":
    sys.exit(main())
