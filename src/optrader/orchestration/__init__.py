"""
Orchestration: action queue, schedulers, portfolio managers and the trader.
"""

from optrader.orchestration.action_queue import (
    Action,
    ActionQueue,
    AdvanceReplayCursorAction,
    ArchiveSnapshotAction,
    DeliverSnapshotAction,
    EndOfDayReportAction,
    MarkToMarketAction,
    QueueStats,
    snapshot_actions,
)
from optrader.orchestration.alerter import Alerter, LogAlerter
from optrader.orchestration.portfolio_manager import PortfolioManager, PortfolioSummary
from optrader.orchestration.schedulers import (
    Clock,
    EndOfDayReporter,
    LiveScheduler,
    ReplayScheduler,
    SystemClock,
)
from optrader.orchestration.trader import OptionTrader

__all__ = [
    # Actions
    "Action",
    "ActionQueue",
    "AdvanceReplayCursorAction",
    "ArchiveSnapshotAction",
    "DeliverSnapshotAction",
    "EndOfDayReportAction",
    "MarkToMarketAction",
    "QueueStats",
    "snapshot_actions",
    # Alerts
    "Alerter",
    "LogAlerter",
    # Portfolios
    "PortfolioManager",
    "PortfolioSummary",
    # Scheduling
    "Clock",
    "EndOfDayReporter",
    "LiveScheduler",
    "ReplayScheduler",
    "SystemClock",
    "OptionTrader",
]
