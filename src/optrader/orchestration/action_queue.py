"""
Action Queue

Serializes all state mutation through a single consumer. Producers (the
schedulers) put actions on an unbounded asyncio queue; one consumer task takes
them in FIFO order and runs each to completion in a worker thread before
taking the next, so actions never overlap.

An action that raises is logged with its traceback and dropped. There is no
retry: every action runs at most once.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from loguru import logger

from optrader.core.models import Snapshot
from optrader.data.snapshot_archive import SequenceCounter, SnapshotArchive, archive_date
from optrader.orchestration.alerter import Alerter
from optrader.orchestration.portfolio_manager import PortfolioManager


class Action(Protocol):
    """Unit of deferred work executed by the queue consumer."""

    name: str

    def process(self) -> None:
        ...


class ArchiveSnapshotAction:
    """Store a live snapshot under <ticker>_<n> and advance the day's counter."""

    name = "archive_snapshot"

    def __init__(self, archive: SnapshotArchive, counter: SequenceCounter, ticker: str, snapshot: Snapshot):
        self.archive = archive
        self.counter = counter
        self.ticker = ticker
        self.snapshot = snapshot

    def process(self) -> None:
        date = archive_date(self.snapshot)
        sequence = self.counter.current(date)
        self.archive.archive(self.ticker, sequence, self.snapshot)
        # Only count the label once the snapshot is stored
        self.counter.advance(date)


class MarkToMarketAction:
    """Refresh open positions of every portfolio from a snapshot."""

    name = "mark_to_market"

    def __init__(self, portfolio_managers: Sequence[PortfolioManager], snapshot: Snapshot):
        self.portfolio_managers = portfolio_managers
        self.snapshot = snapshot

    def process(self) -> None:
        for manager in self.portfolio_managers:
            manager.mark_to_market(self.snapshot)


class DeliverSnapshotAction:
    """Run one portfolio's strategy on a snapshot."""

    name = "deliver_snapshot"

    def __init__(self, portfolio_manager: PortfolioManager, snapshot: Snapshot):
        self.portfolio_manager = portfolio_manager
        self.snapshot = snapshot

    def process(self) -> None:
        self.portfolio_manager.deliver(self.snapshot)


class AdvanceReplayCursorAction:
    """Record that replay has consumed every snapshot of a sequence number."""

    name = "advance_replay_cursor"

    def __init__(self, archive: SnapshotArchive, date: str, sequence: int):
        self.archive = archive
        self.date = date
        self.sequence = sequence

    def process(self) -> None:
        self.archive.set_replay_cursor(self.date, self.sequence)
        logger.debug(f"✓ Replay cursor for {self.date} at {self.sequence}")


class EndOfDayReportAction:
    """Summarize every portfolio and hand the report to the alerter."""

    name = "end_of_day_report"

    def __init__(self, portfolio_managers: Sequence[PortfolioManager], alerter: Alerter, date: str):
        self.portfolio_managers = portfolio_managers
        self.alerter = alerter
        self.date = date

    def process(self) -> None:
        lines = [manager.summary().to_text() for manager in self.portfolio_managers]
        self.alerter.send(f"End of day report {self.date}", "\n".join(lines))
        logger.info(f"✓ Sent end of day report for {self.date}")


def snapshot_actions(
    portfolio_managers: Sequence[PortfolioManager],
    snapshot: Snapshot
) -> List[Action]:
    """Delivery actions for a snapshot: mark to market, then one delivery per portfolio."""
    actions: List[Action] = [MarkToMarketAction(portfolio_managers, snapshot)]
    actions.extend(DeliverSnapshotAction(manager, snapshot) for manager in portfolio_managers)
    return actions


@dataclass(slots=True)
class QueueStats:
    """Statistics for the action queue consumer."""
    total_processed: int = 0
    total_failed: int = 0
    last_action: Optional[str] = None
    last_processed_at: Optional[datetime] = None


class ActionQueue:
    """
    Unbounded FIFO of actions with exactly one consumer.

    **Ordering:**
    Actions run in the order they were put, one at a time. process() is
    blocking and runs in a worker thread so the event loop keeps serving
    producers.

    **Failures:**
    Exceptions are logged with traceback and counted. The consumer moves on.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._is_running = False

        self.stats = QueueStats()

    @property
    def size(self) -> int:
        """Actions waiting to be processed."""
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return self._is_running

    def put(self, action: Action) -> None:
        """Enqueue an action (never blocks)."""
        self._queue.put_nowait(action)

    async def start(self) -> None:
        """Start the consumer task."""
        if self._is_running:
            logger.warning("ActionQueue already running")
            return

        self._is_running = True
        self._task = asyncio.create_task(self._consumer_loop())
        logger.info("✓ ActionQueue started")

    async def stop(self) -> None:
        """Stop the consumer task. Pending actions are left in the queue."""
        self._is_running = False

        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info(f"✓ ActionQueue stopped ({self.size} actions pending)")

    async def join(self) -> None:
        """Wait until every enqueued action has been processed."""
        await self._queue.join()

    async def _consumer_loop(self) -> None:
        while self._is_running:
            action = await self._queue.get()
            try:
                await asyncio.to_thread(action.process)
                self.stats.total_processed += 1
            except Exception:
                self.stats.total_failed += 1
                logger.exception(f"Action {action.name} failed")
            finally:
                self.stats.last_action = action.name
                self.stats.last_processed_at = datetime.now()
                self._queue.task_done()
