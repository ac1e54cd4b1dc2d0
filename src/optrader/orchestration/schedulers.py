"""
Snapshot schedulers.

Producers feeding the action queue:

- LiveScheduler: polls the option chain feed every scan interval, archives
  each snapshot and delivers it to every portfolio manager
- ReplayScheduler: re-delivers the archived snapshots of a past date in
  sequence order, resuming after the last consumed sequence number
- EndOfDayReporter: enqueues the end-of-day report once per day

All timing goes through an injected Clock so tests can drive it.
"""

import asyncio
from datetime import datetime, time, timedelta
from typing import Dict, List, Optional, Protocol, Sequence

from loguru import logger

from optrader.core.errors import ConfigurationError
from optrader.core.models import Snapshot, batch
from optrader.data.snapshot_archive import SequenceCounter, SnapshotArchive
from optrader.feeds.base import OptionChainFeed
from optrader.orchestration.action_queue import (
    ActionQueue,
    AdvanceReplayCursorAction,
    ArchiveSnapshotAction,
    EndOfDayReportAction,
    snapshot_actions,
)
from optrader.orchestration.alerter import Alerter
from optrader.orchestration.portfolio_manager import PortfolioManager


class Clock(Protocol):
    """Source of time for schedulers."""

    def now(self) -> datetime:
        ...

    async def sleep(self, seconds: float) -> None:
        ...


class SystemClock:
    """Wall clock backed by datetime.now() and asyncio.sleep()."""

    def now(self) -> datetime:
        return datetime.now()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class LiveScheduler:
    """
    Polls the feed on a fixed delay and enqueues archive + delivery actions.

    The delay is measured from the start of the previous cycle. A cycle that
    overruns the interval is followed immediately by the next one; cycles
    never overlap.
    """

    def __init__(
        self,
        feed: OptionChainFeed,
        tickers: Sequence[str],
        queue: ActionQueue,
        portfolio_managers: Sequence[PortfolioManager],
        archive: SnapshotArchive,
        clock: Optional[Clock] = None,
        scan_interval: float = 60.0,
        batch_size: int = 10,
        days_to_expiration_max: int = 30,
        strike_count: int = 20,
        request_timeout: float = 30.0
    ):
        """
        Initialize the live scheduler.

        Args:
            feed: Option chain feed
            tickers: Underlyings to scan
            queue: Action queue to feed
            portfolio_managers: Registered portfolio managers
            archive: Local snapshot archive
            clock: Clock (default: system clock)
            scan_interval: Seconds between cycle starts
            batch_size: Tickers requested concurrently
            days_to_expiration_max: Furthest expiration requested, in days
            strike_count: Strikes requested around the money
            request_timeout: Seconds allowed per ticker request
        """
        self.feed = feed
        self.tickers = list(tickers)
        self.queue = queue
        self.portfolio_managers = portfolio_managers
        self.archive = archive
        self.counter = SequenceCounter(archive)
        self.clock = clock or SystemClock()
        self.scan_interval = scan_interval
        self.days_to_expiration_max = days_to_expiration_max
        self.strike_count = strike_count
        self.request_timeout = request_timeout

        self.batches = batch(self.tickers, batch_size)
        self.cycles = 0

    async def run(self) -> None:
        """Run scan cycles until cancelled."""
        await asyncio.to_thread(self.counter.seed, self.clock.now().strftime("%Y%m%d"))
        logger.info(
            f"✓ LiveScheduler started ({len(self.tickers)} tickers, "
            f"{len(self.batches)} batches, every {self.scan_interval}s)"
        )

        while True:
            started = self.clock.now()
            await self.run_cycle()
            elapsed = (self.clock.now() - started).total_seconds()
            if elapsed < self.scan_interval:
                await self.clock.sleep(self.scan_interval - elapsed)
            else:
                logger.warning(f"Scan cycle took {elapsed:.1f}s (interval: {self.scan_interval}s)")

    async def run_cycle(self) -> int:
        """
        Request every batch once and enqueue actions for each snapshot.

        Returns:
            Number of snapshots enqueued
        """
        delivered = 0
        for tickers in self.batches:
            max_expiration = self.clock.now().date() + timedelta(days=self.days_to_expiration_max)
            results = await asyncio.gather(
                *(self._fetch(ticker, max_expiration) for ticker in tickers),
                return_exceptions=True
            )
            for ticker, result in zip(tickers, results):
                if isinstance(result, BaseException):
                    logger.warning(f"Skipping {ticker} this cycle: {result!r}")
                    continue
                self.enqueue(ticker, result)
                delivered += 1

        self.cycles += 1
        logger.debug(f"✓ Cycle {self.cycles}: {delivered}/{len(self.tickers)} snapshots enqueued")
        return delivered

    async def _fetch(self, ticker: str, max_expiration) -> Snapshot:
        return await asyncio.wait_for(
            self.feed.fetch_option_chain(ticker, max_expiration, self.strike_count),
            timeout=self.request_timeout
        )

    def enqueue(self, ticker: str, snapshot: Snapshot) -> None:
        """Archive action first, then the delivery actions."""
        self.queue.put(ArchiveSnapshotAction(self.archive, self.counter, ticker, snapshot))
        for action in snapshot_actions(self.portfolio_managers, snapshot):
            self.queue.put(action)


class ReplayScheduler:
    """
    Re-delivers the archived snapshots of one date, as fast as they load.

    The source archive may be remote and read-only; the replay cursor lives
    in the local archive.
    """

    def __init__(
        self,
        source: SnapshotArchive,
        cursor_store: SnapshotArchive,
        replay_date: str,
        queue: ActionQueue,
        portfolio_managers: Sequence[PortfolioManager]
    ):
        """
        Initialize the replay scheduler.

        Args:
            source: Archive to read snapshots from
            cursor_store: Writable archive holding the replay cursor
            replay_date: Date to replay (YYYYMMDD)
            queue: Action queue to feed
            portfolio_managers: Registered portfolio managers
        """
        self.source = source
        self.cursor_store = cursor_store
        self.replay_date = replay_date
        self.queue = queue
        self.portfolio_managers = portfolio_managers

    def validate(self) -> int:
        """
        Check the archive can be replayed.

        Returns:
            High-water sequence number for the replay date

        Raises:
            ConfigurationError: If the archive or its sequence number is missing
        """
        if not self.source.available:
            raise ConfigurationError(f"No snapshot archive at {self.source.table_path}")
        if not self.source.exists(self.replay_date):
            raise ConfigurationError(
                f"No archived snapshots for {self.replay_date} in {self.source.table_path}"
            )
        return self.source.get_sequence_num(self.replay_date)

    def start_sequence(self) -> int:
        """First sequence number to replay (cursor + 1, or 1)."""
        cursor = self.cursor_store.get_replay_cursor(self.replay_date)
        return cursor + 1 if cursor is not None else 1

    async def run(self) -> int:
        """
        Enqueue every remaining archived snapshot of the replay date.

        Returns:
            Number of snapshots enqueued
        """
        high_water = await asyncio.to_thread(self.validate)
        start = await asyncio.to_thread(self.start_sequence)
        logger.info(f"✓ Replaying {self.replay_date} from sequence {start} to {high_water}")

        archived: Dict[int, List[Snapshot]] = await asyncio.to_thread(
            self.source.load_day, self.replay_date
        )

        replayed = 0
        for sequence in range(start, high_water + 1):
            snapshots = archived.get(sequence, [])
            if not snapshots:
                logger.warning(f"No archived snapshot for sequence {sequence}, skipping")
                continue

            for snapshot in snapshots:
                for action in snapshot_actions(self.portfolio_managers, snapshot):
                    self.queue.put(action)
                replayed += 1
            self.queue.put(AdvanceReplayCursorAction(self.cursor_store, self.replay_date, sequence))

        logger.info(f"✓ Replay producer finished ({replayed} snapshots enqueued)")
        return replayed


class EndOfDayReporter:
    """
    Enqueues an end-of-day report at a fixed time every day.

    If the report time has already passed at startup, the first report is
    sent the next day.
    """

    def __init__(
        self,
        queue: ActionQueue,
        portfolio_managers: Sequence[PortfolioManager],
        alerter: Alerter,
        report_time: time,
        clock: Optional[Clock] = None
    ):
        self.queue = queue
        self.portfolio_managers = portfolio_managers
        self.alerter = alerter
        self.report_time = report_time
        self.clock = clock or SystemClock()
        self._next_report: Optional[datetime] = None

    def next_report_time(self, now: datetime) -> datetime:
        """Report time today, or tomorrow if it already passed."""
        today = datetime.combine(now.date(), self.report_time)
        return today if now < today else today + timedelta(days=1)

    async def run(self) -> None:
        """Send a report every day until cancelled."""
        logger.info(f"✓ EndOfDayReporter started (report at {self.report_time.strftime('%H:%M')})")
        while True:
            await self.wait_and_report()

    async def wait_and_report(self) -> datetime:
        """
        Sleep until the next report time and enqueue the report.

        Returns:
            The report time that was reached
        """
        if self._next_report is None:
            self._next_report = self.next_report_time(self.clock.now())

        target = self._next_report
        delay = (target - self.clock.now()).total_seconds()
        if delay > 0:
            await self.clock.sleep(delay)

        self.queue.put(EndOfDayReportAction(
            self.portfolio_managers, self.alerter, target.strftime("%Y%m%d")
        ))
        self._next_report = target + timedelta(days=1)
        return target
