"""
Option Trader

Wires the producers (a snapshot scheduler and, in live mode, the end-of-day
reporter) to the single-consumer action queue and the registered portfolio
managers.

Live mode runs until stopped. Replay mode finishes once the replay producer
is done and every enqueued action has been processed.
"""

import asyncio
from typing import List, Optional, Protocol, Sequence

from loguru import logger

from optrader.orchestration.action_queue import ActionQueue
from optrader.orchestration.portfolio_manager import PortfolioManager
from optrader.orchestration.schedulers import EndOfDayReporter


class Producer(Protocol):
    async def run(self):
        ...


class OptionTrader:
    """Runs a scheduler against a set of portfolio managers."""

    def __init__(
        self,
        portfolio_managers: Sequence[PortfolioManager],
        scheduler: Producer,
        queue: ActionQueue,
        reporter: Optional[EndOfDayReporter] = None
    ):
        """
        Initialize the trader.

        Args:
            portfolio_managers: Registered portfolio managers
            scheduler: LiveScheduler or ReplayScheduler feeding the queue
            queue: Action queue shared with the scheduler
            reporter: End-of-day reporter (live mode only)
        """
        self.portfolio_managers = list(portfolio_managers)
        self.scheduler = scheduler
        self.queue = queue
        self.reporter = reporter
        self._tasks: List[asyncio.Task] = []
        self._stopping = False

    async def run(self) -> None:
        """
        Start the consumer and producers and wait for the scheduler to finish.

        Raises:
            ConfigurationError: If the scheduler cannot start (e.g. no archive)
        """
        names = ", ".join(pm.name for pm in self.portfolio_managers)
        logger.info(f"Starting OptionTrader ({type(self.scheduler).__name__}, portfolios: {names})")

        await self.queue.start()
        scheduler_task = asyncio.create_task(self.scheduler.run(), name="scheduler")
        self._tasks = [scheduler_task]
        if self.reporter is not None:
            self._tasks.append(asyncio.create_task(self.reporter.run(), name="eod_reporter"))

        try:
            try:
                await scheduler_task
            except asyncio.CancelledError:
                if not self._stopping:
                    raise
                logger.info("Scheduler stopped, draining pending actions")
            await self.queue.join()
            logger.info(
                f"✓ Scheduler finished, {self.queue.stats.total_processed} actions processed "
                f"({self.queue.stats.total_failed} failed)"
            )
        finally:
            await self._shutdown()

    def stop(self) -> None:
        """Cancel the producers; run() then cleans up and returns."""
        logger.info("Stopping OptionTrader...")
        self._stopping = True
        for task in self._tasks:
            if not task.done():
                task.cancel()

    async def _shutdown(self) -> None:
        for task in self._tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        await self.queue.stop()
        logger.info("✓ OptionTrader stopped")
