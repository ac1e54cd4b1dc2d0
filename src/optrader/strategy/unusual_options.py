"""
Unusual options volume strategy.

Scans the call side of every delivered snapshot for strikes whose volume is
far above the rest of the same expiration, enters the ones the entry chain
accepts, runs the exit chain over the open positions of the snapshot's
underlying and finally rebalances the delta hedge.
"""

from typing import Dict, Iterable, Optional, Sequence

from loguru import logger

from optrader.core.models import ContractQuote, Position, Snapshot
from optrader.data.base import PositionStore
from optrader.hedge import Hedger
from optrader.signals import (
    EntrySignal,
    ExitSignal,
    entry_chain_accepts,
    exit_chain_accepts,
)
from optrader.strategy.anomaly import find_unusual_contracts
from optrader.strategy.base import DEFAULT_COMMISSION_PER_CONTRACT, BaseStrategy


class UnusualOptionsStrategy(BaseStrategy):
    """
    Enters contracts with unusually high call volume.

    Volume is judged per expiration date, which is more granular than
    comparing against the whole chain of a ticker.
    """

    def __init__(
        self,
        store: PositionStore,
        tickers: Iterable[str],
        entry_signals: Sequence[EntrySignal] = (),
        exit_signals: Sequence[ExitSignal] = (),
        hedger: Optional[Hedger] = None,
        entry_quantity: int = 1,
        exit_quantity: Optional[int] = None,
        commission_per_contract: float = DEFAULT_COMMISSION_PER_CONTRACT
    ):
        """
        Initialize the strategy.

        Args:
            store: Position store of the owning portfolio
            tickers: Tracked underlyings (hedged after every run)
            entry_signals: Entry chain, evaluated in order
            exit_signals: Exit chain, evaluated in order
            hedger: Hedger run after entries and exits (None disables hedging)
            entry_quantity: Lots bought per flagged contract
            exit_quantity: Lots sold per exit, at most the lots held (None sells all)
            commission_per_contract: Commission charged per contract traded
        """
        super().__init__(store, commission_per_contract)
        self.tickers = list(tickers)
        self.entry_signals = list(entry_signals)
        self.exit_signals = list(exit_signals)
        self.hedger = hedger
        self.entry_quantity = entry_quantity
        self.exit_quantity = exit_quantity

        self.latest_snapshot: Optional[Snapshot] = None
        self.latest_quotes: Dict[str, ContractQuote] = {}

    def run(self, snapshot: Snapshot) -> None:
        """
        Trade one snapshot: entries, exits, then hedge.

        Args:
            snapshot: Snapshot to trade
        """
        self.latest_snapshot = snapshot
        self.latest_quotes = snapshot.flatten()

        for expiration, strikes in snapshot.calls.items():
            quotes = [options[0] for options in strikes.values() if options]
            for quote in find_unusual_contracts(quotes):
                logger.info(
                    f"Unusual volume on {quote.symbol} ({expiration}): {quote.total_volume}"
                )
                self.check_entry_signals(snapshot, quote)

        open_positions = self.store.find_open()
        for position in open_positions:
            if position.is_option and position.ticker == snapshot.symbol:
                self.check_exit_signals(snapshot, position)

        if self.hedger is not None:
            self.hedger.hedge(self.store, snapshot, self.tickers, self.store.find_open())

    def check_entry_signals(self, snapshot: Snapshot, quote: ContractQuote) -> None:
        """Enter the contract if every entry signal accepts it."""
        if entry_chain_accepts(self.entry_signals, snapshot, quote):
            self.enter(quote, self.entry_quantity)

    def check_exit_signals(self, snapshot: Snapshot, position: Position) -> None:
        """Exit the position if its quote is known and every exit signal accepts it."""
        quote = self.latest_quotes.get(position.symbol)
        if quote is None:
            logger.warning(
                f"Option {position.symbol} is not in the latest snapshot, aborting exit attempt"
            )
            return
        if exit_chain_accepts(self.exit_signals, snapshot, position, quote):
            quantity = min(self.exit_quantity or position.quantity, position.quantity)
            self.exit(position, quote, quantity)
