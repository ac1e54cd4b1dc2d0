"""
Portfolio Manager

Binds one strategy to one position store. The trader fans every snapshot out
to its registered portfolio managers; each manager marks its book to market
and hands the snapshot to its strategy.
"""

from dataclasses import dataclass
from typing import List

from loguru import logger

from optrader.core.models import Position, Snapshot
from optrader.data.base import PositionStore
from optrader.strategy.base import Strategy


@dataclass(slots=True)
class PortfolioSummary:
    """End-of-day figures for one portfolio."""
    name: str
    open_positions: int
    closed_positions: int
    net_delta: float  # share-equivalent
    realized_pnl: float
    unrealized_pnl: float
    commission: float

    def to_text(self) -> str:
        return (
            f"{self.name}: {self.open_positions} open / {self.closed_positions} closed, "
            f"delta {self.net_delta:+.2f}, realized {self.realized_pnl:+.2f}, "
            f"unrealized {self.unrealized_pnl:+.2f}, commission {self.commission:.2f}"
        )


class PortfolioManager:
    """One strategy trading one portfolio."""

    def __init__(self, name: str, strategy: Strategy, store: PositionStore):
        """
        Initialize the portfolio manager.

        Args:
            name: Portfolio name
            strategy: Strategy trading this portfolio
            store: Position store of this portfolio
        """
        self.name = name
        self.strategy = strategy
        self.store = store

    def deliver(self, snapshot: Snapshot) -> None:
        """Hand a snapshot to the strategy."""
        self.strategy.run(snapshot)

    def mark_to_market(self, snapshot: Snapshot) -> int:
        """
        Refresh the ticking fields of open positions from a snapshot.

        Option legs found in the snapshot get last price, volatility, Greeks,
        current notional and unrealized PnL. The hedge leg of the snapshot's
        underlying is marked from the underlying price.

        Args:
            snapshot: Latest snapshot

        Returns:
            Number of positions updated
        """
        quotes = snapshot.flatten()
        updated = 0

        for position in self.store.find_open():
            if position.is_option:
                quote = quotes.get(position.symbol)
                if quote is None:
                    continue
                current_notional = quote.last * position.quantity * position.multiplier
                self.store.update(
                    position.symbol,
                    last_price=quote.last,
                    volatility=quote.volatility,
                    delta=quote.delta * position.quantity,
                    gamma=quote.gamma * position.quantity,
                    theta=quote.theta * position.quantity,
                    vega=quote.vega * position.quantity,
                    current_notional=current_notional,
                    unrealized_pnl=current_notional - position.buy_notional,
                )
                updated += 1
            elif position.is_equity_hedge and position.ticker == snapshot.symbol:
                price = snapshot.underlying_price
                current_notional = price * position.quantity
                self.store.update(
                    position.symbol,
                    last_price=price,
                    current_notional=current_notional,
                    unrealized_pnl=current_notional - position.buy_notional,
                )
                updated += 1

        if updated:
            logger.debug(f"✓ {self.name}: marked {updated} positions for {snapshot.symbol}")
        return updated

    def summary(self) -> PortfolioSummary:
        """Build the end-of-day summary of this portfolio."""
        positions: List[Position] = self.store.find_all()
        open_positions = [p for p in positions if p.is_open]
        return PortfolioSummary(
            name=self.name,
            open_positions=len(open_positions),
            closed_positions=len(positions) - len(open_positions),
            net_delta=sum(p.delta * p.multiplier for p in open_positions),
            realized_pnl=sum(p.realized_pnl for p in positions),
            unrealized_pnl=sum(p.unrealized_pnl for p in open_positions),
            commission=sum(p.commission for p in positions),
        )
