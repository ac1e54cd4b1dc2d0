"""
Strategy contract and basic entry/exit bookkeeping.

BaseStrategy holds the position arithmetic shared by every strategy: entering
a contract (new, increased or reopened record) and exiting it (partially or
fully), with commission and realized PnL tracking. Subclasses decide WHEN to
enter and exit by implementing run().
"""

from typing import Protocol

from loguru import logger

from optrader.core.models import (
    CLOSED,
    CONTRACT_MULTIPLIER,
    OPEN,
    ContractQuote,
    Position,
    Snapshot,
    average_price,
)
from optrader.data.base import PositionStore

DEFAULT_COMMISSION_PER_CONTRACT = 0.65


class Strategy(Protocol):
    """A trading strategy fed with one snapshot at a time."""

    store: PositionStore

    def run(self, snapshot: Snapshot) -> None:
        ...

    def enter(self, quote: ContractQuote, quantity: int) -> None:
        ...

    def exit(self, position: Position, quote: ContractQuote, quantity: int) -> None:
        ...


def _greeks(quote: ContractQuote, quantity: int) -> dict:
    return {
        "delta": quote.delta * quantity,
        "gamma": quote.gamma * quantity,
        "theta": quote.theta * quantity,
        "vega": quote.vega * quantity,
    }


class BaseStrategy:
    """
    Basic entries and exits against a position store.

    Exactly one record is kept per contract symbol. A fully exited record
    stays in the store with quantity 0 and status closed.
    """

    def __init__(
        self,
        store: PositionStore,
        commission_per_contract: float = DEFAULT_COMMISSION_PER_CONTRACT
    ):
        """
        Initialize the strategy.

        Args:
            store: Position store of the owning portfolio
            commission_per_contract: Commission charged per contract traded
        """
        self.store = store
        self.commission_per_contract = commission_per_contract

    def run(self, snapshot: Snapshot) -> None:
        raise NotImplementedError

    def enter(self, quote: ContractQuote, quantity: int = 1) -> None:
        """
        Add lots of a contract to the portfolio.

        Inserts a fresh record, increases an open one at the weighted average
        price, or reopens a closed one at the quote's last price.

        Args:
            quote: Contract to buy
            quantity: Lots to buy
        """
        if quantity <= 0:
            logger.warning(f"Ignoring entry of {quantity} lots of {quote.symbol}")
            return

        commission = self.commission_per_contract * quantity
        notional = quote.last * quantity * CONTRACT_MULTIPLIER
        current = self.store.find(quote.symbol)

        if current is None:
            self.store.insert(Position(
                symbol=quote.symbol,
                quantity=quantity,
                buy_price=quote.last,
                last_price=quote.last,
                buy_notional=notional,
                current_notional=notional,
                volatility=quote.volatility,
                commission=commission,
                **_greeks(quote, quantity),
            ))
            logger.info(f"Entered a new position, {quantity} {quote.symbol} @ {quote.last}")

        elif not current.is_open:
            self.store.update(
                quote.symbol,
                quantity=quantity,
                buy_price=quote.last,
                last_price=quote.last,
                close_price=0.0,
                buy_notional=notional,
                current_notional=notional,
                unrealized_pnl=0.0,
                volatility=quote.volatility,
                commission=current.commission + commission,
                status=OPEN,
                **_greeks(quote, quantity),
            )
            logger.info(f"Reopened a closed position, {quantity} {quote.symbol} @ {quote.last}")

        else:
            total = current.quantity + quantity
            buy_price = average_price(current.quantity, current.buy_price, quantity, quote.last)
            buy_notional = buy_price * total * CONTRACT_MULTIPLIER
            current_notional = quote.last * total * CONTRACT_MULTIPLIER
            self.store.update(
                quote.symbol,
                quantity=total,
                buy_price=buy_price,
                last_price=quote.last,
                buy_notional=buy_notional,
                current_notional=current_notional,
                unrealized_pnl=current_notional - buy_notional,
                volatility=quote.volatility,
                commission=current.commission + commission,
                **_greeks(quote, total),
            )
            logger.info(f"Increased an existing position, {quantity} {quote.symbol} @ {quote.last}")
            logger.info(f"Average price is now {buy_price:.4f} with {total} lots")

    def exit(self, position: Position, quote: ContractQuote, quantity: int) -> None:
        """
        Decrease or close a position, realizing PnL.

        Args:
            position: Position to exit
            quote: Current quote of the contract
            quantity: Lots to sell
        """
        current = self.store.find(position.symbol)
        if current is None or not current.is_open:
            logger.warning(f"No open position for {position.symbol}, exit skipped")
            return
        if quantity <= 0 or quantity > current.quantity:
            logger.warning(
                f"Cannot exit {quantity} lots of {position.symbol} holding {current.quantity}"
            )
            return

        rate = self.commission_per_contract

        if quantity == current.quantity:
            proceeds = quote.last * quantity * CONTRACT_MULTIPLIER
            self.store.update(
                position.symbol,
                quantity=0,
                status=CLOSED,
                last_price=quote.last,
                close_price=quote.last,
                current_notional=0.0,
                unrealized_pnl=0.0,
                delta=0.0,
                gamma=0.0,
                theta=0.0,
                vega=0.0,
                commission=current.commission + rate * quantity,
                realized_pnl=current.realized_pnl + proceeds - current.buy_notional,
            )
            logger.info(f"Exited all of existing position, {quantity} {position.symbol} @ {quote.last}")
            return

        remaining = current.quantity - quantity
        buy_notional = current.buy_price * remaining * CONTRACT_MULTIPLIER
        current_notional = quote.last * remaining * CONTRACT_MULTIPLIER
        realized = (quote.last - current.buy_price) * quantity * CONTRACT_MULTIPLIER
        self.store.update(
            position.symbol,
            quantity=remaining,
            last_price=quote.last,
            buy_notional=buy_notional,
            current_notional=current_notional,
            unrealized_pnl=current_notional - buy_notional,
            commission=current.commission + rate * quantity,
            realized_pnl=current.realized_pnl + realized,
            **_greeks(quote, remaining),
        )
        logger.info(f"Exited portion of existing position, {quantity} {position.symbol} @ {quote.last}")
