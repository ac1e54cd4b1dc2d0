"""
Delta hedging with an equity leg per underlying.

For every tracked ticker, the open option legs are aggregated into an average
per-lot delta and the equity leg <TICKER>_EQUITY is traded to

    target = int(round2(sum(delta) / sum(qty)) * -100 * skew)

shares. A skew of 1.0 is a one-to-one hedge.

Position deltas are stored already scaled by quantity, so a put-dominated
book has a negative average delta and ends up with a long equity hedge.
"""

from typing import Dict, Iterable, List, Optional, Protocol

from loguru import logger

from optrader.core.models import (
    CLOSED,
    CONTRACT_MULTIPLIER,
    OPEN,
    Position,
    Snapshot,
    average_price,
    equity_symbol,
    round2,
)
from optrader.data.base import PositionStore


class Hedger(Protocol):
    """Rebalances hedge legs after the strategy has traded a snapshot."""

    def hedge(
        self,
        store: PositionStore,
        snapshot: Snapshot,
        tickers: Iterable[str],
        positions: List[Position]
    ) -> None:
        ...


def hedge_target(option_legs: Iterable[Position], skew: float = 1.0) -> Optional[int]:
    """
    Hedge quantity in shares for a set of option legs.

    Args:
        option_legs: Open option positions of one underlying
        skew: Hedge ratio skew (1.0 = one-to-one)

    Returns:
        Target share quantity, or None if the legs net to zero lots
    """
    legs = list(option_legs)
    quantity = sum(leg.quantity for leg in legs)
    if quantity == 0:
        return None
    average_delta = sum(leg.delta for leg in legs) / quantity
    return int(round2(average_delta) * (-CONTRACT_MULTIPLIER * skew))


def _hedge_fields(quantity: int, buy_price: float, price: float, realized_pnl: float) -> dict:
    buy_notional = buy_price * quantity
    current_notional = price * quantity
    return {
        "quantity": quantity,
        "buy_price": buy_price,
        "last_price": price,
        "buy_notional": buy_notional,
        "current_notional": current_notional,
        "unrealized_pnl": current_notional - buy_notional,
        "realized_pnl": realized_pnl,
        "delta": float(quantity),
        "status": OPEN if quantity != 0 else CLOSED,
        "close_price": 0.0 if quantity != 0 else price,
    }


class DeltaHedger:
    """
    Keeps each underlying delta-neutral with an equity hedge leg.

    Remembers the last underlying price seen per ticker so tickers that were
    not part of the current snapshot can still be rebalanced. Tickers with no
    known price are skipped.
    """

    def __init__(self, skew: float = 1.0):
        """
        Initialize the hedger.

        Args:
            skew: Hedge ratio skew (1.0 = one-to-one hedge)
        """
        self.skew = skew
        self._prices: Dict[str, float] = {}

    def hedge(
        self,
        store: PositionStore,
        snapshot: Snapshot,
        tickers: Iterable[str],
        positions: List[Position]
    ) -> None:
        """
        Rebalance the equity leg of every tracked ticker.

        Args:
            store: Position store to write hedge legs to
            snapshot: Current snapshot (source of the underlying price)
            tickers: Tracked tickers
            positions: Current open positions
        """
        self._prices[snapshot.symbol] = snapshot.underlying_price

        for ticker in tickers:
            option_legs = [p for p in positions if p.ticker == ticker and p.is_option and p.is_open]
            target = hedge_target(option_legs, self.skew)
            if target is None:
                continue

            price = self._prices.get(ticker)
            if price is None:
                logger.debug(f"No underlying price for {ticker} yet, hedge skipped")
                continue

            symbol = equity_symbol(ticker)
            hedge_leg = next((p for p in positions if p.symbol == symbol), None)
            if hedge_leg is None:
                hedge_leg = store.find(symbol)

            if hedge_leg is None:
                if target == 0:
                    continue
                store.insert(Position(
                    symbol=symbol,
                    quantity=target,
                    buy_price=price,
                    last_price=price,
                    buy_notional=price * target,
                    current_notional=price * target,
                    delta=float(target),
                ))
                logger.info(f"✓ Opened hedge {symbol}: {target} @ {price}")
            elif not hedge_leg.is_open:
                store.update(symbol, **_hedge_fields(
                    target, price, price, hedge_leg.realized_pnl
                ))
                logger.info(f"✓ Reopened hedge {symbol}: {target} @ {price}")
            elif hedge_leg.quantity != target:
                store.update(symbol, **self._rebalance(hedge_leg, target, price))
                logger.info(
                    f"✓ Traded hedge {symbol}: {hedge_leg.quantity} -> {target} @ {price}"
                )

    @staticmethod
    def _rebalance(hedge_leg: Position, target: int, price: float) -> dict:
        current = hedge_leg.quantity
        realized = hedge_leg.realized_pnl

        if current == 0:
            buy_price = price
        elif current * target < 0:
            # Sign flip: close all old shares, open the remainder at the current price
            realized += (price - hedge_leg.buy_price) * current
            buy_price = price
        elif abs(target) > abs(current):
            buy_price = average_price(current, hedge_leg.buy_price, target - current, price)
        else:
            realized += (price - hedge_leg.buy_price) * (current - target)
            buy_price = hedge_leg.buy_price

        return _hedge_fields(target, buy_price, price, realized)
