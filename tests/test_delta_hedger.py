"""
Tests for DeltaHedger equity leg rebalancing.
"""

import pytest

from optrader.core.models import CLOSED, OPEN, Position
from optrader.hedge import DeltaHedger, hedge_target
from tests.fixtures.market_fixtures import make_snapshot


def option_leg(symbol, quantity, delta, status=OPEN):
    """Open option position with a quantity-scaled delta."""
    return Position(
        symbol=symbol,
        quantity=quantity,
        buy_price=1.0,
        last_price=1.0,
        delta=delta,
        status=status,
    )


def hedge_once(store, hedger, underlying_price=420.0, symbol="SPY", tickers=("SPY",)):
    snapshot = make_snapshot(symbol=symbol, underlying_price=underlying_price)
    hedger.hedge(store, snapshot, list(tickers), store.find_open())


class TestHedgeTarget:
    """Test the hedge quantity formula."""

    def test_call_book_is_hedged_short(self):
        """Test 2 lots with position delta 1.0 hedge to -50 shares."""
        assert hedge_target([option_leg("SPY_052021C420", 2, 1.0)]) == -50

    def test_mixed_book(self):
        """Test a call and a put net into one average delta."""
        legs = [option_leg("SPY_052021C420", 1, 0.5), option_leg("SPY_052021P410", 1, -0.3)]
        assert hedge_target(legs) == -10

    def test_put_book_is_hedged_long(self):
        """Test a put-dominated book gets a long equity hedge."""
        assert hedge_target([option_leg("SPY_052021P410", 2, -0.8)]) == 40

    def test_skew(self):
        """Test the skew scales the hedge."""
        assert hedge_target([option_leg("SPY_052021C420", 1, 0.5)], skew=0.5) == -25

    def test_no_lots(self):
        """Test legs netting to zero lots produce no target."""
        assert hedge_target([]) is None


class TestDeltaHedger:
    """Test hedge leg lifecycle in a position store."""

    def test_opens_hedge_leg(self, memory_store):
        """Test the first rebalance inserts the equity leg."""
        memory_store.insert(option_leg("SPY_052021C420", 2, 1.0))

        hedge_once(memory_store, DeltaHedger())

        hedge = memory_store.find("SPY_EQUITY")
        assert hedge.quantity == -50
        assert hedge.buy_price == 420.0
        assert hedge.delta == -50.0
        assert hedge.commission == 0.0
        assert hedge.is_open

    def test_recompute_is_noop(self, memory_store):
        """Test rebalancing an already hedged book writes nothing."""
        memory_store.insert(option_leg("SPY_052021C420", 2, 1.0))
        hedger = DeltaHedger()
        hedge_once(memory_store, hedger)
        writes = memory_store.writes

        hedge_once(memory_store, hedger, underlying_price=425.0)

        assert memory_store.writes == writes

    def test_unknown_price_skipped(self, memory_store):
        """Test tickers never seen in a snapshot are not hedged."""
        memory_store.insert(option_leg("QQQ_052021C330", 1, 0.5))

        hedge_once(memory_store, DeltaHedger(), tickers=("SPY", "QQQ"))

        assert memory_store.find("QQQ_EQUITY") is None

    def test_uses_cached_price_for_other_ticker(self, memory_store):
        """Test a ticker hedges at the last price seen for it."""
        hedger = DeltaHedger()
        hedge_once(memory_store, hedger, underlying_price=330.0, symbol="QQQ", tickers=("QQQ",))
        memory_store.insert(option_leg("QQQ_052021C330", 1, 0.5))

        hedge_once(memory_store, hedger, tickers=("SPY", "QQQ"))

        hedge = memory_store.find("QQQ_EQUITY")
        assert hedge.quantity == -50
        assert hedge.buy_price == 330.0

    def test_increase_averages_price(self, memory_store):
        """Test growing the hedge averages the share price."""
        memory_store.insert(option_leg("SPY_052021C420", 1, 0.5))
        hedger = DeltaHedger()
        hedge_once(memory_store, hedger, underlying_price=400.0)
        memory_store.update("SPY_052021C420", quantity=2, delta=2.0)

        hedge_once(memory_store, hedger, underlying_price=410.0)

        hedge = memory_store.find("SPY_EQUITY")
        assert hedge.quantity == -100
        assert hedge.buy_price == pytest.approx(405.0)
        assert hedge.realized_pnl == 0.0

    def test_reduction_realizes_pnl(self, memory_store):
        """Test shrinking the hedge realizes PnL on the bought-back shares."""
        memory_store.insert(option_leg("SPY_052021C420", 2, 2.0))
        hedger = DeltaHedger()
        hedge_once(memory_store, hedger, underlying_price=400.0)
        memory_store.update("SPY_052021C420", delta=1.0)

        hedge_once(memory_store, hedger, underlying_price=390.0)

        hedge = memory_store.find("SPY_EQUITY")
        assert hedge.quantity == -50
        assert hedge.buy_price == 400.0
        # Short 50 shares bought back 10 below entry
        assert hedge.realized_pnl == pytest.approx(500.0)
        assert hedge.unrealized_pnl == pytest.approx(500.0)

    def test_sign_flip(self, memory_store):
        """Test flipping from short to long realizes the whole old leg."""
        memory_store.insert(option_leg("SPY_052021C420", 1, 0.5))
        hedger = DeltaHedger()
        hedge_once(memory_store, hedger, underlying_price=400.0)
        memory_store.update("SPY_052021C420", delta=-0.5)

        hedge_once(memory_store, hedger, underlying_price=410.0)

        hedge = memory_store.find("SPY_EQUITY")
        assert hedge.quantity == 50
        assert hedge.buy_price == 410.0
        assert hedge.realized_pnl == pytest.approx(-500.0)

    def test_zero_target_closes_leg(self, memory_store):
        """Test a delta-neutral book closes the hedge leg."""
        memory_store.insert(option_leg("SPY_052021C420", 1, 0.5))
        hedger = DeltaHedger()
        hedge_once(memory_store, hedger, underlying_price=400.0)
        memory_store.insert(option_leg("SPY_052021P400", 1, -0.5))

        hedge_once(memory_store, hedger, underlying_price=400.0)

        hedge = memory_store.find("SPY_EQUITY")
        assert hedge.quantity == 0
        assert hedge.status == CLOSED
        assert hedge.close_price == 400.0

    def test_closed_leg_reopens(self, memory_store):
        """Test a closed hedge leg reopens at the current price."""
        memory_store.insert(Position(
            symbol="SPY_EQUITY", quantity=0, buy_price=400.0, last_price=400.0,
            realized_pnl=25.0, status=CLOSED,
        ))
        memory_store.insert(option_leg("SPY_052021C420", 1, 0.5))

        hedge_once(memory_store, DeltaHedger(), underlying_price=415.0)

        hedge = memory_store.find("SPY_EQUITY")
        assert hedge.is_open
        assert hedge.quantity == -50
        assert hedge.buy_price == 415.0
        assert hedge.realized_pnl == 25.0
