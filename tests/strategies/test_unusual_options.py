"""
Tests for UnusualOptionsStrategy.

Uses the in-memory position store and the SPY snapshot fixture, whose 425
call trades 500 contracts against 20 on every other strike.
"""

import pytest

from optrader.core.models import CLOSED, Position
from optrader.hedge import DeltaHedger
from optrader.signals import ExpiryExitSignal, PricingEntrySignal
from optrader.strategy import UnusualOptionsStrategy
from tests.fixtures.market_fixtures import make_quote, make_snapshot

UNUSUAL_SYMBOL = "SPY_052121C425"


class RecordingHedger:
    def __init__(self):
        self.calls = []

    def hedge(self, store, snapshot, tickers, positions):
        self.calls.append((snapshot.symbol, list(tickers), [p.symbol for p in positions]))


def make_strategy(store, fair_value=2.0, **kwargs):
    """Strategy whose pricing signal sees a constant fair value."""
    kwargs.setdefault("exit_signals", [ExpiryExitSignal()])
    return UnusualOptionsStrategy(
        store=store,
        tickers=["SPY"],
        entry_signals=[PricingEntrySignal(pricer=lambda *args: fair_value)],
        **kwargs,
    )


def held(symbol, quantity=2, buy_price=1.0):
    return Position(
        symbol=symbol,
        quantity=quantity,
        buy_price=buy_price,
        last_price=buy_price,
        buy_notional=buy_price * quantity * 100,
    )


class TestEntries:
    """Test scanning for unusual volume."""

    def test_enters_unusual_call(self, memory_store, spy_snapshot):
        """Test only the high volume call is bought."""
        strategy = make_strategy(memory_store)

        strategy.run(spy_snapshot)

        positions = memory_store.find_all()
        assert [p.symbol for p in positions] == [UNUSUAL_SYMBOL]
        assert positions[0].quantity == 1
        assert positions[0].buy_price == 0.50

    def test_entry_rejected_by_signal(self, memory_store, spy_snapshot):
        """Test a contract priced above fair value is not bought."""
        strategy = make_strategy(memory_store, fair_value=0.10)

        strategy.run(spy_snapshot)

        assert memory_store.find_all() == []

    def test_repeat_signal_adds_lots(self, memory_store, spy_snapshot):
        """Test the same anomaly on the next snapshot increases the position."""
        strategy = make_strategy(memory_store, entry_quantity=2)

        strategy.run(spy_snapshot)
        strategy.run(spy_snapshot)

        assert memory_store.find(UNUSUAL_SYMBOL).quantity == 4

    def test_caches_latest_snapshot(self, memory_store, spy_snapshot):
        strategy = make_strategy(memory_store)

        strategy.run(spy_snapshot)

        assert strategy.latest_snapshot is spy_snapshot
        assert UNUSUAL_SYMBOL in strategy.latest_quotes


class TestExits:
    """Test exit checks over open positions."""

    def test_exits_on_expiry(self, memory_store):
        """Test a position with one day left is closed."""
        quote = make_quote(strike=430.0, last=1.40, dte=1)
        memory_store.insert(held(quote.symbol))
        strategy = make_strategy(memory_store)

        strategy.run(make_snapshot([quote]))

        position = memory_store.find(quote.symbol)
        assert position.status == CLOSED
        assert position.realized_pnl == pytest.approx(80.0)

    def test_partial_exit_quantity(self, memory_store):
        quote = make_quote(strike=430.0, last=1.40, dte=0)
        memory_store.insert(held(quote.symbol, quantity=3))
        strategy = make_strategy(memory_store, exit_quantity=1)

        strategy.run(make_snapshot([quote]))

        assert memory_store.find(quote.symbol).quantity == 2

    def test_exit_quantity_above_holding_closes_position(self, memory_store):
        """Test an exit size larger than the lots held closes what is held."""
        quote = make_quote(strike=430.0, dte=0)
        memory_store.insert(held(quote.symbol, quantity=1))
        strategy = make_strategy(memory_store, exit_quantity=2)

        strategy.run(make_snapshot([quote]))

        position = memory_store.find(quote.symbol)
        assert position.quantity == 0
        assert position.status == CLOSED

    def test_holds_with_time_left(self, memory_store):
        quote = make_quote(strike=430.0, dte=5)
        memory_store.insert(held(quote.symbol))

        make_strategy(memory_store).run(make_snapshot([quote]))

        assert memory_store.find(quote.symbol).is_open

    def test_missing_quote_keeps_position(self, memory_store):
        """Test a position absent from the snapshot is left alone."""
        memory_store.insert(held("SPY_052121C450"))

        make_strategy(memory_store).run(make_snapshot([make_quote(strike=430.0, dte=0)]))

        assert memory_store.find("SPY_052121C450").quantity == 2
        assert memory_store.writes == 1

    def test_other_ticker_not_checked(self, memory_store):
        """Test only positions of the snapshot's underlying are exit-checked."""
        qqq = make_quote(ticker="QQQ", strike=330.0, dte=0)
        memory_store.insert(held(qqq.symbol))

        make_strategy(memory_store).run(make_snapshot([make_quote(dte=0)], symbol="SPY"))

        assert memory_store.find(qqq.symbol).is_open


class TestHedging:
    """Test the hedger runs after entries and exits."""

    def test_hedger_called_with_open_positions(self, memory_store, spy_snapshot):
        hedger = RecordingHedger()
        strategy = make_strategy(memory_store, hedger=hedger)

        strategy.run(spy_snapshot)

        assert hedger.calls == [("SPY", ["SPY"], [UNUSUAL_SYMBOL])]

    def test_delta_hedge_after_entry(self, memory_store, spy_snapshot):
        """Test a new long call is hedged with short shares."""
        strategy = make_strategy(memory_store, hedger=DeltaHedger())

        strategy.run(spy_snapshot)

        hedge = memory_store.find("SPY_EQUITY")
        assert hedge.quantity == -50
        assert hedge.buy_price == 420.0
