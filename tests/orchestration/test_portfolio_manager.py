"""
Tests for PortfolioManager marking and reporting.
"""

import pytest

from optrader.core.models import CLOSED, Position
from optrader.hedge import DeltaHedger
from optrader.orchestration import EndOfDayReportAction, PortfolioSummary
from tests.fixtures.market_fixtures import make_quote, make_snapshot


class RecordingAlerter:
    def __init__(self):
        self.sent = []

    def send(self, subject, body):
        self.sent.append((subject, body))


@pytest.fixture
def option_position():
    quote = make_quote(strike=425.0, last=1.00)
    return Position(
        symbol=quote.symbol,
        quantity=2,
        buy_price=1.00,
        last_price=1.00,
        buy_notional=200.0,
        current_notional=200.0,
        delta=1.0,
        commission=1.30,
    )


class TestMarkToMarket:
    """Test refreshing open positions from a snapshot."""

    def test_marks_option_leg(self, portfolio_manager, memory_store, option_position):
        """Test an option in the snapshot gets price, Greeks and unrealized PnL."""
        memory_store.insert(option_position)
        snapshot = make_snapshot([make_quote(strike=425.0, last=1.50, delta=0.6, volatility=0.4)])

        updated = portfolio_manager.mark_to_market(snapshot)

        position = memory_store.find(option_position.symbol)
        assert updated == 1
        assert position.last_price == 1.50
        assert position.current_notional == pytest.approx(300.0)
        assert position.unrealized_pnl == pytest.approx(100.0)
        assert position.delta == pytest.approx(1.2)
        assert position.volatility == 0.4
        assert position.buy_price == 1.00

    def test_marks_hedge_of_snapshot_ticker_only(self, portfolio_manager, memory_store):
        """Test hedge legs are marked from their own underlying price."""
        memory_store.insert(Position(
            symbol="SPY_EQUITY", quantity=-50, buy_price=400.0, last_price=400.0,
            buy_notional=-20000.0,
        ))
        memory_store.insert(Position(
            symbol="QQQ_EQUITY", quantity=-50, buy_price=300.0, last_price=300.0,
            buy_notional=-15000.0,
        ))

        updated = portfolio_manager.mark_to_market(make_snapshot(underlying_price=410.0))

        spy = memory_store.find("SPY_EQUITY")
        assert updated == 1
        assert spy.last_price == 410.0
        assert spy.unrealized_pnl == pytest.approx(-500.0)
        assert memory_store.find("QQQ_EQUITY").last_price == 300.0

    def test_skips_missing_and_closed(self, portfolio_manager, memory_store, option_position):
        """Test positions not in the snapshot and closed records are untouched."""
        memory_store.insert(option_position)
        memory_store.insert(Position(
            symbol="SPY_052021C420", quantity=0, buy_price=1.0, last_price=1.0, status=CLOSED
        ))

        updated = portfolio_manager.mark_to_market(make_snapshot([make_quote(strike=420.0, last=3.0)]))

        assert updated == 0
        assert memory_store.find("SPY_052021C420").last_price == 1.0


class TestDeliverAndSummary:
    """Test snapshot delivery and end-of-day reporting."""

    def test_deliver_runs_strategy(self, portfolio_manager, spy_snapshot):
        portfolio_manager.deliver(spy_snapshot)
        assert portfolio_manager.strategy.snapshots == [spy_snapshot]

    def test_summary(self, portfolio_manager, memory_store, option_position):
        """Test summary aggregates open and closed records."""
        memory_store.insert(option_position)
        memory_store.insert(Position(
            symbol="SPY_052021C420", quantity=0, buy_price=1.0, last_price=2.0,
            realized_pnl=100.0, commission=1.30, status=CLOSED,
        ))

        summary = portfolio_manager.summary()

        assert summary == PortfolioSummary(
            name="test",
            open_positions=1,
            closed_positions=1,
            net_delta=100.0,
            realized_pnl=100.0,
            unrealized_pnl=0.0,
            commission=pytest.approx(2.60),
        )
        assert summary.to_text().startswith("test: 1 open / 1 closed")

    def test_summary_of_hedged_book_is_delta_neutral(self, portfolio_manager, memory_store):
        """Test option lots and the share hedge net to zero in the summary."""
        quote = make_quote(strike=420.0, delta=0.5)
        memory_store.insert(Position(
            symbol=quote.symbol, quantity=1, buy_price=1.0, last_price=1.0, delta=0.5,
        ))
        DeltaHedger().hedge(
            memory_store, make_snapshot(underlying_price=420.0), ["SPY"], memory_store.find_open()
        )

        summary = portfolio_manager.summary()

        assert memory_store.find("SPY_EQUITY").quantity == -50
        assert summary.net_delta == pytest.approx(0.0)

    def test_end_of_day_report_action(self, portfolio_manager, option_position, memory_store):
        """Test the report action sends one line per portfolio."""
        memory_store.insert(option_position)
        alerter = RecordingAlerter()

        EndOfDayReportAction([portfolio_manager], alerter, "20210510").process()

        assert len(alerter.sent) == 1
        subject, body = alerter.sent[0]
        assert subject == "End of day report 20210510"
        assert body.startswith("test: 1 open")
