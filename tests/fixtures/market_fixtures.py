"""
Market data fixtures for testing option chain snapshots.

Provides quote and snapshot builders plus a realistic SPY chain with one
strike of unusual call volume.

Usage:
    def test_chain(spy_snapshot):
        assert spy_snapshot.symbol == "SPY"

    quote = make_quote(strike=425.0, volume=500)
"""

from datetime import date, datetime
from typing import Iterable, Optional

import pytest

from optrader.core.models import CALL, PUT, ContractQuote, Snapshot, option_symbol

EXPIRATION = date(2021, 5, 21)
CAPTURED_AT = datetime(2021, 5, 10, 10, 30)


def make_quote(
    strike: float = 420.0,
    put_call: str = CALL,
    ticker: str = "SPY",
    expiration: date = EXPIRATION,
    bid: float = 1.00,
    ask: float = 1.10,
    last: float = 1.05,
    volume: int = 20,
    dte: int = 11,
    volatility: float = 0.25,
    delta: Optional[float] = None,
    gamma: float = 0.05,
    theta: float = -0.10,
    vega: float = 0.20,
) -> ContractQuote:
    """Build a quote; delta defaults to 0.5 for calls and -0.5 for puts."""
    if delta is None:
        delta = 0.5 if put_call == CALL else -0.5
    return ContractQuote(
        symbol=option_symbol(ticker, expiration, put_call, strike),
        underlying=ticker,
        put_call=put_call,
        strike=strike,
        expiration_date=expiration.isoformat(),
        bid=bid,
        ask=ask,
        last=last,
        total_volume=volume,
        days_to_expiration=dte,
        volatility=volatility,
        delta=delta,
        gamma=gamma,
        theta=theta,
        vega=vega,
    )


def make_snapshot(
    quotes: Iterable[ContractQuote] = (),
    symbol: str = "SPY",
    underlying_price: float = 420.0,
    captured_at: datetime = CAPTURED_AT,
) -> Snapshot:
    """Group quotes into the expiration -> strike -> [quote] layout."""
    calls, puts = {}, {}
    for quote in quotes:
        side = calls if quote.put_call == CALL else puts
        side.setdefault(quote.expiration_date, {}).setdefault(f"{quote.strike:.1f}", []).append(quote)
    return Snapshot(
        symbol=symbol,
        underlying_price=underlying_price,
        calls=calls,
        puts=puts,
        captured_at=captured_at,
    )


@pytest.fixture
def spy_quotes():
    """
    Twenty call strikes trading 20 contracts each, plus one at 500 and a
    matching put side with ordinary volume.
    """
    calls = [make_quote(strike=400.0 + i, volume=20) for i in range(20)]
    calls.append(make_quote(strike=425.0, volume=500, last=0.50))
    puts = [make_quote(strike=400.0 + i, put_call=PUT, volume=30) for i in range(20)]
    return calls + puts


@pytest.fixture
def spy_snapshot(spy_quotes):
    """SPY snapshot at 420 with one unusual call (425 strike)."""
    return make_snapshot(spy_quotes)
