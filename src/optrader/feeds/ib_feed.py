"""
Interactive Brokers option chain feed.

Builds a Snapshot from IB market data:

1. Qualify the underlying stock and read its price
2. reqSecDefOptParams for expirations and strikes
3. Keep expirations up to max_expiration and the strike_count strikes
   closest to the underlying price
4. Qualify every call/put and request tickers in one batch
5. Use modelGreeks for implied volatility and Greeks
"""

import math
from datetime import date, datetime
from typing import List, Optional

from ib_async import Option, Stock
from loguru import logger

from optrader.core.errors import FeedError
from optrader.core.models import CALL, PUT, ContractQuote, ExpirationMap, Snapshot, option_symbol
from optrader.utils.ib_connection import IBConnectionManager

SMART = "SMART"
CURRENCY = "USD"


def _value(number: Optional[float]) -> float:
    """IB reports missing values as None or NaN."""
    if number is None or math.isnan(number):
        return 0.0
    return float(number)


def select_strikes(strikes: List[float], price: float, strike_count: int) -> List[float]:
    """The strike_count strikes closest to price, in ascending order."""
    closest = sorted(strikes, key=lambda strike: abs(strike - price))[:strike_count]
    return sorted(closest)


def select_expirations(expirations: List[str], today: date, max_expiration: date) -> List[str]:
    """IB expirations (YYYYMMDD) between today and max_expiration."""
    selected = []
    for expiry in sorted(expirations):
        try:
            expiry_date = datetime.strptime(expiry, "%Y%m%d").date()
        except ValueError:
            continue
        if today <= expiry_date <= max_expiration:
            selected.append(expiry)
    return selected


class IBOptionChainFeed:
    """
    Option chain feed over ib_async.

    Attributes:
        ib_conn: IB connection manager
        circuit_breaker: Shared circuit breaker of the connection
    """

    def __init__(self, ib_conn: IBConnectionManager):
        """
        Initialize the feed.

        Args:
            ib_conn: IB connection manager
        """
        self.ib_conn = ib_conn
        self.circuit_breaker = ib_conn.circuit_breaker

    async def fetch_option_chain(
        self,
        ticker: str,
        max_expiration: date,
        strike_count: int
    ) -> Snapshot:
        if not self.circuit_breaker.can_attempt():
            raise FeedError(ticker, "circuit breaker is OPEN")

        try:
            snapshot = await self._fetch(ticker, max_expiration, strike_count)
        except FeedError:
            self.circuit_breaker.record_failure()
            raise
        except Exception as e:
            self.circuit_breaker.record_failure()
            raise FeedError(ticker, f"{type(e).__name__}: {e}") from e

        self.circuit_breaker.record_success()
        return snapshot

    async def _fetch(self, ticker: str, max_expiration: date, strike_count: int) -> Snapshot:
        await self.ib_conn.ensure_connected()
        ib = self.ib_conn.ib

        qualified = await ib.qualifyContractsAsync(Stock(ticker, SMART, CURRENCY))
        if not qualified or qualified[0] is None:
            raise FeedError(ticker, "failed to qualify stock contract")
        stock = qualified[0]

        stock_tickers = await ib.reqTickersAsync(stock)
        if not stock_tickers:
            raise FeedError(ticker, "no underlying market data")
        underlying_price = _value(stock_tickers[0].marketPrice())
        if underlying_price <= 0:
            raise FeedError(ticker, "no valid underlying price")

        chains = await ib.reqSecDefOptParamsAsync(stock.symbol, "", stock.secType, stock.conId)
        if not chains:
            raise FeedError(ticker, "no option chain definition")
        chain = next((c for c in chains if c.exchange == SMART), chains[0])

        today = datetime.now().date()
        expirations = select_expirations(list(chain.expirations), today, max_expiration)
        strikes = select_strikes(list(chain.strikes), underlying_price, strike_count)

        contracts = [
            Option(ticker, expiry, strike, right, SMART, tradingClass=chain.tradingClass, currency=CURRENCY)
            for expiry in expirations
            for strike in strikes
            for right in ("C", "P")
        ]
        if not contracts:
            logger.warning(f"No contracts for {ticker} up to {max_expiration}")
            return Snapshot(symbol=ticker, underlying_price=underlying_price)

        options = [c for c in await ib.qualifyContractsAsync(*contracts) if c is not None]
        option_tickers = await ib.reqTickersAsync(*options)

        calls: ExpirationMap = {}
        puts: ExpirationMap = {}
        for option_ticker in option_tickers:
            quote = self._to_quote(ticker, option_ticker, today)
            side = calls if quote.put_call == CALL else puts
            side.setdefault(quote.expiration_date, {}).setdefault(f"{quote.strike:.1f}", []).append(quote)

        logger.info(
            f"✓ Fetched {len(option_tickers)} option contracts for {ticker} "
            f"({len(expirations)} expirations, {len(strikes)} strikes)"
        )
        return Snapshot(symbol=ticker, underlying_price=underlying_price, calls=calls, puts=puts)

    @staticmethod
    def _to_quote(ticker: str, option_ticker, today: date) -> ContractQuote:
        contract = option_ticker.contract
        expiration = datetime.strptime(contract.lastTradeDateOrContractMonth, "%Y%m%d").date()
        put_call = CALL if contract.right.startswith("C") else PUT
        greeks = option_ticker.modelGreeks

        return ContractQuote(
            symbol=option_symbol(ticker, expiration, put_call, contract.strike),
            underlying=ticker,
            put_call=put_call,
            strike=float(contract.strike),
            expiration_date=expiration.isoformat(),
            bid=_value(option_ticker.bid),
            ask=_value(option_ticker.ask),
            last=_value(option_ticker.last),
            total_volume=int(_value(option_ticker.volume)),
            days_to_expiration=(expiration - today).days,
            volatility=_value(greeks.impliedVol) if greeks else 0.0,
            delta=_value(greeks.delta) if greeks else 0.0,
            gamma=_value(greeks.gamma) if greeks else 0.0,
            theta=_value(greeks.theta) if greeks else 0.0,
            vega=_value(greeks.vega) if greeks else 0.0,
        )
