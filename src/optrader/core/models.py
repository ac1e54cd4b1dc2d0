"""
Data models for the optrader system.

This module contains the dataclass definitions shared across the pricing,
strategy, hedging and storage layers to avoid circular imports.

- ContractQuote: pricing and Greeks for a single option contract
- Snapshot: point-in-time option chain for one underlying
- Position: durable record for an option leg or an equity hedge leg
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Dict, List

# Symbol conventions
UNDERSCORE = "_"
EQUITY_SUFFIX = "EQUITY"

# Position status values
OPEN = "open"
CLOSED = "closed"

# Contracts are quoted per share, one lot covers 100 shares
CONTRACT_MULTIPLIER = 100

CALL = "CALL"
PUT = "PUT"

StrikeMap = Dict[str, List["ContractQuote"]]
ExpirationMap = Dict[str, StrikeMap]


def round2(value: float) -> float:
    """Round a value to two decimal places."""
    return round(value * 100.0) / 100.0


def option_symbol(ticker: str, expiration: date, put_call: str, strike: float) -> str:
    """
    Build an option contract symbol.

    Format: <TICKER>_<MMDDYY><C|P><strike>, e.g. SPY_052021C420

    Args:
        ticker: Underlying symbol
        expiration: Expiration date
        put_call: CALL or PUT
        strike: Strike price

    Returns:
        Option symbol string
    """
    right = "C" if put_call == CALL else "P"
    return f"{ticker}{UNDERSCORE}{expiration.strftime('%m%d%y')}{right}{strike:g}"


def equity_symbol(ticker: str) -> str:
    """Symbol of the equity hedge leg for a ticker."""
    return f"{ticker}{UNDERSCORE}{EQUITY_SUFFIX}"


def ticker_from_symbol(symbol: str) -> str:
    """Extract the underlying ticker from an option or hedge symbol."""
    return symbol.split(UNDERSCORE)[0]


def batch(tickers: List[str], batch_size: int) -> List[List[str]]:
    """
    Break a list of tickers into batches of at most batch_size.

    Args:
        tickers: Tickers to batch
        batch_size: Maximum tickers per batch

    Returns:
        List of ticker batches (a short list stays a single batch)
    """
    if len(tickers) < batch_size:
        return [list(tickers)]
    return [tickers[i:i + batch_size] for i in range(0, len(tickers), batch_size)]


def average_price(
    original_quantity: int,
    original_price: float,
    new_quantity: int,
    new_price: float
) -> float:
    """
    Notional-weighted average price of an existing fill and a new fill.

    Args:
        original_quantity: Lots already held (sign ignored)
        original_price: Average price of the held lots
        new_quantity: Lots added
        new_price: Price of the added lots

    Returns:
        Weighted average price
    """
    held = abs(original_quantity)
    added = abs(new_quantity)
    if held + added == 0:
        return new_price
    return (held * original_price + added * new_price) / (held + added)


@dataclass(frozen=True)
class ContractQuote:
    """
    Option contract quote inside a snapshot.

    Attributes:
        symbol: Option symbol (SPY_052021C420)
        underlying: Underlying symbol (SPY)
        put_call: CALL or PUT
        strike: Strike price
        expiration_date: Expiration date (YYYY-MM-DD)
        bid: Best bid price
        ask: Best ask price
        last: Last trade price
        total_volume: Contracts traded today
        days_to_expiration: Calendar days until expiration
        volatility: Implied volatility as a decimal (0.25 = 25%)
        delta: Option delta
        gamma: Option gamma
        theta: Option theta
        vega: Option vega
    """
    symbol: str
    underlying: str
    put_call: str
    strike: float
    expiration_date: str
    bid: float
    ask: float
    last: float
    total_volume: int
    days_to_expiration: int
    volatility: float
    delta: float = 0.0
    gamma: float = 0.0
    theta: float = 0.0
    vega: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> "ContractQuote":
        return cls(**data)


@dataclass(frozen=True)
class Snapshot:
    """
    Point-in-time option chain for one underlying.

    Calls and puts are grouped by expiration date, then by strike, each
    strike holding a list of quotes (the first quote is the one traded).

    Attributes:
        symbol: Underlying symbol
        underlying_price: Underlying price at capture time
        calls: expiration_date -> strike -> quotes
        puts: expiration_date -> strike -> quotes
        captured_at: Capture timestamp
    """
    symbol: str
    underlying_price: float
    calls: ExpirationMap = field(default_factory=dict)
    puts: ExpirationMap = field(default_factory=dict)
    captured_at: datetime = field(default_factory=datetime.now)

    def flatten(self) -> Dict[str, ContractQuote]:
        """
        Flatten the chain into a symbol -> quote lookup.

        Only the first quote of every strike is used, for both calls and puts.
        """
        lookup: Dict[str, ContractQuote] = {}
        for side in (self.calls, self.puts):
            for strikes in side.values():
                for options in strikes.values():
                    if options:
                        lookup[options[0].symbol] = options[0]
        return lookup

    def to_dict(self) -> dict:
        """Serialize to plain dict (archive format)."""
        return {
            "symbol": self.symbol,
            "underlying_price": self.underlying_price,
            "captured_at": self.captured_at.isoformat(),
            "calls": _side_to_dict(self.calls),
            "puts": _side_to_dict(self.puts),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Snapshot":
        """Rehydrate a snapshot from its archive format."""
        return cls(
            symbol=data["symbol"],
            underlying_price=float(data["underlying_price"]),
            calls=_side_from_dict(data.get("calls", {})),
            puts=_side_from_dict(data.get("puts", {})),
            captured_at=datetime.fromisoformat(data["captured_at"]),
        )


def _side_to_dict(side: ExpirationMap) -> dict:
    return {
        expiration: {
            strike: [asdict(quote) for quote in quotes]
            for strike, quotes in strikes.items()
        }
        for expiration, strikes in side.items()
    }


def _side_from_dict(data: dict) -> ExpirationMap:
    return {
        expiration: {
            strike: [ContractQuote.from_dict(quote) for quote in quotes]
            for strike, quotes in strikes.items()
        }
        for expiration, strikes in data.items()
    }


@dataclass
class Position:
    """
    Durable position record, keyed by symbol.

    Greeks are stored already scaled by quantity. A fully exited position
    keeps its record with quantity 0 and status closed.

    Attributes:
        symbol: Option symbol or <TICKER>_EQUITY for a hedge leg
        quantity: Signed lots (shares for a hedge leg)
        buy_price: Average entry price
        last_price: Latest marked price
        close_price: Price at full exit (0 while open)
        buy_notional: Entry notional of the held quantity
        current_notional: Marked notional of the held quantity
        delta: Position delta (per-contract delta * quantity)
        gamma: Position gamma
        theta: Position theta
        vega: Position vega
        volatility: Implied volatility at last mark
        commission: Commission paid
        realized_pnl: Realized PnL
        unrealized_pnl: Unrealized PnL at last mark
        status: open or closed
        date_captured: Date the record was created (YYYYMMDD)
    """
    symbol: str
    quantity: int
    buy_price: float
    last_price: float
    close_price: float = 0.0
    buy_notional: float = 0.0
    current_notional: float = 0.0
    delta: float = 0.0
    gamma: float = 0.0
    theta: float = 0.0
    vega: float = 0.0
    volatility: float = 0.0
    commission: float = 0.0
    realized_pnl: float = 0.0
    unrealized_pnl: float = 0.0
    status: str = OPEN
    date_captured: str = field(default_factory=lambda: date.today().strftime("%Y%m%d"))

    @property
    def ticker(self) -> str:
        return ticker_from_symbol(self.symbol)

    @property
    def is_equity_hedge(self) -> bool:
        return self.symbol == equity_symbol(self.ticker)

    @property
    def is_option(self) -> bool:
        return UNDERSCORE in self.symbol and not self.is_equity_hedge

    @property
    def is_open(self) -> bool:
        return self.status == OPEN

    @property
    def multiplier(self) -> int:
        """Notional multiplier: 100 for option lots, 1 for shares."""
        return CONTRACT_MULTIPLIER if self.is_option else 1

    def to_record(self) -> dict:
        return asdict(self)

    @classmethod
    def from_record(cls, record: dict) -> "Position":
        """Build a Position from a storage row, ignoring unknown columns."""
        names = cls.__dataclass_fields__.keys()
        values = {k: v for k, v in record.items() if k in names}
        values["quantity"] = int(values["quantity"])
        return cls(**values)
