"""
Core models and errors shared across optrader components.
"""

from optrader.core.errors import (
    ConfigurationError,
    FeedError,
    OptraderError,
    StoreError,
)
from optrader.core.models import (
    CALL,
    CLOSED,
    CONTRACT_MULTIPLIER,
    OPEN,
    PUT,
    ContractQuote,
    Position,
    Snapshot,
    average_price,
    batch,
    equity_symbol,
    option_symbol,
    round2,
    ticker_from_symbol,
)

__all__ = [
    "CALL",
    "CLOSED",
    "CONTRACT_MULTIPLIER",
    "OPEN",
    "PUT",
    "ContractQuote",
    "Position",
    "Snapshot",
    "average_price",
    "batch",
    "equity_symbol",
    "option_symbol",
    "round2",
    "ticker_from_symbol",
    # Errors
    "ConfigurationError",
    "FeedError",
    "OptraderError",
    "StoreError",
]
