"""
Exception taxonomy for optrader.

- ConfigurationError: fatal startup problems (bad config, replay without archive)
- FeedError: market data transport failures (ticker skipped for the cycle)
- StoreError: position store / archive failures
"""


class OptraderError(Exception):
    """Base exception for optrader errors."""


class ConfigurationError(OptraderError):
    """Configuration is invalid or a required resource is unreachable."""


class FeedError(OptraderError):
    """Option chain could not be retrieved from the market data feed."""

    def __init__(self, ticker: str, message: str):
        self.ticker = ticker
        self.message = message
        super().__init__(f"{ticker}: {message}")


class StoreError(OptraderError):
    """Position store or snapshot archive operation failed."""
