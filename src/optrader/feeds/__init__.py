"""
Market data feeds producing option chain snapshots.
"""

from optrader.feeds.base import OptionChainFeed
from optrader.feeds.ib_feed import IBOptionChainFeed

__all__ = ["IBOptionChainFeed", "OptionChainFeed"]
