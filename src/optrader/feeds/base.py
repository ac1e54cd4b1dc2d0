"""
Option chain feed contract.
"""

from datetime import date
from typing import Protocol

from optrader.core.models import Snapshot


class OptionChainFeed(Protocol):
    """Source of option chain snapshots."""

    async def fetch_option_chain(
        self,
        ticker: str,
        max_expiration: date,
        strike_count: int
    ) -> Snapshot:
        """
        Fetch the option chain of an underlying.

        Args:
            ticker: Underlying symbol
            max_expiration: Furthest expiration to include
            strike_count: Strikes to include around the underlying price

        Returns:
            Snapshot of the chain

        Raises:
            FeedError: If the chain cannot be retrieved
        """
        ...
