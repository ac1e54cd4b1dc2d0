"""
Unusual volume detection.

Flags contracts whose traded volume sits far above the rest of the strikes of
the same expiration. Only liquid quotes take part: volume above 10 and both
bid and ask above 0.10.
"""

import statistics
from dataclasses import dataclass
from typing import Iterable, List

from optrader.core.models import ContractQuote, round2

MIN_VOLUME = 10
MIN_BID = 0.10
MIN_ASK = 0.10
STD_MULTIPLIER = 4


@dataclass(frozen=True, slots=True)
class VolumeStats:
    """Mean and population standard deviation of volume, both rounded to 2 dp."""
    mean: float
    std: float

    @property
    def threshold(self) -> float:
        return self.mean + STD_MULTIPLIER * self.std


def is_liquid(quote: ContractQuote) -> bool:
    """True if the quote passes the volume and bid/ask filters."""
    return (
        quote.total_volume > MIN_VOLUME
        and quote.bid > MIN_BID
        and quote.ask > MIN_ASK
    )


def compute_volume_stats(quotes: Iterable[ContractQuote]) -> VolumeStats:
    """
    Compute volume statistics over the liquid quotes.

    Args:
        quotes: Candidate quotes (first quote per strike)

    Returns:
        VolumeStats, or zeros if no quote passes the filters
    """
    volumes = [quote.total_volume for quote in quotes if is_liquid(quote)]
    if not volumes:
        return VolumeStats(mean=0.0, std=0.0)
    return VolumeStats(
        mean=round2(statistics.fmean(volumes)),
        std=round2(statistics.pstdev(volumes)),
    )


def is_unusual(volume: int, stats: VolumeStats) -> bool:
    return volume > MIN_VOLUME and volume > stats.threshold


def find_unusual_contracts(quotes: Iterable[ContractQuote]) -> List[ContractQuote]:
    """
    Return the liquid quotes whose volume exceeds mean + 4 * std.

    Args:
        quotes: Quotes of one expiration (first quote per strike)

    Returns:
        Flagged quotes in input order (empty if nothing is liquid)
    """
    liquid = [quote for quote in quotes if is_liquid(quote)]
    if not liquid:
        return []
    stats = compute_volume_stats(liquid)
    return [quote for quote in liquid if is_unusual(quote.total_volume, stats)]
