"""
Strategies: anomaly detection, entry/exit bookkeeping and the unusual
options volume strategy.
"""

from optrader.strategy.anomaly import (
    VolumeStats,
    compute_volume_stats,
    find_unusual_contracts,
)
from optrader.strategy.base import BaseStrategy, Strategy
from optrader.strategy.unusual_options import UnusualOptionsStrategy

__all__ = [
    "BaseStrategy",
    "Strategy",
    "UnusualOptionsStrategy",
    "VolumeStats",
    "compute_volume_stats",
    "find_unusual_contracts",
]
