"""
Hedging engine: equity legs that keep each underlying delta-neutral.
"""

from optrader.hedge.delta_hedger import DeltaHedger, Hedger, hedge_target

__all__ = ["DeltaHedger", "Hedger", "hedge_target"]
