"""
optrader: unusual options volume trading with delta hedging.

Snapshots of option chains are scheduled (live from IB or replayed from the
snapshot archive), pushed through a single-consumer action queue and traded by
portfolio managers whose positions live in Delta Lake.
"""

__version__ = "0.1.0"
