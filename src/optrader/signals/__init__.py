"""
Signal chain: ordered entry/exit predicates with short-circuit AND semantics.
"""

from optrader.signals.base import (
    EntrySignal,
    ExitSignal,
    entry_chain_accepts,
    exit_chain_accepts,
)
from optrader.signals.expiry_exit import ExpiryExitSignal
from optrader.signals.pricing_signal import PricingEntrySignal

__all__ = [
    "EntrySignal",
    "ExitSignal",
    "ExpiryExitSignal",
    "PricingEntrySignal",
    "entry_chain_accepts",
    "exit_chain_accepts",
]
