"""
Expiry exit signal: exit option positions expiring today or tomorrow.
"""

from optrader.core.models import ContractQuote, Position, Snapshot
from optrader.signals.base import ExitSignal


class ExpiryExitSignal(ExitSignal):
    """Exit an option position when the contract has at most one day left."""

    name = "expiry"

    def trigger(self, snapshot: Snapshot, position: Position, quote: ContractQuote) -> bool:
        if quote is None or position is None:
            return False
        if not position.is_option or position.symbol != quote.symbol:
            return False
        return quote.days_to_expiration <= 1
