"""
Pricing entry signal.

Runs the non-dividend Black-Scholes Monte Carlo model to decide whether the
option price is attractive, and applies a minimum implied volatility check.
"""

from typing import Callable

from optrader.core.models import ContractQuote, Snapshot
from optrader.pricing import monte_carlo_call_price
from optrader.signals.base import EntrySignal

DAYS_PER_YEAR = 365

Pricer = Callable[[float, float, float, float, float], float]


class PricingEntrySignal(EntrySignal):
    """
    Accept contracts trading below their Monte Carlo fair value.

    Accepts only if days to expiration > 1, the last trade is below the
    simulated fair value, and implied volatility exceeds min_volatility.

    Args:
        risk_free_rate: Annual risk-free rate used for discounting
        min_volatility: Implied volatility floor (decimal)
        pricer: Callable (spot, strike, T, r, vol) -> fair value
    """

    name = "pricing"

    def __init__(
        self,
        risk_free_rate: float = 0.005,
        min_volatility: float = 0.20,
        pricer: Pricer = monte_carlo_call_price
    ):
        self.risk_free_rate = risk_free_rate
        self.min_volatility = min_volatility
        self.pricer = pricer

    def trigger(self, snapshot: Snapshot, quote: ContractQuote) -> bool:
        if quote.days_to_expiration <= 1:
            return False
        # Vol floor is checked first so the model never sees a zero vol
        if quote.volatility <= self.min_volatility:
            return False

        fair_value = self.pricer(
            snapshot.underlying_price,
            quote.strike,
            quote.days_to_expiration / DAYS_PER_YEAR,
            self.risk_free_rate,
            quote.volatility,
        )
        return quote.last < fair_value
