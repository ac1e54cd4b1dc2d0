"""
Option pricing engine (closed-form and Monte Carlo).
"""

from optrader.pricing.black_scholes import (
    DEFAULT_SIMULATIONS,
    call_price_bsm,
    monte_carlo_call_price,
)

__all__ = [
    "DEFAULT_SIMULATIONS",
    "call_price_bsm",
    "monte_carlo_call_price",
]
