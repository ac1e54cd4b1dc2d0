"""
Black-Scholes Pricing Engine

Pricing estimators for European calls on non-dividend underlyings. Used to
judge whether an option flagged by other indicators is rich or cheap versus
the market.

Key functions:
- call_price_bsm: closed-form Black-Scholes call value
- monte_carlo_call_price: risk-neutral Monte Carlo estimate of the same value

Only calls are priced for now.
"""

import math
from typing import Optional

import numpy as np
from scipy.stats import norm

DEFAULT_SIMULATIONS = 10_000


def _validate_inputs(
    spot_price: float,
    strike_price: float,
    time_to_maturity: float,
    volatility: float
) -> None:
    if spot_price <= 0 or strike_price <= 0:
        raise ValueError(f"Spot and strike must be positive: S={spot_price}, K={strike_price}")
    if time_to_maturity <= 0:
        raise ValueError(f"Time to maturity must be positive: T={time_to_maturity}")
    if volatility <= 0:
        raise ValueError(f"Volatility must be positive: sigma={volatility}")


def call_price_bsm(
    spot_price: float,
    strike_price: float,
    time_to_maturity: float,
    risk_free_rate: float,
    volatility: float
) -> float:
    """
    Closed-form Black-Scholes call price.

    d1 = (ln(S/K) + (r + sigma^2/2) * T) / (sigma * sqrt(T))
    d2 = d1 - sigma * sqrt(T)
    C  = S * N(d1) - K * e^(-rT) * N(d2)

    Args:
        spot_price: Underlying price S
        strike_price: Strike K
        time_to_maturity: Years to expiration T
        risk_free_rate: Annual risk-free rate r
        volatility: Annual volatility sigma (decimal)

    Returns:
        Call value

    Raises:
        ValueError: If S, K, T or sigma are not positive
    """
    _validate_inputs(spot_price, strike_price, time_to_maturity, volatility)

    vol_sqrt_t = volatility * math.sqrt(time_to_maturity)
    d1 = (
        math.log(spot_price / strike_price)
        + (risk_free_rate + volatility ** 2 / 2) * time_to_maturity
    ) / vol_sqrt_t
    d2 = d1 - vol_sqrt_t

    discounted_strike = strike_price * math.exp(-risk_free_rate * time_to_maturity)
    return float(spot_price * norm.cdf(d1) - discounted_strike * norm.cdf(d2))


def monte_carlo_call_price(
    spot_price: float,
    strike_price: float,
    time_to_maturity: float,
    risk_free_rate: float,
    volatility: float,
    simulations: int = DEFAULT_SIMULATIONS,
    rng: Optional[np.random.Generator] = None
) -> float:
    """
    Monte Carlo estimate of a European call price.

    Under the risk-neutral measure the drift is the risk-free rate, so each
    terminal price is S * exp((r - sigma^2/2) * T + sigma * sqrt(T) * z).
    The estimate is the mean payoff max(S_T - K, 0) discounted by e^(-rT).

    Results vary between calls unless a seeded generator is passed.

    Args:
        spot_price: Underlying price S
        strike_price: Strike K
        time_to_maturity: Years to expiration T
        risk_free_rate: Annual risk-free rate r
        volatility: Annual volatility sigma (decimal)
        simulations: Number of standard-normal draws (default: 10,000)
        rng: Optional numpy Generator for reproducible draws

    Returns:
        Discounted mean payoff

    Raises:
        ValueError: If inputs are not positive or simulations < 1
    """
    _validate_inputs(spot_price, strike_price, time_to_maturity, volatility)
    if simulations < 1:
        raise ValueError(f"simulations must be >= 1, got {simulations}")

    rng = rng or np.random.default_rng()
    z = rng.standard_normal(simulations)

    drift = (risk_free_rate - 0.5 * volatility ** 2) * time_to_maturity
    diffusion = volatility * math.sqrt(time_to_maturity) * z
    terminal_prices = spot_price * np.exp(drift + diffusion)

    payoffs = np.maximum(terminal_prices - strike_price, 0.0)
    return float(math.exp(-risk_free_rate * time_to_maturity) * payoffs.mean())
