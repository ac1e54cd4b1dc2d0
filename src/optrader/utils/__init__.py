"""
Utility modules for optrader.
"""

from optrader.utils.ib_connection import CircuitBreaker, CircuitState, IBConnectionManager

__all__ = ["CircuitBreaker", "CircuitState", "IBConnectionManager"]
