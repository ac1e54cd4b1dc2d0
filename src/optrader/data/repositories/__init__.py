"""
Data repositories for Delta Lake operations.

Example:
    >>> from optrader.data.repositories import PositionsRepository
    >>> repo = PositionsRepository("data/lake/positions/default")
    >>> open_positions = repo.find_open()
"""

from .positions import POSITION_SCHEMA, PositionsRepository

__all__ = ["POSITION_SCHEMA", "PositionsRepository"]
