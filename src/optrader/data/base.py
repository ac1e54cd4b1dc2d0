"""
Position store contract.

A keyed collection of Position records (one record per symbol) supporting
find-by-key, find-all, insert and field-level update. Implementations are
synchronous; callers run them from the action consumer thread.
"""

from typing import List, Optional, Protocol, runtime_checkable

from optrader.core.models import Position


@runtime_checkable
class PositionStore(Protocol):
    """Keyed Position storage used by strategies and hedgers."""

    def find(self, symbol: str) -> Optional[Position]:
        ...

    def find_all(self) -> List[Position]:
        ...

    def find_open(self) -> List[Position]:
        ...

    def insert(self, position: Position) -> None:
        ...

    def update(self, symbol: str, **fields) -> Position:
        ...
