"""
Repository for positions with Delta Lake backend.

One table per portfolio, one row per symbol. Fully exited positions keep
their row (quantity 0, status closed) as an audit trail.

Pattern: DeltaTable() for reads, write_deltalake() for writes. An update
deletes the symbol's row and appends the new one.
"""

from dataclasses import fields as dataclass_fields
from pathlib import Path
from typing import List, Optional

import polars as pl
from deltalake import DeltaTable, write_deltalake
from loguru import logger

from optrader.core.errors import StoreError
from optrader.core.models import OPEN, Position

POSITION_SCHEMA = pl.Schema({
    "symbol": pl.String,
    "quantity": pl.Int64,
    "buy_price": pl.Float64,
    "last_price": pl.Float64,
    "close_price": pl.Float64,
    "buy_notional": pl.Float64,
    "current_notional": pl.Float64,
    "delta": pl.Float64,
    "gamma": pl.Float64,
    "theta": pl.Float64,
    "vega": pl.Float64,
    "volatility": pl.Float64,
    "commission": pl.Float64,
    "realized_pnl": pl.Float64,
    "unrealized_pnl": pl.Float64,
    "status": pl.String,  # "open", "closed"
    "date_captured": pl.String,  # YYYYMMDD
})

_POSITION_FIELDS = {f.name for f in dataclass_fields(Position)}


class PositionsRepository:
    """Position store for a single portfolio backed by a Delta Lake table."""

    def __init__(self, table_path: str):
        """
        Initialize the positions repository.

        Args:
            table_path: Path to the Delta Lake table (created if missing)
        """
        self.table_path = str(table_path)
        self._ensure_table_exists()

    def _ensure_table_exists(self) -> None:
        """Initialize table if it doesn't exist."""
        if not Path(self.table_path).exists():
            logger.info(f"Initializing positions table at {self.table_path}")
            df = pl.DataFrame(schema=POSITION_SCHEMA)
            write_deltalake(self.table_path, df.to_arrow(), mode="overwrite")

    def _read(self) -> pl.DataFrame:
        dt = DeltaTable(self.table_path)
        df_pandas = dt.to_pandas()
        if df_pandas.empty:
            return pl.DataFrame(schema=POSITION_SCHEMA)
        return pl.from_pandas(df_pandas)

    def _append(self, records: List[dict]) -> None:
        df = pl.from_dicts(records, schema=POSITION_SCHEMA)
        write_deltalake(self.table_path, df.to_arrow(), mode="append")

    @staticmethod
    def _to_positions(df: pl.DataFrame) -> List[Position]:
        return [Position.from_record(row) for row in df.iter_rows(named=True)]

    def find(self, symbol: str) -> Optional[Position]:
        """
        Get the record for a symbol.

        Args:
            symbol: Option or hedge symbol

        Returns:
            Position, or None if no record exists
        """
        df = self._read().filter(pl.col("symbol") == symbol)
        if df.is_empty():
            return None
        return self._to_positions(df.head(1))[0]

    def find_all(self) -> List[Position]:
        """Get every record, open and closed."""
        return self._to_positions(self._read())

    def find_open(self) -> List[Position]:
        """Get all records with status open."""
        df = self._read().filter(pl.col("status") == OPEN)
        return self._to_positions(df)

    def insert(self, position: Position) -> None:
        """
        Insert a new record.

        Raises:
            StoreError: If a record for the symbol already exists
        """
        if self.find(position.symbol) is not None:
            raise StoreError(f"Position {position.symbol} already exists in {self.table_path}")
        self._append([position.to_record()])
        logger.debug(f"✓ Inserted position {position.symbol} (qty: {position.quantity})")

    def update(self, symbol: str, **fields) -> Position:
        """
        Update fields of an existing record (delete + append).

        Args:
            symbol: Symbol of the record to update
            **fields: Field names and new values

        Returns:
            The updated Position

        Raises:
            StoreError: If the record does not exist or a field is unknown
        """
        unknown = set(fields) - _POSITION_FIELDS
        if unknown:
            raise StoreError(f"Unknown position fields: {sorted(unknown)}")

        current = self.find(symbol)
        if current is None:
            raise StoreError(f"Position {symbol} not found in {self.table_path}")

        record = current.to_record()
        record.update(fields)
        record["symbol"] = symbol

        dt = DeltaTable(self.table_path)
        dt.delete(predicate=f"symbol = '{symbol}'")
        self._append([record])

        logger.debug(f"✓ Updated position {symbol}: {sorted(fields)}")
        return Position.from_record(record)

    def get_version(self) -> int:
        """Current Delta Lake version of the table."""
        return DeltaTable(self.table_path).version()
