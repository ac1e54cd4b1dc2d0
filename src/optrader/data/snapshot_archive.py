"""
Snapshot archive with Delta Lake backend.

Append-only store of raw option chain snapshots, keyed by date and
<ticker>_<sequence>. Two reserved keys per date hold bookkeeping values:

- sequence_num: last sequence number assigned to an archived snapshot
- replay_cursor: last sequence number consumed by a replay run

Schema (partitioned by date):
- date: trading date (YYYYMMDD)
- key: <ticker>_<n> or a reserved key
- sequence: sequence number (or the bookkeeping value for reserved keys)
- payload: JSON snapshot (empty for reserved keys)
"""

import json
from pathlib import Path
from typing import Dict, List, Optional

import polars as pl
from deltalake import DeltaTable, write_deltalake
from loguru import logger

from optrader.core.errors import StoreError
from optrader.core.models import UNDERSCORE, Snapshot

SEQUENCE_NUM_KEY = "sequence_num"
REPLAY_CURSOR_KEY = "replay_cursor"
RESERVED_KEYS = [SEQUENCE_NUM_KEY, REPLAY_CURSOR_KEY]
PARTITION_BY = ["date"]

ARCHIVE_SCHEMA = pl.Schema({
    "date": pl.String,
    "key": pl.String,
    "sequence": pl.Int64,
    "payload": pl.String,
})


def archive_date(snapshot: Snapshot) -> str:
    """Archive date (YYYYMMDD) of a snapshot."""
    return snapshot.captured_at.strftime("%Y%m%d")


class SnapshotArchive:
    """
    Archive of raw snapshots plus per-day sequence and replay cursor values.

    A read-only archive (e.g. a remote lake mounted for replay) never creates
    its table and rejects writes.
    """

    def __init__(self, table_path: str, read_only: bool = False):
        """
        Initialize the archive.

        Args:
            table_path: Path to the Delta Lake table
            read_only: Open without creating the table and refuse writes
        """
        self.table_path = str(table_path)
        self.read_only = read_only
        if not read_only:
            self._ensure_table_exists()

    def _ensure_table_exists(self) -> None:
        if not Path(self.table_path).exists():
            logger.info(f"Initializing snapshot archive at {self.table_path}")
            df = pl.DataFrame(schema=ARCHIVE_SCHEMA)
            write_deltalake(
                self.table_path,
                df.to_arrow(),
                mode="overwrite",
                partition_by=PARTITION_BY
            )

    @property
    def available(self) -> bool:
        """True if the archive table exists."""
        return Path(self.table_path, "_delta_log").exists()

    def _read(self, date: str, columns: List[str]) -> pl.DataFrame:
        """Read the given columns of one date partition."""
        empty = pl.DataFrame(schema=ARCHIVE_SCHEMA).select(columns)
        if not self.available:
            return empty
        df_pandas = DeltaTable(self.table_path).to_pandas(
            partitions=[("date", "=", date)],
            columns=columns
        )
        if df_pandas.empty:
            return empty
        return pl.from_pandas(df_pandas)

    def _append(self, records: List[dict]) -> None:
        if self.read_only:
            raise StoreError(f"Snapshot archive {self.table_path} is read-only")
        df = pl.from_dicts(records, schema=ARCHIVE_SCHEMA)
        write_deltalake(
            self.table_path,
            df.to_arrow(),
            mode="append",
            partition_by=PARTITION_BY
        )

    def _get_reserved(self, date: str, key: str) -> Optional[int]:
        df = self._read(date, ["key", "sequence"]).filter(pl.col("key") == key)
        if df.is_empty():
            return None
        return int(df["sequence"].max())

    def _set_reserved(self, date: str, key: str, value: int) -> None:
        if self.read_only:
            raise StoreError(f"Snapshot archive {self.table_path} is read-only")
        dt = DeltaTable(self.table_path)
        dt.delete(predicate=f"date = '{date}' AND key = '{key}'")
        self._append([{"date": date, "key": key, "sequence": value, "payload": ""}])

    def archive(self, ticker: str, sequence: int, snapshot: Snapshot) -> str:
        """
        Store a snapshot under <ticker>_<sequence>.

        Args:
            ticker: Underlying symbol
            sequence: Sequence number labelling the snapshot
            snapshot: Snapshot to store

        Returns:
            Key the snapshot was stored under
        """
        key = f"{ticker}{UNDERSCORE}{sequence}"
        self._append([{
            "date": archive_date(snapshot),
            "key": key,
            "sequence": sequence,
            "payload": json.dumps(snapshot.to_dict()),
        }])
        logger.debug(f"✓ Archived snapshot {key}")
        return key

    def load_day(self, date: str) -> Dict[int, List[Snapshot]]:
        """
        Load every snapshot archived on a date with a single partition read.

        Args:
            date: Trading date (YYYYMMDD)

        Returns:
            Sequence number -> snapshots labelled with it, in archive order
        """
        df = self._read(date, ["key", "sequence", "payload"]).filter(
            ~pl.col("key").is_in(RESERVED_KEYS)
        )
        snapshots: Dict[int, List[Snapshot]] = {}
        for sequence, payload in df.select("sequence", "payload").iter_rows():
            snapshots.setdefault(sequence, []).append(Snapshot.from_dict(json.loads(payload)))
        return snapshots

    def get_sequence_num(self, date: str) -> Optional[int]:
        """Last sequence number assigned on a date, or None."""
        return self._get_reserved(date, SEQUENCE_NUM_KEY)

    def set_sequence_num(self, date: str, sequence: int) -> None:
        self._set_reserved(date, SEQUENCE_NUM_KEY, sequence)

    def get_replay_cursor(self, date: str) -> Optional[int]:
        """Last sequence number consumed by replay on a date, or None."""
        return self._get_reserved(date, REPLAY_CURSOR_KEY)

    def set_replay_cursor(self, date: str, sequence: int) -> None:
        self._set_reserved(date, REPLAY_CURSOR_KEY, sequence)

    def exists(self, date: str) -> bool:
        """True if the archive holds a sequence number for the date."""
        return self.get_sequence_num(date) is not None


class SequenceCounter:
    """
    Process-wide, per-day snapshot counter.

    Seeded from the archive (stored value + 1, or 1) and persisted back after
    every successful archival. A new date reseeds from the archive.
    """

    def __init__(self, archive: SnapshotArchive):
        self.archive = archive
        self._date: Optional[str] = None
        self._next = 1

    def seed(self, date: str) -> int:
        """Seed the counter for a date and return the next label."""
        stored = self.archive.get_sequence_num(date)
        self._date = date
        self._next = stored + 1 if stored is not None else 1
        logger.info(f"✓ Sequence number for {date} starts at {self._next}")
        return self._next

    def current(self, date: str) -> int:
        """Label for the next snapshot of a date."""
        if date != self._date:
            self.seed(date)
        return self._next

    def advance(self, date: str) -> None:
        """Persist the label just used and move to the next one."""
        used = self.current(date)
        self.archive.set_sequence_num(date, used)
        self._next = used + 1
